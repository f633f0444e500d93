"""Host platform detection used to pick tool artifact names."""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass
from pathlib import Path

from openapi_gate.errors import OpenApiTaskFailedError

OS_RELEASE = Path("/etc/os-release")


@dataclass(frozen=True)
class HostPlatform:
    """Operating system and CPU architecture of the build host.

    ``os`` is one of ``linux``, ``macos`` or ``windows``.  ``arch`` is
    ``x64`` or ``arm64``; tools that spell x64 as ``amd64`` use
    :meth:`arch_as`.
    """

    os: str
    arch: str
    alpine: bool = False

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def arch_as(self, x64_name: str) -> str:
        """Architecture with ``x64`` renamed (e.g. ``amd`` → ``amd64``)."""
        if self.arch == "x64":
            return f"{x64_name}64"
        return self.arch

    def executable_name(self, stem: str) -> str:
        return f"{stem}.exe" if self.is_windows else stem


def _normalize_os(name: str) -> str:
    if name.startswith("win"):
        return "windows"
    if name == "darwin":
        return "macos"
    if name.startswith("linux"):
        return "linux"
    raise OpenApiTaskFailedError(f"Unsupported operating system: {name}")


def _normalize_arch(machine: str) -> str:
    m = machine.lower()
    if m in ("x86_64", "amd64", "x64"):
        return "x64"
    if m in ("arm64", "aarch64"):
        return "arm64"
    raise OpenApiTaskFailedError(f"Unsupported architecture: {machine}")


def is_alpine(os_release: Path = OS_RELEASE) -> bool:
    try:
        return "Alpine Linux" in os_release.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False


def detect_platform(os_release: Path = OS_RELEASE) -> HostPlatform:
    os_name = _normalize_os(sys.platform)
    return HostPlatform(
        os=os_name,
        arch=_normalize_arch(platform.machine()),
        alpine=os_name == "linux" and is_alpine(os_release),
    )
