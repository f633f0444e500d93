"""ToolDescriptor — where a versioned tool lives and where it comes from."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from openapi_gate.core.platform_info import HostPlatform

LINTER_URL_TEMPLATE = "https://github.com/stoplightio/spectral/releases/download/v{version}/{artifact}"
DIFF_URL_TEMPLATE = "https://github.com/Tufin/oasdiff/releases/download/v{version}/{artifact}"


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    version: str
    install_dir: Path
    executable_path: Path
    artifact_name: str | None = None
    download_url_template: str | None = None

    @property
    def download_url(self) -> str | None:
        if self.download_url_template is None or self.artifact_name is None:
            return None
        return self.download_url_template.format(version=self.version, artifact=self.artifact_name)

    @property
    def artifact_path(self) -> Path | None:
        if self.artifact_name is None:
            return None
        return self.install_dir / self.artifact_name


def linter_artifact_name(host: HostPlatform) -> str:
    if host.is_windows:
        return "spectral.exe"
    os_name = "alpine" if host.alpine else host.os
    return f"spectral-{os_name}-{host.arch}"


def diff_artifact_name(version: str, host: HostPlatform) -> str:
    if host.os == "macos":
        # macOS ships a single universal archive.
        return f"oasdiff_{version}_darwin_all.tar.gz"
    return f"oasdiff_{version}_{host.os}_{host.arch_as('amd')}.tar.gz"


def linter_descriptor(tools_dir: Path, version: str, host: HostPlatform) -> ToolDescriptor:
    install_dir = Path(tools_dir) / "spectral" / version
    artifact = linter_artifact_name(host)
    return ToolDescriptor(
        name="spectral",
        version=version,
        install_dir=install_dir,
        executable_path=install_dir / artifact,
        artifact_name=artifact,
        download_url_template=LINTER_URL_TEMPLATE,
    )


def diff_descriptor(tools_dir: Path, version: str, host: HostPlatform) -> ToolDescriptor:
    install_dir = Path(tools_dir) / "oasdiff" / version
    return ToolDescriptor(
        name="oasdiff",
        version=version,
        install_dir=install_dir,
        executable_path=install_dir / host.executable_name("oasdiff"),
        artifact_name=diff_artifact_name(version, host),
        download_url_template=DIFF_URL_TEMPLATE,
    )


def generator_descriptor(tools_dir: Path, version: str, host: HostPlatform) -> ToolDescriptor:
    install_dir = Path(tools_dir) / "swagger" / version
    return ToolDescriptor(
        name="swagger",
        version=version,
        install_dir=install_dir,
        executable_path=install_dir / host.executable_name("swagger"),
    )
