"""Tool installers — make sure each versioned tool binary exists locally.

Each installer walks ``NOT_INSTALLED → INSTALLING → INSTALLED`` (or
``FAILED``).  Network and package-manager steps are retried; anything that
still fails surfaces as ``InstallationFailedError`` and aborts the run.
"""

from __future__ import annotations

import asyncio
import enum
import hashlib
import logging
import os
import stat
import tarfile
from pathlib import Path

from openapi_gate.core.fetch import ArtifactFetcher
from openapi_gate.core.process import ProcessInvocation, ProcessResult, ProcessRunner
from openapi_gate.core.retry import MAX_ATTEMPTS, retry_async
from openapi_gate.errors import (
    DownloadError,
    InstallationFailedError,
    OpenApiGateError,
    OpenApiTaskFailedError,
    RetriesExhaustedError,
)
from openapi_gate.tools.descriptor import ToolDescriptor
from openapi_gate.tools.versions import GENERATOR_PACKAGE

_logger = logging.getLogger(__name__)

DEFAULT_NUGET_CONFIG = """\
<?xml version="1.0" encoding="utf-8"?>
<configuration>
  <packageSources>
    <clear />
    <add key="nuget.org" value="https://api.nuget.org/v3/index.json" />
  </packageSources>
</configuration>
"""


class InstallState(enum.Enum):
    NOT_INSTALLED = "not_installed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


def make_executable(path: Path) -> None:
    if os.name == "nt":
        return
    mode = path.stat().st_mode
    path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


async def download_with_retry(
    fetcher: ArtifactFetcher,
    url: str,
    destination: Path,
    *,
    max_attempts: int = MAX_ATTEMPTS,
) -> None:
    def _log(attempt: int, _result: object, exc: BaseException | None) -> None:
        _logger.warning("Download of %s failed: %s", url, exc)

    await retry_async(
        lambda: fetcher.download(url, destination),
        description=f"Download of {url}",
        max_attempts=max_attempts,
        retry_on=(DownloadError,),
        on_retry=_log,
    )


class ToolInstaller:
    """Base installer; subclasses implement :meth:`_install`."""

    def __init__(self, descriptor: ToolDescriptor) -> None:
        self.descriptor = descriptor
        self.state = InstallState.NOT_INSTALLED

    @property
    def executable(self) -> Path:
        return self.descriptor.executable_path

    async def ensure_installed(self) -> Path:
        """Install the tool unless its executable is already on disk."""
        if self.executable.is_file():
            self.state = InstallState.INSTALLED
            return self.executable

        d = self.descriptor
        self.state = InstallState.INSTALLING
        _logger.info("Installing %s %s...", d.name, d.version)
        try:
            d.install_dir.mkdir(parents=True, exist_ok=True)
            await self._install()
            if not self.executable.is_file():
                raise InstallationFailedError(
                    d.name, f"Expected executable {self.executable} is missing."
                )
        except InstallationFailedError:
            self.state = InstallState.FAILED
            raise
        except RetriesExhaustedError as exc:
            self.state = InstallState.FAILED
            raise InstallationFailedError(d.name, str(exc.__cause__ or exc)) from exc
        except (OpenApiGateError, OSError) as exc:
            self.state = InstallState.FAILED
            raise InstallationFailedError(d.name, str(exc)) from exc

        self.state = InstallState.INSTALLED
        _logger.info("%s %s installed successfully.", d.name, d.version)
        return self.executable

    async def _install(self) -> None:
        raise NotImplementedError


def _artifact_source(d: ToolDescriptor) -> tuple[str, Path]:
    """Download URL and local artifact path of a downloadable tool."""
    if d.download_url is None or d.artifact_path is None:
        raise InstallationFailedError(d.name, "No download location is defined for this tool.")
    return d.download_url, d.artifact_path


class BinaryDownloadInstaller(ToolInstaller):
    """Tool shipped as a single executable (the linter)."""

    def __init__(self, descriptor: ToolDescriptor, fetcher: ArtifactFetcher) -> None:
        super().__init__(descriptor)
        self._fetcher = fetcher

    async def _install(self) -> None:
        url, artifact = _artifact_source(self.descriptor)
        await download_with_retry(self._fetcher, url, artifact)
        make_executable(self.executable)


class ArchiveInstaller(ToolInstaller):
    """Tool shipped as a ``.tar.gz`` containing the executable (the diff engine)."""

    def __init__(self, descriptor: ToolDescriptor, fetcher: ArtifactFetcher) -> None:
        super().__init__(descriptor)
        self._fetcher = fetcher

    async def _install(self) -> None:
        url, archive = _artifact_source(self.descriptor)
        if not archive.is_file() or archive.stat().st_size == 0:
            await download_with_retry(self._fetcher, url, archive)
        await asyncio.to_thread(self._extract, archive)
        if self.executable.is_file():
            make_executable(self.executable)

    def _extract(self, archive_path: Path) -> None:
        d = self.descriptor
        # A previous partial run may already have unpacked it.
        if self.executable.is_file():
            return
        try:
            with tarfile.open(archive_path, "r:gz") as archive:
                archive.extractall(d.install_dir, filter="data")
        except (tarfile.TarError, OSError) as exc:
            raise OpenApiTaskFailedError(f"Failed to decompress {archive_path}: {exc}") from exc


class DotnetToolInstaller(ToolInstaller):
    """Tool installed through ``dotnet tool update`` (the OpenAPI generator)."""

    def __init__(
        self,
        descriptor: ToolDescriptor,
        runner: ProcessRunner,
        tools_dir: Path,
        *,
        dotnet: str = "dotnet",
        package: str = GENERATOR_PACKAGE,
    ) -> None:
        super().__init__(descriptor)
        self._runner = runner
        self._tools_dir = Path(tools_dir)
        self._dotnet = dotnet
        self._package = package

    @property
    def nuget_config(self) -> Path:
        return self._tools_dir / "nuget.config"

    def invocation(self) -> ProcessInvocation:
        d = self.descriptor
        return ProcessInvocation.of(
            self._dotnet,
            [
                "tool", "update", self._package,
                "--ignore-failed-sources",
                "--tool-path", d.install_dir,
                "--configfile", self.nuget_config,
                "--version", d.version,
            ],
        )

    async def _install(self) -> None:
        if not self.nuget_config.is_file():
            self._tools_dir.mkdir(parents=True, exist_ok=True)
            self.nuget_config.write_text(DEFAULT_NUGET_CONFIG, encoding="utf-8")

        invocation = self.invocation()

        def _log(attempt: int, result: ProcessResult | None, _exc: BaseException | None) -> None:
            if result is not None:
                _logger.info("%s", result.stdout)
                _logger.warning("%s", result.stderr)
            _logger.warning("%s install failed. Retrying once more...", self._package)

        try:
            await retry_async(
                lambda: self._runner.run(invocation),
                description=f"{self._package} install",
                is_failure=lambda r: not r.ok,
                on_retry=_log,
            )
        except RetriesExhaustedError as exc:
            last = exc.last_result
            detail = ""
            if isinstance(last, ProcessResult):
                detail = (last.stderr or last.stdout).strip()
            raise InstallationFailedError(self._package, detail) from exc


def ruleset_cache_path(tools_dir: Path, url: str) -> Path:
    key = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
    return Path(tools_dir) / "rulesets" / f"ruleset-{key}.yaml"


async def fetch_ruleset(fetcher: ArtifactFetcher, url: str, tools_dir: Path) -> Path:
    """Download a remote ruleset once per run into the tools directory.

    Downloading up front keeps network flakiness out of the linter run, and
    the local copy is what gets fingerprinted.
    """
    destination = ruleset_cache_path(tools_dir, url)
    _logger.info("Downloading ruleset %s", url)
    try:
        await download_with_retry(fetcher, url, destination)
    except RetriesExhaustedError as exc:
        raise OpenApiTaskFailedError(f"Failed to download ruleset {url}: {exc.__cause__}") from exc
    return destination
