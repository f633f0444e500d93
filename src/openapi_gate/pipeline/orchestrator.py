"""Orchestrator — install → (generate | use baselines) → lint → diff → report.

Generate-first lints the specifications extracted from the compiled
service and then diffs them against the committed baselines.
Validate-first lints the baselines directly and, when comparison is
enabled, generates specifications afterwards to diff against them.

Fatal errors stop the run and land in ``ValidationOutcome.fatal_error``.
Lint violations and breaking changes are advisory until the end, where
``treat_warnings_as_errors`` decides whether they fail the run.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from openapi_gate.core.checksum import ChecksumCalculator
from openapi_gate.core.config import GateConfig, Mode
from openapi_gate.core.documents import DocumentSet
from openapi_gate.core.fetch import ArtifactFetcher
from openapi_gate.core.platform_info import HostPlatform, detect_platform
from openapi_gate.core.process import ProcessExecutor, ProcessRunner
from openapi_gate.errors import ConfigError, OpenApiGateError, OpenApiTaskFailedError
from openapi_gate.pipeline.outcome import LINT_FAILED, ValidationOutcome, write_outcome
from openapi_gate.runners.diff import DiffRunner
from openapi_gate.runners.generator import GeneratorRunner
from openapi_gate.runners.lint import LintRunner
from openapi_gate.tools.descriptor import (
    diff_descriptor,
    generator_descriptor,
    linter_descriptor,
)
from openapi_gate.tools.installers import (
    ArchiveInstaller,
    BinaryDownloadInstaller,
    DotnetToolInstaller,
    ToolInstaller,
    fetch_ruleset,
)

_logger = logging.getLogger(__name__)


class Orchestrator:
    """Owns one run: its tool descriptors, document sets and outcome."""

    def __init__(
        self,
        config: GateConfig,
        *,
        runner: ProcessRunner | None = None,
        fetcher: ArtifactFetcher | None = None,
        host: HostPlatform | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or ProcessExecutor()
        self.fetcher = fetcher or ArtifactFetcher()
        self.host = host or detect_platform()

        versions = config.versions
        self.linter_installer = BinaryDownloadInstaller(
            linter_descriptor(config.tools_dir, versions.linter, self.host), self.fetcher
        )
        self.diff_installer = ArchiveInstaller(
            diff_descriptor(config.tools_dir, versions.diff, self.host), self.fetcher
        )
        self.generator_installer = DotnetToolInstaller(
            generator_descriptor(config.tools_dir, versions.generator, self.host),
            self.runner,
            config.tools_dir,
        )
        self.checksum = ChecksumCalculator(config.reports_dir)

    # ── planning ────────────────────────────────────────────────────

    @property
    def needs_generation(self) -> bool:
        return self.config.mode is Mode.GENERATE_FIRST or self.needs_diff

    @property
    def needs_diff(self) -> bool:
        return self.config.compare and len(self.config.baseline_set()) > 0

    def _installers(self) -> list[ToolInstaller]:
        installers: list[ToolInstaller] = [self.linter_installer]
        if self.needs_generation:
            installers.append(self.generator_installer)
        if self.needs_diff:
            installers.append(self.diff_installer)
        return installers

    # ── steps ───────────────────────────────────────────────────────

    async def install_tools(self) -> Path:
        """Install every tool this run needs; returns the local ruleset path."""
        # Installers own distinct directories, so they can run side by side.
        async with asyncio.TaskGroup() as tg:
            for installer in self._installers():
                tg.create_task(installer.ensure_installed())
            ruleset_task = tg.create_task(self._resolve_ruleset())
        return ruleset_task.result()

    async def _resolve_ruleset(self) -> Path:
        if self.config.ruleset_is_remote:
            return await fetch_ruleset(self.fetcher, self.config.ruleset, self.config.tools_dir)
        path = Path(self.config.ruleset)
        if not path.is_file():
            raise OpenApiTaskFailedError(f"Ruleset {path} does not exist.", path=path)
        return path

    async def generate(self, outcome: ValidationOutcome) -> DocumentSet:
        if self.config.assembly_path is None:
            raise ConfigError("assembly_path is required to generate OpenAPI specifications")
        generator = GeneratorRunner(
            self.runner,
            self.generator_installer.executable,
            self.config.assembly_path,
            timeout=self.config.generator_timeout,
        )
        generated = await generator.generate(self.config.generated_set())
        if self.config.mode is Mode.GENERATE_FIRST:
            for name, path in generated.items():
                outcome.document(name).spec_path = path
        return generated

    async def lint(self, documents: DocumentSet, ruleset_path: Path, outcome: ValidationOutcome) -> None:
        linter = LintRunner(
            self.runner,
            self.linter_installer.executable,
            self.checksum,
            self.config.reports_dir,
            github_actions=self.config.github_actions,
        )
        names_by_path = {path: name for name, path in documents.items()}
        try:
            results = await linter.lint(
                documents.paths,
                ruleset_identity=self.config.ruleset,
                ruleset_path=ruleset_path,
            )
        except OpenApiTaskFailedError as exc:
            if exc.path in names_by_path:
                outcome.document(names_by_path[exc.path]).lint = LINT_FAILED
            raise
        for result in results:
            outcome.record_lint(names_by_path[result.document], result)

    async def diff(self, baselines: DocumentSet, generated: DocumentSet, outcome: ValidationOutcome) -> None:
        differ = DiffRunner(
            self.runner,
            self.diff_installer.executable,
            self.config.reports_dir,
            github_actions=self.config.github_actions,
        )
        report = await differ.compare(baselines.paths, generated.paths)
        names_by_path = {path: name for name, path in baselines.items()}
        for result in report.results:
            outcome.record_diff(names_by_path[result.baseline], result)

    # ── entry point ─────────────────────────────────────────────────

    async def run(self) -> ValidationOutcome:
        config = self.config
        outcome = ValidationOutcome(mode=config.mode, strict=config.treat_warnings_as_errors)
        for name in config.documents:
            outcome.document(name)

        try:
            await self._run(outcome)
        except BaseExceptionGroup as group:
            fatal = _first_gate_error(group)
            if fatal is None:
                raise
            _logger.error("%s", fatal)
            outcome.fail(str(fatal))
        except OpenApiGateError as exc:
            _logger.error("%s", exc)
            outcome.fail(str(exc))
        except OSError as exc:
            _logger.error("File system error: %s", exc)
            outcome.fail(f"File system error: {exc}")

        self._report(outcome)
        return outcome

    async def _run(self, outcome: ValidationOutcome) -> None:
        config = self.config
        ruleset_path = await self.install_tools()
        baselines = config.baseline_set()

        if config.mode is Mode.GENERATE_FIRST:
            generated = await self.generate(outcome)
            await self.lint(generated, ruleset_path, outcome)
            if self.needs_diff:
                await self.diff(baselines, generated, outcome)
            return

        if not baselines:
            raise ConfigError("validate-first mode requires at least one baseline specification")
        await self.lint(baselines, ruleset_path, outcome)
        if self.needs_diff:
            generated = await self.generate(outcome)
            await self.diff(baselines, generated, outcome)

    def _report(self, outcome: ValidationOutcome) -> None:
        for line in outcome.attention():
            _logger.warning("%s", line)
        if outcome.passed:
            if outcome.has_advisories:
                _logger.info("OpenAPI validation passed with warnings.")
            else:
                _logger.info("OpenAPI validation passed.")
        else:
            _logger.error("OpenAPI validation failed.")
        try:
            path = write_outcome(outcome, self.config.reports_dir)
        except OSError as exc:
            _logger.warning("Could not write validation outcome: %s", exc)
        else:
            _logger.debug("Validation outcome written to %s", path)


def _first_gate_error(group: BaseExceptionGroup) -> Exception | None:
    for exc in group.exceptions:
        if isinstance(exc, BaseExceptionGroup):
            found = _first_gate_error(exc)
            if found is not None:
                return found
        elif isinstance(exc, (OpenApiGateError, OSError)):
            return exc
    return None
