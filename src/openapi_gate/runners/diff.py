"""Diff runner — compares baseline specifications with generated ones.

Files are paired by base name.  Exit code 0 means no breaking changes; any
other exit code means breaking changes.  Output on stderr is a tool-level
error: the file is logged and counted as neither pass nor fail.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from openapi_gate.core.process import ProcessInvocation, ProcessRunner
from openapi_gate.reporting.console import format_diff_output, log_group

_logger = logging.getLogger(__name__)

# Cosmetic text never counts as a breaking change.
EXCLUDED_ELEMENTS = ("description", "examples", "title", "summary")


class DiffStatus(str, enum.Enum):
    NO_CHANGES = "no_changes"
    BREAKING = "breaking"
    TOOL_ERROR = "tool_error"
    MISSING_GENERATED = "missing_generated"


@dataclass(frozen=True)
class DiffResult:
    file_name: str
    baseline: Path
    status: DiffStatus
    generated: Path | None = None
    report_path: Path | None = None
    details: str = ""


@dataclass
class DiffReport:
    results: list[DiffResult] = field(default_factory=list)

    @property
    def compared(self) -> int:
        return sum(
            1 for r in self.results if r.status in (DiffStatus.NO_CHANGES, DiffStatus.BREAKING)
        )

    @property
    def any_breaking(self) -> bool:
        return any(r.status is DiffStatus.BREAKING for r in self.results)

    @property
    def in_sync(self) -> bool:
        return self.compared > 0 and not self.any_breaking


class DiffRunner:
    def __init__(
        self,
        runner: ProcessRunner,
        executable: Path,
        reports_dir: Path,
        *,
        github_actions: bool = False,
    ) -> None:
        self._runner = runner
        self._executable = Path(executable)
        self._reports_dir = Path(reports_dir)
        self._github_actions = github_actions

    def report_path(self, baseline: Path) -> Path:
        return self._reports_dir / f"oasdiff-{Path(baseline).stem}.yaml"

    def invocation(self, baseline: Path, generated: Path) -> ProcessInvocation:
        return ProcessInvocation.of(
            self._executable,
            [
                "diff", baseline, generated,
                "--exclude-elements", ",".join(EXCLUDED_ELEMENTS),
                "--fail-on-diff",
                "--format", "yaml",
            ],
        )

    async def compare(self, baselines: Sequence[Path], generated: Sequence[Path]) -> DiffReport:
        by_name = {Path(p).name: Path(p) for p in generated}
        report = DiffReport()

        for baseline in (Path(b) for b in baselines):
            file_name = baseline.name
            _logger.info("OasDiff: comparing specifications for %s...", file_name)

            counterpart = by_name.get(file_name)
            if counterpart is None:
                _logger.warning("Could not find a generated spec file for %s.", file_name)
                report.results.append(
                    DiffResult(file_name, baseline, DiffStatus.MISSING_GENERATED)
                )
                continue

            with log_group(
                f"OasDiff comparison details for {file_name}", enabled=self._github_actions
            ):
                report.results.append(await self.compare_one(baseline, counterpart))

        if report.in_sync:
            _logger.info("All OpenAPI specifications are in sync with your code!")
        return report

    async def compare_one(self, baseline: Path, generated: Path) -> DiffResult:
        file_name = baseline.name
        _logger.info("Specification file: %s", baseline)
        _logger.info("Generated from code: %s", generated)

        result = await self._runner.run(self.invocation(baseline, generated))

        if result.stderr.strip():
            _logger.warning("OasDiff error for %s: %s", file_name, result.stderr.strip())
            return DiffResult(
                file_name, baseline, DiffStatus.TOOL_ERROR, generated, details=result.stderr
            )

        report = self.report_path(baseline)
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(result.stdout, encoding="utf-8")

        if not result.ok:
            _logger.warning(
                "Breaking changes detected in %s. Your web API does not respect the "
                "provided OpenAPI specification. Report: %s",
                file_name,
                report,
            )
            details = format_diff_output(result.stdout)
            _logger.info("%s", details)
            return DiffResult(file_name, baseline, DiffStatus.BREAKING, generated, report, details)

        _logger.info("No breaking changes detected in %s.", file_name)
        return DiffResult(file_name, baseline, DiffStatus.NO_CHANGES, generated, report)
