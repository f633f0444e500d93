"""Lint runner — validates documents against the ruleset, gated by checksum."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from openapi_gate.core.checksum import ChecksumCalculator
from openapi_gate.core.process import ProcessInvocation, ProcessRunner
from openapi_gate.errors import OpenApiTaskFailedError
from openapi_gate.reporting.console import log_group

_logger = logging.getLogger(__name__)

# "0 problems (0 errors, 0 warnings, 0 infos, 0 hints)"
SUMMARY_PATTERN = re.compile(
    r"[0-9]+ problems? \((?P<errors>[0-9]+) errors?, (?P<warnings>[0-9]+) warnings?, "
    r"[0-9]+ infos?, [0-9]+ hints?\)"
)


class LintStatus(str, enum.Enum):
    PASSED = "passed"
    VIOLATIONS = "violations"
    SKIPPED_CLEAN = "skipped_clean"
    SKIPPED_VIOLATIONS = "skipped_violations"


@dataclass(frozen=True)
class LintResult:
    document: Path
    report_path: Path
    status: LintStatus
    summary: str | None = None


def lint_report_path(reports_dir: Path, document: Path) -> Path:
    return Path(reports_dir) / f"spectral-{Path(document).stem}.txt"


def find_summary(report_text: str) -> tuple[str, int, int] | None:
    """Return ``(line, errors, warnings)`` for the first summary line found."""
    for line in report_text.splitlines():
        match = SUMMARY_PATTERN.search(line)
        if match:
            return line.strip(), int(match["errors"]), int(match["warnings"])
    return None


class LintRunner:
    def __init__(
        self,
        runner: ProcessRunner,
        executable: Path,
        checksum: ChecksumCalculator,
        reports_dir: Path,
        *,
        github_actions: bool = False,
    ) -> None:
        self._runner = runner
        self._executable = Path(executable)
        self._checksum = checksum
        self._reports_dir = Path(reports_dir)
        self._github_actions = github_actions

    def report_path(self, document: Path) -> Path:
        return lint_report_path(self._reports_dir, document)

    def invocation(self, document: Path, ruleset_path: Path, report: Path) -> ProcessInvocation:
        return ProcessInvocation.of(
            self._executable,
            [
                "lint", document,
                "--ruleset", ruleset_path,
                "--format", "pretty",
                "--format", "stylish",
                "--output.stylish", report,
                "--fail-severity=warn",
                "--verbose",
            ],
        )

    async def lint(
        self,
        documents: Sequence[Path],
        *,
        ruleset_identity: str,
        ruleset_path: Path,
    ) -> list[LintResult]:
        """Lint *documents* in order, or replay previous reports if nothing changed.

        The checksum is persisted only after every document has been linted.
        """
        documents = [Path(d) for d in documents]
        for doc in documents:
            if not doc.is_file():
                raise OpenApiTaskFailedError(f"OpenAPI document {doc} does not exist.", path=doc)
        if not Path(ruleset_path).is_file():
            raise OpenApiTaskFailedError(f"Ruleset {ruleset_path} does not exist.")

        reports = [self.report_path(d) for d in documents]
        decision = self._checksum.decide(ruleset_identity, Path(ruleset_path), documents, reports)

        with log_group("Spectral: validating OpenAPI documents", enabled=self._github_actions):
            if not decision.must_run:
                _logger.info("Spectral validation skipped (no changes detected)")
                return [self._replay(doc) for doc in documents]

            _logger.debug("Running Spectral: %s", decision.reason)
            self._reports_dir.mkdir(parents=True, exist_ok=True)
            results = []
            for doc in documents:
                with log_group(f"Validating {doc.stem}", enabled=self._github_actions):
                    results.append(await self.lint_one(doc, Path(ruleset_path)))

            self._checksum.save(ruleset_identity, decision.checksum, documents)
        return results

    async def lint_one(self, document: Path, ruleset_path: Path) -> LintResult:
        report = self.report_path(document)
        _logger.info("  Document: %s", document)
        _logger.info("  Ruleset: %s", ruleset_path)
        report.unlink(missing_ok=True)

        result = await self._runner.run(self.invocation(document, ruleset_path, report))

        if not result.ok and result.stdout:
            _logger.info("%s", result.stdout)
        if result.stderr:
            _logger.warning("%s", result.stderr)

        if not report.is_file():
            raise OpenApiTaskFailedError(
                f"Spectral report for {document} could not be created. "
                "Please check the console output above for more details.",
                path=document,
            )

        summary = find_summary(report.read_text(encoding="utf-8", errors="replace"))
        if not result.ok:
            _logger.warning("Spectral detected violations. Report: %s", report)
            status = LintStatus.VIOLATIONS
        else:
            _logger.info("  Validation passed. Report: %s", report)
            status = LintStatus.PASSED
        return LintResult(document, report, status, summary[0] if summary else None)

    def _replay(self, document: Path) -> LintResult:
        report = self.report_path(document)
        _logger.info("Previous report: %s", report)
        status = LintStatus.SKIPPED_CLEAN
        summary_line = None
        for line in report.read_text(encoding="utf-8", errors="replace").splitlines():
            match = SUMMARY_PATTERN.search(line)
            if match is None:
                _logger.info("%s", line)
                continue
            summary_line = line.strip()
            if int(match["errors"]) > 0 or int(match["warnings"]) > 0:
                _logger.warning("Spectral errors from previous run: %s", summary_line)
                status = LintStatus.SKIPPED_VIOLATIONS
            else:
                _logger.info("%s", line)
        return LintResult(document, report, status, summary_line)
