"""ValidationOutcome — the aggregated, schema-aligned result of one run."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from openapi_gate.contracts.load import validate_instance
from openapi_gate.core.config import Mode
from openapi_gate.runners.diff import DiffResult, DiffStatus
from openapi_gate.runners.lint import LintResult
from openapi_gate.utils.exit_codes import ExitCode
from openapi_gate.utils.json_norm import stable_json_dumps

OUTCOME_SCHEMA = "validation_outcome.schema.json"
OUTCOME_FILE_NAME = "openapi-gate-outcome.json"

LINT_NOT_RUN = "not_run"
LINT_FAILED = "failed"
DIFF_NOT_RUN = "not_run"

_LINT_ADVISORY = {"violations", "skipped_violations"}


@dataclass
class DocumentOutcome:
    name: str
    spec_path: Path | None = None
    lint: str = LINT_NOT_RUN
    lint_report: Path | None = None
    diff: str = DIFF_NOT_RUN
    diff_report: Path | None = None

    @property
    def has_lint_violations(self) -> bool:
        return self.lint in _LINT_ADVISORY

    @property
    def has_breaking_changes(self) -> bool:
        return self.diff == DiffStatus.BREAKING.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "spec_path": self.spec_path.as_posix() if self.spec_path else None,
            "lint": self.lint,
            "lint_report": self.lint_report.as_posix() if self.lint_report else None,
            "diff": self.diff,
            "diff_report": self.diff_report.as_posix() if self.diff_report else None,
        }


@dataclass
class ValidationOutcome:
    """Built up by the orchestrator; terminal value handed to the caller.

    Advisory findings (lint violations, breaking changes) only fail the run
    when ``strict`` is set.  A fatal error always fails it.
    """

    mode: Mode
    strict: bool = False
    documents: dict[str, DocumentOutcome] = field(default_factory=dict)
    fatal_error: str | None = None
    diagnostics: list[str] = field(default_factory=list)

    def document(self, name: str) -> DocumentOutcome:
        if name not in self.documents:
            self.documents[name] = DocumentOutcome(name)
        return self.documents[name]

    def record_lint(self, name: str, result: LintResult) -> None:
        doc = self.document(name)
        doc.spec_path = result.document
        doc.lint = result.status.value
        doc.lint_report = result.report_path

    def record_diff(self, name: str, result: DiffResult) -> None:
        doc = self.document(name)
        doc.diff = result.status.value
        doc.diff_report = result.report_path
        if result.status is DiffStatus.TOOL_ERROR:
            self.diagnostics.append(f"Diff tool error for {result.file_name}: {result.details.strip()}")
        elif result.status is DiffStatus.MISSING_GENERATED:
            self.diagnostics.append(f"No generated specification found for {result.file_name}")

    def fail(self, message: str) -> None:
        self.fatal_error = message
        self.diagnostics.append(message)

    @property
    def has_advisories(self) -> bool:
        return any(
            d.has_lint_violations or d.has_breaking_changes for d in self.documents.values()
        )

    @property
    def passed(self) -> bool:
        if self.fatal_error is not None:
            return False
        return not (self.strict and self.has_advisories)

    @property
    def exit_code(self) -> ExitCode:
        if self.fatal_error is not None:
            return ExitCode.ERROR
        if not self.passed:
            return ExitCode.VIOLATION
        return ExitCode.SUCCESS

    def attention(self) -> list[str]:
        """One line per artifact the user has to look at."""
        lines: list[str] = []
        for doc in self.documents.values():
            if doc.has_breaking_changes:
                lines.append(
                    f"Breaking changes detected in {doc.name}, see report at {doc.diff_report}"
                )
            if doc.has_lint_violations:
                lines.append(f"Lint violations in {doc.name}, see report at {doc.lint_report}")
            if doc.lint == LINT_FAILED:
                lines.append(f"Lint could not complete for {doc.name}")
        if self.fatal_error is not None:
            lines.append(self.fatal_error)
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": "validation_outcome_v1",
            "mode": self.mode.value,
            "passed": self.passed,
            "strict": self.strict,
            "fatal_error": self.fatal_error,
            "documents": [d.to_dict() for d in self.documents.values()],
            "diagnostics": list(self.diagnostics),
        }


def write_outcome(outcome: ValidationOutcome, reports_dir: Path) -> Path:
    data = outcome.to_dict()
    validate_instance(data, OUTCOME_SCHEMA)
    reports_dir = Path(reports_dir)
    reports_dir.mkdir(parents=True, exist_ok=True)
    path = reports_dir / OUTCOME_FILE_NAME
    path.write_text(stable_json_dumps(data), encoding="utf-8")
    return path
