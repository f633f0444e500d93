"""Final summary table rendered with rich."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from openapi_gate.pipeline.outcome import ValidationOutcome

_STYLES = {
    "passed": "green",
    "no_changes": "green",
    "skipped_clean": "green",
    "violations": "yellow",
    "skipped_violations": "yellow",
    "breaking": "red",
    "failed": "red",
    "tool_error": "magenta",
    "missing_generated": "magenta",
}


def _cell(value: str) -> str:
    style = _STYLES.get(value)
    return f"[{style}]{value}[/{style}]" if style else value


def build_summary_table(outcome: ValidationOutcome) -> Table:
    table = Table(title=f"OpenAPI validation ({outcome.mode.value})")
    table.add_column("Document")
    table.add_column("Specification")
    table.add_column("Lint")
    table.add_column("Diff")
    for doc in outcome.documents.values():
        table.add_row(
            doc.name,
            str(doc.spec_path) if doc.spec_path else "-",
            _cell(doc.lint),
            _cell(doc.diff),
        )
    return table


def print_summary(outcome: ValidationOutcome, console: Console | None = None) -> None:
    console = console or Console()
    console.print(build_summary_table(outcome))
    for line in outcome.attention():
        console.print(f"[yellow]![/yellow] {line}", highlight=False)
    if outcome.passed:
        console.print("[green]OpenAPI validation passed.[/green]")
    else:
        console.print("[red]OpenAPI validation failed.[/red]")
