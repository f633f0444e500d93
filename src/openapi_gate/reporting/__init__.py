"""Human-facing output: CI log groups, diff rendering and the final summary."""

from openapi_gate.reporting.console import format_diff_output, log_group

__all__ = ["format_diff_output", "log_group"]
