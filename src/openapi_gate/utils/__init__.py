"""Shared utilities for openapi_gate."""

from openapi_gate.utils.exit_codes import ExitCode
from openapi_gate.utils.json_norm import stable_json_dump, stable_json_dumps

__all__ = [
    "ExitCode",
    "stable_json_dump",
    "stable_json_dumps",
]
