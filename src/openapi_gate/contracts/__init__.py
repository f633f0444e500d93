"""Bundled JSON schemas for persisted state, configuration and outcomes."""

from openapi_gate.contracts.load import load_schema, validate_file, validate_instance

__all__ = ["load_schema", "validate_file", "validate_instance"]
