"""Pipeline orchestration and its aggregated outcome."""

from openapi_gate.pipeline.orchestrator import Orchestrator
from openapi_gate.pipeline.outcome import DocumentOutcome, ValidationOutcome

__all__ = ["DocumentOutcome", "Orchestrator", "ValidationOutcome"]
