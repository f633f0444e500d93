"""openapi_gate — build-time OpenAPI generation, lint and breaking-change gate."""

__all__ = [
    "__version__",
    "GateConfig",
    "Mode",
    "load_config",
    "Orchestrator",
    "ValidationOutcome",
]
__version__ = "0.1.0"

from openapi_gate.core.config import GateConfig, Mode, load_config  # noqa: E402
from openapi_gate.pipeline import Orchestrator, ValidationOutcome  # noqa: E402
