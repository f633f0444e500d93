"""Error taxonomy for the validation pipeline.

Fatal errors (``ProcessStartError``, ``InstallationFailedError``,
``OpenApiTaskFailedError``) unwind to the orchestrator and end the run.
Everything else is caught at the component boundary that raised it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class OpenApiGateError(RuntimeError):
    """Base class for every error raised by ``openapi_gate``."""


class ConfigError(OpenApiGateError):
    """Raised when the gate configuration is missing or invalid."""


class ProcessStartError(OpenApiGateError):
    """Raised when an executable cannot be launched at all."""

    def __init__(self, executable: str, reason: str) -> None:
        self.executable = executable
        self.reason = reason
        super().__init__(f"Could not start {executable}: {reason}")


class ProcessCancelledError(OpenApiGateError):
    """Raised when a child process was terminated by timeout or cancellation.

    A cancelled process never produced an exit code the caller can
    interpret, so this is kept apart from a normal non-zero exit.
    """

    def __init__(self, executable: str, *, timed_out: bool, timeout: float | None = None) -> None:
        self.executable = executable
        self.timed_out = timed_out
        self.timeout = timeout
        if timed_out:
            detail = f"timed out after {timeout:g}s"
        else:
            detail = "cancelled"
        super().__init__(f"{executable} {detail}")


class DownloadError(OpenApiGateError):
    """Raised on network failure or a non-success HTTP status."""

    def __init__(self, url: str, reason: str, *, status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to download {url}: {reason}")


class RetriesExhaustedError(OpenApiGateError):
    """Raised by :func:`openapi_gate.core.retry.retry_async` after the last attempt.

    ``last_result`` holds the final rejected result (if the operation
    returned one) and ``__cause__`` the final exception (if it raised).
    """

    def __init__(self, description: str, attempts: int, last_result: Any = None) -> None:
        self.description = description
        self.attempts = attempts
        self.last_result = last_result
        super().__init__(f"{description} failed after {attempts} attempt(s)")


class InstallationFailedError(OpenApiGateError):
    """Raised when a tool could not be installed; not recoverable locally."""

    def __init__(self, tool: str, detail: str = "") -> None:
        self.tool = tool
        message = f"{tool} could not be installed."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class OpenApiTaskFailedError(OpenApiGateError):
    """Raised when a required artifact (spec, report) was never produced.

    ``path`` names the input the failure belongs to, when there is one.
    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)
