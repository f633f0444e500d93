"""Specification generator runner.

One generator process per logical document, all started concurrently.
Each invocation gets its own timeout because the generator boots the
whole service and can hang on startup.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from openapi_gate.core.documents import DocumentSet
from openapi_gate.core.process import ProcessInvocation, ProcessResult, ProcessRunner
from openapi_gate.core.retry import MAX_ATTEMPTS, retry_async
from openapi_gate.errors import (
    OpenApiTaskFailedError,
    ProcessCancelledError,
    RetriesExhaustedError,
)

_logger = logging.getLogger(__name__)

DO_NOT_EDIT_COMMENT = "# DO NOT EDIT. This is a generated file\n"
GENERATOR_ENV = {"DOTNET_ROLL_FORWARD": "LatestMajor"}


def prepend_comment(path: Path, comment: str = DO_NOT_EDIT_COMMENT) -> bool:
    """Prepend *comment* to *path*.  Failure is logged, never raised."""
    try:
        content = path.read_text(encoding="utf-8")
        path.write_text(comment + content, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _logger.warning("Failed to add comment to generated spec %s: %s", path, exc)
        return False
    return True


class GeneratorRunner:
    def __init__(
        self,
        runner: ProcessRunner,
        executable: Path,
        assembly_path: Path,
        *,
        timeout: float = 60.0,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> None:
        self._runner = runner
        self._executable = Path(executable)
        self._assembly_path = Path(assembly_path)
        self._timeout = timeout
        self._max_attempts = max_attempts

    def invocation(self, name: str, output: Path) -> ProcessInvocation:
        return ProcessInvocation.of(
            self._executable,
            ["tofile", "--output", output, "--yaml", self._assembly_path, name],
            env=GENERATOR_ENV,
            timeout=self._timeout,
        )

    async def generate(self, documents: DocumentSet) -> DocumentSet:
        """Generate every document concurrently; returns name → written path.

        The first fatal failure cancels the remaining generator processes.
        """
        tasks: dict[str, asyncio.Task[Path]] = {}
        try:
            async with asyncio.TaskGroup() as tg:
                for name, output in documents.items():
                    tasks[name] = tg.create_task(self.generate_one(name, output))
        except BaseExceptionGroup as group:
            raise _first_leaf(group) from None
        return DocumentSet((name, task.result()) for name, task in tasks.items())

    async def generate_one(self, name: str, output: Path) -> Path:
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        invocation = self.invocation(name, output)
        _logger.info("Generating OpenAPI document '%s' → %s", name, output)

        def _log(attempt: int, result: ProcessResult | None, exc: BaseException | None) -> None:
            if result is not None:
                _logger.info("%s", result.stdout)
                _logger.warning("%s", result.stderr)
            elif exc is not None:
                _logger.warning("%s", exc)
            _logger.warning("OpenAPI spec generation failed for %s. Retrying again...", output)

        try:
            await retry_async(
                lambda: self._runner.run(invocation),
                description=f"OpenAPI generation for '{name}'",
                max_attempts=self._max_attempts,
                is_failure=lambda r: not r.ok,
                retry_on=(ProcessCancelledError,),
                on_retry=_log,
            )
        except RetriesExhaustedError as exc:
            last = exc.last_result
            if isinstance(last, ProcessResult):
                _logger.info("%s", last.stdout)
                _logger.warning("%s", last.stderr)
            raise OpenApiTaskFailedError(
                f"OpenAPI file {output} could not be generated after {exc.attempts} attempts.",
                path=output,
            ) from exc

        if not output.is_file():
            raise OpenApiTaskFailedError(
                f"Generator reported success but {output} was not written.",
                path=output,
            )

        prepend_comment(output)
        return output


def _first_leaf(group: BaseExceptionGroup) -> BaseException:
    exc: BaseException = group
    while isinstance(exc, BaseExceptionGroup):
        exc = exc.exceptions[0]
    return exc
