"""Subprocess executor — runs external tools and captures their output.

A non-zero exit code is a normal outcome returned to the caller.  Only a
launch failure (``ProcessStartError``) or a timeout (``ProcessCancelledError``)
is raised.  External cancellation of the awaiting task kills the child and
re-raises ``asyncio.CancelledError``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from openapi_gate.errors import ProcessCancelledError, ProcessStartError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessInvocation:
    """One subprocess call.  Built per call, never reused."""

    executable: str
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None

    @classmethod
    def of(
        cls,
        executable: str | Path,
        args: Sequence[str | Path] = (),
        *,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> "ProcessInvocation":
        return cls(
            executable=str(executable),
            args=tuple(str(a) for a in args),
            env=dict(env or {}),
            timeout=timeout,
        )

    def describe(self) -> str:
        return " ".join((self.executable, *self.args))


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ProcessRunner(Protocol):
    """Anything that can execute a :class:`ProcessInvocation`."""

    async def run(self, invocation: ProcessInvocation) -> ProcessResult: ...


class ProcessExecutor:
    """Default :class:`ProcessRunner` backed by ``asyncio`` subprocesses."""

    def __init__(self, *, kill_grace: float = 5.0) -> None:
        self._kill_grace = kill_grace

    async def run(self, invocation: ProcessInvocation) -> ProcessResult:
        env = None
        if invocation.env:
            env = {**os.environ, **invocation.env}

        _logger.debug("Running %s", invocation.describe())
        try:
            proc = await asyncio.create_subprocess_exec(
                invocation.executable,
                *invocation.args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            raise ProcessStartError(invocation.executable, exc.strerror or str(exc)) from exc
        except OSError as exc:
            raise ProcessStartError(invocation.executable, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=invocation.timeout
            )
        except asyncio.TimeoutError:
            await self._terminate(proc)
            raise ProcessCancelledError(
                invocation.executable, timed_out=True, timeout=invocation.timeout
            ) from None
        except asyncio.CancelledError:
            await self._terminate(proc)
            raise

        return ProcessResult(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._kill_grace)
        except asyncio.TimeoutError:
            _logger.warning("Process %s did not exit after kill", proc.pid)
