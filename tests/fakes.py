"""In-memory stand-ins for external processes and downloads."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Union

import yaml

from openapi_gate.core.process import ProcessInvocation, ProcessResult
from openapi_gate.errors import DownloadError

Response = Union[ProcessResult, BaseException, Callable[[ProcessInvocation], ProcessResult]]


def ok(stdout: str = "", stderr: str = "") -> ProcessResult:
    return ProcessResult(0, stdout, stderr)


def failed(code: int = 1, stdout: str = "", stderr: str = "") -> ProcessResult:
    return ProcessResult(code, stdout, stderr)


class FakeRunner:
    """Records invocations and answers from per-tool scripts.

    Scripts are keyed by the executable's file name (``swagger``,
    ``spectral-linux-x64``, ``oasdiff``, ``dotnet``).  The last response of
    a script repeats once the others are used up.
    """

    def __init__(self, scripts: dict[str, Iterable[Response]] | None = None) -> None:
        self.calls: list[ProcessInvocation] = []
        self._scripts: dict[str, list[Response]] = {
            k: list(v) for k, v in (scripts or {}).items()
        }

    def on(self, tool: str, *responses: Response) -> "FakeRunner":
        self._scripts[tool] = list(responses)
        return self

    def calls_to(self, tool: str) -> list[ProcessInvocation]:
        return [c for c in self.calls if Path(c.executable).name == tool]

    async def run(self, invocation: ProcessInvocation) -> ProcessResult:
        self.calls.append(invocation)
        tool = Path(invocation.executable).name
        script = self._scripts.get(tool)
        if not script:
            raise AssertionError(f"unexpected invocation of {tool}: {invocation.describe()}")
        response = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(invocation)
        return response


def arg_after(invocation: ProcessInvocation, flag: str) -> str:
    args = list(invocation.args)
    return args[args.index(flag) + 1]


class FakeFetcher:
    """Writes canned bytes instead of downloading; may fail the first N calls."""

    def __init__(self, payload: bytes = b"binary", *, failures: int = 0) -> None:
        self.payload = payload
        self.failures = failures
        self.urls: list[str] = []

    async def download(self, url: str, destination: Path) -> None:
        self.urls.append(url)
        if self.failures > 0:
            self.failures -= 1
            raise DownloadError(url, "HTTP 503", status_code=503)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(self.payload)


def fake_oasdiff(invocation: ProcessInvocation) -> ProcessResult:
    """Tiny stand-in for ``oasdiff diff --fail-on-diff``.

    Removed paths and removed 200-response properties are breaking;
    additions are not.
    """
    base_path, gen_path = invocation.args[1], invocation.args[2]
    base = yaml.safe_load(Path(base_path).read_text(encoding="utf-8"))
    gen = yaml.safe_load(Path(gen_path).read_text(encoding="utf-8"))
    findings = []
    for path, ops in (base.get("paths") or {}).items():
        if path not in (gen.get("paths") or {}):
            findings.append(f"removed path {path}")
            continue
        for method, op in ops.items():
            before = _response_properties(op)
            after = _response_properties(gen["paths"][path].get(method, {}))
            findings.extend(f"removed property {p}" for p in before if p not in after)
    if findings:
        return ProcessResult(1, "\n".join(findings) + "\n", "")
    return ProcessResult(0, "", "")


def _response_properties(operation: dict) -> dict:
    try:
        content = operation["responses"]["200"]["content"]["application/json"]
        return content["schema"].get("properties", {})
    except KeyError:
        return {}
