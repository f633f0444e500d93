"""Checksum calculator — decides whether lint must re-run.

The fingerprint covers the ruleset bytes followed by every document's bytes
in document-set order.  It is persisted per ruleset identity, and only
after the caller reports a successful run, so an interrupted run leaves the
previous fingerprint in place and forces a re-run next time.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import jsonschema

from openapi_gate.contracts.load import validate_instance
from openapi_gate.utils.json_norm import stable_json_dumps

_logger = logging.getLogger(__name__)

STATE_SCHEMA = "checksum_state.schema.json"
STATE_SCHEMA_VERSION = "checksum_state_v1"

_CHUNK = 1024 * 1024


@dataclass(frozen=True)
class ChecksumDecision:
    must_run: bool
    checksum: str
    reason: str


def _feed_file(digest: "hashlib._Hash", path: Path) -> None:
    # Length prefix keeps ("ab", "c") and ("a", "bc") apart.
    digest.update(path.stat().st_size.to_bytes(8, "big"))
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK), b""):
            digest.update(chunk)


def compute_checksum(ruleset_path: Path, documents: Sequence[Path]) -> str:
    """SHA-256 over the ruleset and *documents* in the given order."""
    digest = hashlib.sha256()
    _feed_file(digest, Path(ruleset_path))
    for doc in documents:
        _feed_file(digest, Path(doc))
    return digest.hexdigest()


class ChecksumCalculator:
    """Persists and compares lint fingerprints under *state_dir*."""

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = Path(state_dir)

    def state_path(self, ruleset_identity: str) -> Path:
        key = hashlib.sha256(ruleset_identity.encode("utf-8")).hexdigest()[:16]
        return self.state_dir / f"spectral-checksum-{key}.json"

    def load(self, ruleset_identity: str) -> str | None:
        """Return the persisted checksum, or ``None`` when absent or unreadable."""
        path = self.state_path(ruleset_identity)
        if not path.is_file():
            return None
        try:
            state = json.loads(path.read_text(encoding="utf-8"))
            validate_instance(state, STATE_SCHEMA)
        except (OSError, ValueError, jsonschema.ValidationError) as exc:
            _logger.debug("Ignoring unreadable checksum state %s: %s", path, exc)
            return None
        if state["ruleset"] != ruleset_identity:
            return None
        return state["checksum"]

    def decide(
        self,
        ruleset_identity: str,
        ruleset_path: Path,
        documents: Sequence[Path],
        expected_reports: Iterable[Path] = (),
    ) -> ChecksumDecision:
        current = compute_checksum(ruleset_path, documents)
        previous = self.load(ruleset_identity)

        if previous is None:
            return ChecksumDecision(True, current, "no previous checksum")
        if previous != current:
            return ChecksumDecision(True, current, "ruleset or documents changed")
        missing = [p for p in expected_reports if not Path(p).is_file()]
        if missing:
            return ChecksumDecision(True, current, f"missing report {missing[0]}")
        return ChecksumDecision(False, current, "unchanged")

    def save(self, ruleset_identity: str, checksum: str, documents: Sequence[Path]) -> Path:
        state = {
            "schema_version": STATE_SCHEMA_VERSION,
            "ruleset": ruleset_identity,
            "checksum": checksum,
            "documents": [Path(d).as_posix() for d in documents],
        }
        validate_instance(state, STATE_SCHEMA)
        path = self.state_path(ruleset_identity)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(stable_json_dumps(state), encoding="utf-8")
        tmp.replace(path)
        return path
