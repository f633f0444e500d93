"""Tool version constants and generator version detection."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

_logger = logging.getLogger(__name__)

DEFAULT_GENERATOR_VERSION = "9.0.4"
LINTER_VERSION = "6.15.0"
# Stay on 1.x; 2.x is an older line with incompatible flags.
DIFF_VERSION = "1.11.7"

GENERATOR_PACKAGE = "Swashbuckle.AspNetCore.Cli"
_GENERATOR_PROBE_LIBRARY = "Swashbuckle.AspNetCore.SwaggerGen"

_VERSION_RE = re.compile(r"^\d{1,4}\.\d{1,4}(\.\d{1,4})?(\.\d{1,4})?$")


@dataclass(frozen=True)
class ToolVersions:
    """Versions resolved once when the orchestrator is built."""

    generator: str = DEFAULT_GENERATOR_VERSION
    linter: str = LINTER_VERSION
    diff: str = DIFF_VERSION


def _clean_version(raw: str) -> str | None:
    # "9.0.6+abcdef" / "9.0.6-preview" → "9.0.6"
    version = re.split(r"[+-]", raw.strip(), maxsplit=1)[0]
    if version and _VERSION_RE.match(version):
        return version
    return None


def detect_generator_version(assembly_directory: Path | None) -> str | None:
    """Read the generator library version from the service's ``*.deps.json``.

    Returns ``None`` when the directory, the manifest or the library entry is
    missing, or when the recorded version is not a plain dotted version.
    Callers fall back to :data:`DEFAULT_GENERATOR_VERSION`.
    """
    if assembly_directory is None or not Path(assembly_directory).is_dir():
        _logger.debug("Generator version not detected: assembly directory not found")
        return None

    prefix = f"{_GENERATOR_PROBE_LIBRARY}/"
    for manifest in sorted(Path(assembly_directory).glob("*.deps.json")):
        try:
            data = json.loads(manifest.read_text(encoding="utf-8-sig"))
        except (OSError, ValueError) as exc:
            _logger.debug("Skipping unreadable %s: %s", manifest, exc)
            continue
        libraries = data.get("libraries") if isinstance(data, dict) else None
        if not isinstance(libraries, dict):
            continue
        for key in libraries:
            if not key.startswith(prefix):
                continue
            version = _clean_version(key[len(prefix):])
            if version is None:
                _logger.debug("Ignoring unexpected version format in %s: %s", manifest, key)
                return None
            _logger.info("Detected %s version %s", _GENERATOR_PROBE_LIBRARY, version)
            return version

    _logger.debug("Generator version not detected: no %s entry", _GENERATOR_PROBE_LIBRARY)
    return None


def resolve_versions(
    assembly_path: Path | None,
    *,
    generator: str | None = None,
    linter: str | None = None,
    diff: str | None = None,
) -> ToolVersions:
    """Build :class:`ToolVersions`, preferring explicit overrides."""
    if generator is None:
        assembly_dir = Path(assembly_path).parent if assembly_path else None
        generator = detect_generator_version(assembly_dir) or DEFAULT_GENERATOR_VERSION
    return ToolVersions(
        generator=generator,
        linter=linter or LINTER_VERSION,
        diff=diff or DIFF_VERSION,
    )
