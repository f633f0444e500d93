"""Gate configuration — the surface supplied by the build integration."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import jsonschema
import yaml

from openapi_gate.contracts.load import validate_instance
from openapi_gate.core.documents import DocumentSet
from openapi_gate.errors import ConfigError
from openapi_gate.tools.versions import ToolVersions, resolve_versions

_logger = logging.getLogger(__name__)

CONFIG_SCHEMA = "gate_config.schema.json"
DEFAULT_GENERATOR_TIMEOUT = 60.0


class Mode(str, enum.Enum):
    GENERATE_FIRST = "generate-first"
    VALIDATE_FIRST = "validate-first"


def is_remote(location: str) -> bool:
    return location.startswith(("http://", "https://"))


def _require_unique_stems(kind: str, documents: DocumentSet) -> None:
    # Report file names derive from the document stem.
    seen: dict[str, str] = {}
    for name, path in documents.items():
        stem = path.stem.casefold()
        if stem in seen:
            raise ConfigError(
                f"The {kind} specifications for {seen[stem]!r} and {name!r} share the file name "
                f"{path.stem!r}; reports are named after it, so file names must be unique"
            )
        seen[stem] = name


@dataclass(frozen=True)
class GateConfig:
    """Immutable gate configuration.

    ``baselines`` and ``generated_outputs`` are keyed by logical document
    name.  A generated output with no explicit path lands in
    ``<tools_dir>/openapi-<name>.yaml``.
    """

    ruleset: str
    documents: tuple[str, ...]
    mode: Mode = Mode.GENERATE_FIRST
    baselines: Mapping[str, Path] = field(default_factory=dict)
    generated_outputs: Mapping[str, Path] = field(default_factory=dict)
    assembly_path: Path | None = None
    tools_dir: Path = Path("openapi-tools")
    reports_dir: Path = Path("openapi-reports")
    treat_warnings_as_errors: bool = False
    compare: bool = True
    generator_timeout: float = DEFAULT_GENERATOR_TIMEOUT
    github_actions: bool = False
    versions: ToolVersions = field(default_factory=ToolVersions)

    def __post_init__(self) -> None:
        if not self.documents:
            raise ConfigError("At least one document name is required")
        if len(set(self.documents)) != len(self.documents):
            raise ConfigError("Document names must be unique")
        _require_unique_stems("baseline", self.baseline_set())
        _require_unique_stems("generated", self.generated_set())

    @property
    def ruleset_is_remote(self) -> bool:
        return is_remote(self.ruleset)

    def generated_path(self, name: str) -> Path:
        explicit = self.generated_outputs.get(name)
        if explicit is not None:
            return Path(explicit)
        return self.tools_dir / f"openapi-{name.lower()}.yaml"

    def generated_set(self) -> DocumentSet:
        return DocumentSet((name, self.generated_path(name)) for name in self.documents)

    def baseline_set(self) -> DocumentSet:
        return DocumentSet.from_mapping(self.documents, self.baselines)

    def with_overrides(self, **overrides: Any) -> "GateConfig":
        """Return a copy with every non-``None`` override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "mode" in changes:
            changes["mode"] = Mode(changes["mode"])
        for key in ("tools_dir", "reports_dir", "assembly_path"):
            if key in changes:
                changes[key] = Path(changes[key])
        return replace(self, **changes)


def _resolve(base: Path, value: str) -> Path:
    p = Path(value)
    return p if p.is_absolute() else (base / p)


def config_from_dict(data: Mapping[str, Any], *, base_dir: Path = Path(".")) -> GateConfig:
    """Validate *data* and build a :class:`GateConfig`.

    Relative paths are resolved against *base_dir*; so is a local ruleset.
    """
    try:
        validate_instance(dict(data), CONFIG_SCHEMA)
    except jsonschema.ValidationError as exc:
        location = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(f"Invalid configuration at {location}: {exc.message}") from exc

    ruleset = data["ruleset"]
    if not is_remote(ruleset):
        ruleset = str(_resolve(base_dir, ruleset))

    assembly_path = _resolve(base_dir, data["assembly_path"]) if data.get("assembly_path") else None
    versions = data.get("versions", {})

    return GateConfig(
        ruleset=ruleset,
        documents=tuple(data["documents"]),
        mode=Mode(data.get("mode", Mode.GENERATE_FIRST.value)),
        baselines={k: _resolve(base_dir, v) for k, v in data.get("baselines", {}).items()},
        generated_outputs={
            k: _resolve(base_dir, v) for k, v in data.get("generated_outputs", {}).items()
        },
        assembly_path=assembly_path,
        tools_dir=_resolve(base_dir, data.get("tools_dir", "openapi-tools")),
        reports_dir=_resolve(base_dir, data.get("reports_dir", "openapi-reports")),
        treat_warnings_as_errors=bool(data.get("treat_warnings_as_errors", False)),
        compare=bool(data.get("compare", True)),
        generator_timeout=float(data.get("generator_timeout", DEFAULT_GENERATOR_TIMEOUT)),
        versions=resolve_versions(
            assembly_path,
            generator=versions.get("generator"),
            linter=versions.get("linter"),
            diff=versions.get("diff"),
        ),
    )


def load_config(path: Path, **overrides: Any) -> GateConfig:
    """Read a YAML configuration file and apply CLI *overrides*."""
    path = Path(path)
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration {path} is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration {path} must be a mapping")

    config = config_from_dict(raw, base_dir=path.resolve().parent)
    _logger.debug("Loaded configuration from %s", path)
    return config.with_overrides(**overrides)
