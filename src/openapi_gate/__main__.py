"""CLI entry-point for openapi_gate.

Usage:
    python -m openapi_gate run --config gate.yaml
    python -m openapi_gate run --config gate.yaml --mode validate-first --strict
    python -m openapi_gate run --config gate.yaml --no-compare --json
    python -m openapi_gate checksum --config gate.yaml [--json]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from openapi_gate import __version__
from openapi_gate.core.checksum import ChecksumCalculator
from openapi_gate.core.config import GateConfig, Mode, load_config
from openapi_gate.errors import ConfigError, OpenApiGateError
from openapi_gate.pipeline.orchestrator import Orchestrator
from openapi_gate.reporting.summary import print_summary
from openapi_gate.runners.lint import lint_report_path
from openapi_gate.tools.installers import ruleset_cache_path
from openapi_gate.utils.exit_codes import ExitCode
from openapi_gate.utils.json_norm import stable_json_dumps


def _is_running_in_github_actions() -> bool:
    """GitHub Actions sets ``GITHUB_ACTIONS=true`` on every runner."""
    return os.getenv("GITHUB_ACTIONS", "").lower() == "true"


def _configure_logging(verbose: bool, *, json_output: bool = False) -> None:
    # Workflow commands (::group::) are only honoured on stdout.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr if json_output else sys.stdout,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openapi-gate",
        description="Generate, lint and diff OpenAPI specifications at build time.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    def _common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", required=True, type=Path, help="Path to the gate YAML config.")
        p.add_argument(
            "--mode",
            choices=[m.value for m in Mode],
            default=None,
            help="Override the configured mode.",
        )
        p.add_argument("--tools-dir", type=Path, default=None, help="Override tools directory.")
        p.add_argument("--reports-dir", type=Path, default=None, help="Override reports directory.")
        p.add_argument("--json", action="store_true", help="Emit machine-readable JSON.")
        p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    run_p = sub.add_parser("run", help="Run the full validation pipeline.")
    _common(run_p)
    run_p.add_argument("--assembly", type=Path, default=None, help="Compiled service assembly.")
    run_p.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Treat lint violations and breaking changes as errors.",
    )
    run_p.add_argument(
        "--no-compare",
        dest="compare",
        action="store_false",
        default=None,
        help="Skip the breaking-change diff.",
    )
    run_p.add_argument(
        "--github-actions",
        dest="github_actions",
        action="store_true",
        default=None,
        help="Fold output into GitHub Actions log groups (auto-detected).",
    )

    chk_p = sub.add_parser("checksum", help="Report whether lint would re-run.")
    _common(chk_p)
    return parser


def _load(args: argparse.Namespace, **extra: object) -> GateConfig:
    return load_config(
        args.config,
        mode=args.mode,
        tools_dir=args.tools_dir,
        reports_dir=args.reports_dir,
        **extra,
    )


def _handle_run(args: argparse.Namespace) -> int:
    github_actions = args.github_actions
    if github_actions is None:
        github_actions = _is_running_in_github_actions()
    try:
        config = _load(
            args,
            assembly_path=args.assembly,
            treat_warnings_as_errors=args.strict,
            compare=args.compare,
            github_actions=github_actions,
        )
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.ERROR

    try:
        orchestrator = Orchestrator(config)
    except OpenApiGateError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.ERROR

    try:
        outcome = asyncio.run(orchestrator.run())
    except KeyboardInterrupt:
        print("error: cancelled", file=sys.stderr)
        return ExitCode.ERROR

    if args.json:
        sys.stdout.write(stable_json_dumps(outcome.to_dict()))
    else:
        print_summary(outcome)
    return outcome.exit_code


def _handle_checksum(args: argparse.Namespace) -> int:
    try:
        config = _load(args)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return ExitCode.ERROR

    if config.mode is Mode.GENERATE_FIRST:
        documents = config.generated_set().paths
    else:
        documents = config.baseline_set().paths

    if config.ruleset_is_remote:
        ruleset_path = ruleset_cache_path(config.tools_dir, config.ruleset)
    else:
        ruleset_path = Path(config.ruleset)

    missing = [p for p in [ruleset_path, *documents] if not p.is_file()]
    if missing:
        state = {"must_run": True, "reason": f"missing input {missing[0]}"}
    else:
        reports = [lint_report_path(config.reports_dir, p) for p in documents]
        decision = ChecksumCalculator(config.reports_dir).decide(
            config.ruleset, ruleset_path, documents, reports
        )
        state = {"must_run": decision.must_run, "reason": decision.reason, "checksum": decision.checksum}

    if args.json:
        sys.stdout.write(stable_json_dumps(state))
    else:
        print(("changed" if state["must_run"] else "unchanged") + f": {state['reason']}")
    return ExitCode.SUCCESS


def main(argv: list[str] | None = None) -> int:
    """Entry-point — returns an exit code (0 = pass, 1 = strict violation, 2 = error)."""
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose, json_output=args.json)

    if args.command == "run":
        return _handle_run(args)
    if args.command == "checksum":
        return _handle_checksum(args)
    return ExitCode.ERROR


if __name__ == "__main__":
    raise SystemExit(main())
