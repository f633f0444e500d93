"""Console helpers shared by the runners.

Runners receive ``github_actions`` as an explicit flag; nothing here reads
the process environment.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

_logger = logging.getLogger(__name__)


@contextmanager
def log_group(title: str, *, enabled: bool, logger: logging.Logger = _logger) -> Iterator[None]:
    """Fold the enclosed output into a GitHub Actions log group.

    Without the capability flag the title is logged as a plain heading.
    """
    if enabled:
        logger.info("::group::%s", title)
    else:
        logger.info("%s", title)
    try:
        yield
    finally:
        if enabled:
            logger.info("::endgroup::")


_MARKERS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("BREAKING", "breaking"), "[breaking]"),
    (("added", "new"), "[added]"),
    (("removed", "deleted"), "[removed]"),
    (("modified", "changed"), "[changed]"),
)


def format_diff_output(output: str) -> str:
    """Prefix each non-blank line of diff tool output with a change marker."""
    if not output or not output.strip():
        return "No detailed output available."

    lines: list[str] = []
    for raw in output.splitlines():
        line = raw.strip()
        if not line:
            continue
        marker = "-"
        for needles, label in _MARKERS:
            if any(n in line for n in needles):
                marker = label
                break
        lines.append(f"{marker} {line}")

    return "\n".join(lines) if lines else "No breaking changes found."
