"""Centralized exit-code contract for all CLI commands.

Code  Meaning
----  -------
  0   Success — every document validated (warnings allowed unless strict)
  1   Violation — strict policy elevated a lint violation or breaking change
  2   Error — fatal pipeline failure, bad configuration, usage error
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    VIOLATION = 1
    ERROR = 2
