"""Bounded retry combinator shared by installers and runners."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from openapi_gate.errors import RetriesExhaustedError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3


def _never(_: object) -> bool:
    return False


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    description: str,
    max_attempts: int = MAX_ATTEMPTS,
    is_failure: Callable[[T], bool] = _never,
    retry_on: tuple[type[BaseException], ...] = (),
    on_retry: Callable[[int, T | None, BaseException | None], None] | None = None,
) -> T:
    """Run *operation* until it succeeds or *max_attempts* is reached.

    An attempt fails when it returns a value for which *is_failure* is true,
    or raises one of *retry_on*.  Any other exception propagates at once.
    After the last failed attempt ``RetriesExhaustedError`` is raised with
    the last result attached and the last exception chained.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last_result: T | None = None
    last_exc: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        last_result, last_exc = None, None
        try:
            result = await operation()
        except retry_on as exc:
            last_exc = exc
        else:
            if not is_failure(result):
                return result
            last_result = result

        if attempt == max_attempts:
            break

        if on_retry is not None:
            on_retry(attempt, last_result, last_exc)
        _logger.warning(
            "%s failed (attempt %d/%d). Retrying...",
            description,
            attempt,
            max_attempts,
        )

    raise RetriesExhaustedError(description, max_attempts, last_result) from last_exc
