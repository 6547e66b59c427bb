"""Retry with exponential backoff for transient provider failures."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar

from modeldoc.core.logging import get_logger
from modeldoc.core.models import Result

T = TypeVar("T")

logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 529})

_STATUS = re.compile(r"\b(?:status(?:\s+code)?|http)\s*[:=]?\s*(\d{3})\b", re.IGNORECASE)
_TRANSIENT_WORDS = re.compile(
    r"timeout|timed out|connection|overloaded|rate.?limit|temporarily unavailable", re.IGNORECASE
)


def is_transient_error(message: str | None) -> bool:
    """Classify a provider error message as worth retrying.

    Rate limits, server errors, timeouts, connection errors and overload are
    transient. Everything else (auth, validation, bad request) is permanent.
    """
    if not message:
        return False
    if _TRANSIENT_WORDS.search(message):
        return True
    for match in _STATUS.finditer(message):
        code = int(match.group(1))
        if code in TRANSIENT_STATUS_CODES:
            return True
    return False


def backoff_delay(attempt: int, base_delay: float = 0.4, max_delay: float = 30.0) -> float:
    """Delay before retry number ``attempt`` (0-based): ``base_delay * 2**attempt``."""
    return min(base_delay * (2**attempt), max_delay)


async def retry_result(
    call: Callable[[], Awaitable[Result[T]]],
    *,
    attempts: int = 3,
    base_delay: float = 0.4,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "call",
) -> Result[T]:
    """Run ``call`` until it succeeds, fails permanently, or attempts run out.

    Args:
        call: Zero-argument coroutine factory returning a Result
        attempts: Total attempts, including the first
        base_delay: Backoff base in seconds
        sleep: Sleep coroutine, replaceable in tests
        label: Name used in log events

    Returns:
        The first successful Result, or the last failed one
    """
    result: Result[T] = Result.fail("no attempts made")
    for attempt in range(max(1, attempts)):
        result = await call()
        if result.success:
            return result
        if not is_transient_error(result.error) or attempt == attempts - 1:
            break
        delay = backoff_delay(attempt, base_delay)
        logger.warning(
            "llm_call_retry", call=label, attempt=attempt + 1, delay=round(delay, 2), error=result.error
        )
        await sleep(delay)
    return result
