"""Retry utility with capped exponential backoff.

Only transient failures are retried. An exception is transient when it is
an instance of one of the retryable exception types, by default the
NetworkError raised at every collaborator boundary and httpx transport
errors. Anything else is fatal and re-raised immediately.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx

from lecture_processor.utils.errors import NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_BACKOFF_SECONDS = 30.0

TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    NetworkError,
    httpx.TransportError,
)


def is_transient_error(exc: BaseException) -> bool:
    """Return True if the error is network-class and worth retrying."""
    return isinstance(exc, TRANSIENT_EXCEPTIONS)


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before the retry following 0-based ``attempt``.

    Follows base_delay * 2^attempt, capped at MAX_BACKOFF_SECONDS.
    """
    return min(base_delay * (2**attempt), MAX_BACKOFF_SECONDS)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    label: str = "operation",
    retryable_exceptions: tuple[type[BaseException], ...] = TRANSIENT_EXCEPTIONS,
) -> T:
    """Await ``operation()`` until it succeeds or the attempt budget is spent.

    Args:
        operation: Zero-argument callable returning an awaitable.
        max_attempts: Total number of invocations allowed (>= 1).
        base_delay: Base delay in seconds before the first retry.
        label: Name used in log lines.
        retryable_exceptions: Exception types treated as transient.

    Returns:
        The operation's result.

    Raises:
        ValueError: If max_attempts is below 1.
        Exception: The fatal error, or the last transient error once all
            attempts are exhausted, with ``_retry_count`` attached.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as exc:
            logger.warning(
                "[%s] Attempt %d/%d failed: %s",
                label,
                attempt + 1,
                max_attempts,
                exc,
            )
            # Fatal failure or last attempt: re-raise immediately
            if not isinstance(exc, retryable_exceptions) or (
                attempt == max_attempts - 1
            ):
                exc._retry_count = attempt  # type: ignore[attr-defined]
                raise
            delay = backoff_delay(attempt, base_delay)
            logger.info("[%s] Retrying after %.1fs", label, delay)
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover

