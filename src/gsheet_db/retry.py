"""Bounded exponential-backoff retry for remote store calls."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, TypeVar

from .exceptions import SheetError, TransientStoreError
from .utils import sleep_for

logger = logging.getLogger(__name__)

R = TypeVar("R")


def is_retryable(error: Exception) -> bool:
    """Library errors other than TransientStoreError signal a defect, not a flaky call."""
    if isinstance(error, SheetError):
        return isinstance(error, TransientStoreError)
    return True


async def _retry_loop(
    operation: Callable[..., Awaitable[R]],
    args: tuple[Any, ...],
    max_retries: int,
    retry_delay: timedelta,
) -> R:
    base = retry_delay.total_seconds()

    for attempt in range(1, max_retries + 1):
        try:
            return await operation(*args)
        except Exception as e:
            if not is_retryable(e):
                raise

            if attempt >= max_retries:
                logger.error(f"Max retries reached ({max_retries}): {e}")
                raise

            wait_time = base**attempt
            logger.warning(f"Attempt {attempt}/{max_retries} failed: {e}")
            await sleep_for(wait_time, f"Waiting {wait_time}s before retry...")

    raise AssertionError("unreachable")


async def execute_with_retry(
    operation: Callable[..., Awaitable[R]],
    *args: Any,
    max_retries: int,
    retry_delay: timedelta,
    timeout: timedelta | None = None,
) -> R:
    """Await ``operation(*args)`` with retry and optional deadline.

    Args:
        operation: Coroutine function performing one remote call.
        *args: Positional arguments for the operation.
        max_retries: Maximum number of attempts (at least 1).
        retry_delay: Backoff base; after attempt ``k`` wait ``base ** k`` seconds.
        timeout: Deadline for all attempts together, or None for no deadline.

    Returns:
        The result of the first successful attempt.

    Raises:
        TimeoutError: If ``timeout`` elapses first.
        Exception: The last failure once attempts are exhausted, or the first
            non-retryable failure.
    """
    if timeout is None:
        return await _retry_loop(operation, args, max_retries, retry_delay)

    async with asyncio.timeout(timeout.total_seconds()):
        return await _retry_loop(operation, args, max_retries, retry_delay)
