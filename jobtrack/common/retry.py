"""
Fixed-delay retry for whole model calls.

A small model occasionally hallucinates output that no repair can save;
asking again usually works. retry_async re-runs a complete
invoke -> clean -> locate -> parse cycle a bounded number of times with
a fixed pause between attempts (no jitter, no exponential growth).

Usage:
    result = await retry_async(
        lambda: extractor.extract_structured(prompt),
        max_attempts=2,
        delay_seconds=1.0,
    )
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_fixed

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_before_sleep(
    operation_name: str,
    max_attempts: int,
    delay_seconds: float,
) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"[retry] {operation_name} attempt {retry_state.attempt_number}/{max_attempts} "
            f"failed ({type(error).__name__}: {error}); retrying in "
            f"{delay_seconds:.1f}s"
        )

    return before_sleep


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 2,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    operation_name: str = "llm call",
) -> T:
    """
    Run an async operation until it succeeds or attempts run out.

    Each attempt runs to completion before the retry decision; there is no
    cancellation and no per-attempt timeout.

    Args:
        operation: Zero-argument callable returning an awaitable
        max_attempts: Total attempts, including the first (default 2)
        delay_seconds: Fixed pause between attempts (default 1.0)
        sleep: Awaitable sleep used for the pause
        operation_name: Label used in log messages

    Returns:
        The first successful result

    Raises:
        ValueError: If max_attempts < 1
        Exception: The most recent failure, unwrapped, once attempts run out
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay_seconds),
        sleep=sleep,
        before_sleep=_log_before_sleep(operation_name, max_attempts, delay_seconds),
        reraise=True,
    )
    return await retrying(operation)
