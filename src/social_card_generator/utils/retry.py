"""Retry logic with exponential backoff and cooperative cancellation."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from social_card_generator.cancellation import CancellationToken, raise_if_cancelled
from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import CancellationError, ProviderError
from social_card_generator.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


def backoff_delay(
    attempt: int, initial_delay: float = 1.0, backoff_factor: float = 2.0
) -> float:
    """Delay after the given failed attempt (1-based): 1s, 2s, 4s, ..."""
    return initial_delay * backoff_factor ** (attempt - 1)


async def _cancellable_sleep(
    delay: float, cancellation: CancellationToken | None
) -> None:
    if cancellation is None:
        await asyncio.sleep(delay)
        return
    if await cancellation.wait(timeout=delay):
        raise CancellationError()


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    cancellation: CancellationToken | None = None,
    *,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    sleep: SleepFunc | None = None,
    operation_name: str = "operation",
) -> T:
    """
    Run an async operation with bounded exponential-backoff retries.

    Cancellation is checked before every attempt and aborts without invoking
    the operation. A CancellationError raised by the operation propagates
    immediately. Every other exception is retried; there is no delay after
    the final attempt.

    Args:
        operation: Zero-argument coroutine factory
        max_attempts: Maximum number of attempts
        cancellation: Optional cancellation token
        initial_delay: Delay after the first failure, in seconds
        backoff_factor: Multiplier for each following delay
        sleep: Awaitable sleep override (tests); defaults to a wait that
            wakes early when the token is cancelled
        operation_name: Label used in log events

    Returns:
        The operation's result

    Raises:
        CancellationError: If cancellation was requested
        Exception: The most recent error once attempts are exhausted
    """
    last_exception: Exception | None = None
    retry_start_time = time.monotonic()
    cumulative_wait_time = 0.0
    attempt_durations: list[float] = []

    for attempt in range(1, max_attempts + 1):
        raise_if_cancelled(cancellation)

        attempt_start = time.monotonic()
        try:
            result = await operation()
        except CancellationError:
            raise
        except Exception as e:
            attempt_duration = time.monotonic() - attempt_start
            attempt_durations.append(attempt_duration)
            last_exception = e

            if attempt == max_attempts:
                logger.error(
                    "retry_exhausted",
                    func=operation_name,
                    attempts=attempt,
                    error=str(e),
                    error_type=type(e).__name__,
                    total_retry_time=round(time.monotonic() - retry_start_time, 2),
                    cumulative_wait_time=round(cumulative_wait_time, 2),
                    attempt_durations=[round(d, 2) for d in attempt_durations],
                )
                break

            delay = backoff_delay(attempt, initial_delay, backoff_factor)
            logger.warning(
                "retry_attempt",
                func=operation_name,
                attempt=attempt,
                max_attempts=max_attempts,
                delay=delay,
                error=str(e),
                error_type=type(e).__name__,
                attempt_duration=round(attempt_duration, 2),
                cumulative_wait_time=round(cumulative_wait_time, 2),
            )

            if sleep is not None:
                await sleep(delay)
            else:
                await _cancellable_sleep(delay, cancellation)
            cumulative_wait_time += delay
            continue

        if attempt > 1:
            logger.info(
                "retry_succeeded",
                func=operation_name,
                attempt=attempt,
                total_retry_time=round(time.monotonic() - retry_start_time, 2),
                cumulative_wait_time=round(cumulative_wait_time, 2),
                attempt_duration=round(time.monotonic() - attempt_start, 2),
            )
        return result

    if last_exception is not None:
        raise last_exception
    raise ProviderError(
        "API call failed after multiple attempts",
        error_code=ErrorCode.PRV_RETRIES_EXHAUSTED.value,
        context={"max_attempts": max_attempts},
    )
