"""Cooperative cancellation for generation runs."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import TypeVar

from social_card_generator.exceptions import CancellationError
from social_card_generator.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CancellationToken:
    """A one-shot cancellation flag that async code can poll or await.

    Providers register callbacks to abort in-flight work (kill a process,
    cancel an HTTP request task); the retry controller and orchestrator poll
    ``is_cancellation_requested`` at attempt and iteration boundaries.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Callbacks fire once; later calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(
                    "cancellation_callback_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def on_cancellation_requested(
        self, callback: Callable[[], None]
    ) -> Callable[[], None]:
        """Register a callback and return a function that unregisters it.

        If cancellation was already requested the callback runs immediately.
        """
        if self._cancelled:
            callback()
            return lambda: None

        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait until cancelled or until ``timeout`` seconds pass.

        Returns:
            True if cancellation was requested, False on timeout
        """
        if self._cancelled:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    def raise_if_cancellation_requested(self) -> None:
        if self._cancelled:
            raise CancellationError()


def raise_if_cancelled(cancellation: CancellationToken | None) -> None:
    """Raise CancellationError if the (optional) token is cancelled."""
    if cancellation is not None:
        cancellation.raise_if_cancellation_requested()


def is_cancellation_error(
    error: BaseException, cancellation: CancellationToken | None = None
) -> bool:
    """Decide whether an error raised by a backend really means "stopped".

    True for CancellationError, for any error raised after the token fired,
    and for backend errors whose message mentions cancel/abort.
    """
    if isinstance(error, CancellationError | asyncio.CancelledError):
        return True
    if cancellation is not None and cancellation.is_cancellation_requested:
        return True
    message = str(error).lower()
    return "cancel" in message or "abort" in message


async def run_cancellable(
    awaitable: Awaitable[T], cancellation: CancellationToken | None
) -> T:
    """Await ``awaitable`` in its own task, cancelling that task with the token.

    Converts the resulting asyncio cancellation into CancellationError. An
    asyncio cancellation of the caller itself is left untouched.
    """
    if cancellation is None:
        return await awaitable
    if cancellation.is_cancellation_requested:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise CancellationError()

    task = asyncio.ensure_future(awaitable)
    unregister = cancellation.on_cancellation_requested(task.cancel)
    try:
        return await task
    except asyncio.CancelledError:
        if cancellation.is_cancellation_requested and task.cancelled():
            raise CancellationError() from None
        raise
    finally:
        unregister()
