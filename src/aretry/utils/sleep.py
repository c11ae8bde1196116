r"""Cancellable wait primitive used for backoff delays.

The backoff wait is the only suspension point of a session. ``Sleeper``
implements it on top of ``threading.Event`` for the synchronous executor
and ``asyncio.Event`` for the asynchronous one, so another thread (or
task) can cut a wait short with ``cancel()``. A cancelled wait raises
``RetryInterruptedError`` instead of returning normally.
"""

from __future__ import annotations

__all__ = ["Sleeper"]

import asyncio
import contextlib
import logging
import threading

from aretry.exceptions import RetryInterruptedError

logger: logging.Logger = logging.getLogger(__name__)


class Sleeper:
    r"""Interruptible sleep for backoff waits.

    Once cancelled, every wait fails immediately until ``reset()`` is
    called.

    Example:
        ```pycon
        >>> from aretry.utils.sleep import Sleeper
        >>> sleeper = Sleeper()
        >>> sleeper.sleep(0.0)
        >>> sleeper.cancel()
        >>> sleeper.sleep(10.0)
        Traceback (most recent call last):
            ...
        aretry.exceptions.RetryInterruptedError: Backoff wait of 10.00s was interrupted

        ```
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()
        self._async_cancelled: asyncio.Event | None = None
        self._async_cancelled_loop: asyncio.AbstractEventLoop | None = None

    @property
    def cancelled(self) -> bool:
        """Indicate whether the sleeper has been cancelled."""
        return self._cancelled.is_set()

    def sleep(self, seconds: float) -> None:
        """Block the calling thread for ``seconds``.

        Args:
            seconds: The number of seconds to wait.

        Raises:
            RetryInterruptedError: If ``cancel()`` is called before or
                during the wait.
        """
        if seconds <= 0:
            if self._cancelled.is_set():
                self._raise_interrupted(seconds)
            return
        if self._cancelled.wait(seconds):
            self._raise_interrupted(seconds)

    async def sleep_async(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``.

        Cancelling the task itself still raises ``asyncio.CancelledError``;
        only ``cancel()`` turns the wait into ``RetryInterruptedError``.

        Args:
            seconds: The number of seconds to wait.

        Raises:
            RetryInterruptedError: If ``cancel()`` is called before or
                during the wait.
        """
        if self._cancelled.is_set():
            self._raise_interrupted(seconds)
        if seconds <= 0:
            return
        event = self._get_async_event()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(event.wait(), timeout=seconds)
        if self._cancelled.is_set():
            self._raise_interrupted(seconds)

    def cancel(self) -> None:
        """Interrupt the pending and future waits."""
        logger.debug("Cancelling backoff waits")
        self._cancelled.set()
        if self._async_cancelled is not None and self._async_cancelled_loop is not None:
            try:
                self._async_cancelled_loop.call_soon_threadsafe(self._async_cancelled.set)
            except RuntimeError:
                # The loop that created the event is closed.
                self._async_cancelled.set()

    def reset(self) -> None:
        """Re-arm a cancelled sleeper."""
        self._cancelled.clear()
        self._async_cancelled = None
        self._async_cancelled_loop = None

    def _get_async_event(self) -> asyncio.Event:
        loop = asyncio.get_running_loop()
        if self._async_cancelled is None or self._async_cancelled_loop is not loop:
            self._async_cancelled = asyncio.Event()
            self._async_cancelled_loop = loop
        return self._async_cancelled

    @staticmethod
    def _raise_interrupted(seconds: float) -> None:
        msg = f"Backoff wait of {seconds:.2f}s was interrupted"
        raise RetryInterruptedError(msg)
