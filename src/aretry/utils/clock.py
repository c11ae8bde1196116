r"""Injectable time sources.

The engine never reads the system time directly: circuit breakers and
time-aware backoff policies take a ``Clock`` so tests can fix the current
time deterministically with ``ManualClock``.
"""

from __future__ import annotations

__all__ = ["Clock", "ManualClock", "SystemClock", "system_clock"]

import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta


class Clock(ABC):
    """Abstract source of wall-clock and monotonic time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current local wall-clock time.

        Returns:
            The current local date and time.
        """

    @abstractmethod
    def monotonic(self) -> float:
        """Return a monotonic timestamp in seconds.

        Returns:
            A timestamp that never goes backwards, suitable to measure
            elapsed durations.
        """


class SystemClock(Clock):
    """Clock backed by the system time.

    Example:
        ```pycon
        >>> from aretry.utils.clock import SystemClock
        >>> clock = SystemClock()
        >>> clock.monotonic() > 0
        True

        ```
    """

    def now(self) -> datetime:
        return datetime.now()

    def monotonic(self) -> float:
        return time.monotonic()


class ManualClock(Clock):
    r"""Clock whose time only moves when told to.

    Args:
        now: The initial wall-clock time. Defaults to midnight, 1 January
            2000.
        monotonic: The initial monotonic timestamp in seconds.

    Example:
        ```pycon
        >>> from datetime import datetime
        >>> from aretry.utils.clock import ManualClock
        >>> clock = ManualClock(now=datetime(2024, 1, 1, 14, 0))
        >>> clock.now().hour
        14
        >>> clock.advance(3600)
        >>> clock.now().hour
        15
        >>> clock.monotonic()
        3600.0

        ```
    """

    def __init__(self, now: datetime | None = None, monotonic: float = 0.0) -> None:
        self._now = now if now is not None else datetime(2000, 1, 1)
        self._monotonic = float(monotonic)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def monotonic(self) -> float:
        with self._lock:
            return self._monotonic

    def advance(self, seconds: float) -> None:
        """Move both the wall-clock and the monotonic time forward.

        Args:
            seconds: The number of seconds to move forward. Must be >= 0.

        Raises:
            ValueError: If ``seconds`` is negative.
        """
        if seconds < 0:
            msg = f"seconds must be >= 0, got {seconds}"
            raise ValueError(msg)
        with self._lock:
            self._now += timedelta(seconds=seconds)
            self._monotonic += seconds

    def set_time(self, now: datetime) -> None:
        """Set the wall-clock time without touching the monotonic time.

        Args:
            now: The new wall-clock time.
        """
        with self._lock:
            self._now = now


system_clock: Clock = SystemClock()
