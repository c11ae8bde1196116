r"""Backoff policy depending on the time of day."""

from __future__ import annotations

__all__ = ["TimeAwareBackoff"]

import logging

from aretry.backoff.base import BaseBackoffPolicy
from aretry.utils.clock import Clock, system_clock

logger: logging.Logger = logging.getLogger(__name__)


def _validate_hour(name: str, hour: int) -> None:
    if not 0 <= hour <= 23:
        msg = f"{name} must be in [0, 23], got {hour}"
        raise ValueError(msg)


def _in_range(hour: int, start: int, end: int) -> bool:
    """Return whether ``hour`` falls in ``[start, end)``, wrapping midnight."""
    if start <= end:
        return start <= hour < end
    return hour >= start or hour < end


class TimeAwareBackoff(BaseBackoffPolicy):
    r"""Backoff policy adjusting the delay to the wall-clock hour.

    During peak hours the base interval is multiplied to spare an
    overloaded service, at night a separate (typically shorter) interval
    is used, and the base interval applies the rest of the day. The peak
    range is checked first; the night range may wrap around midnight.

    Args:
        base_interval: The delay in seconds outside peak and night hours
            (default: 1.0).
        night_interval: The delay in seconds during night hours
            (default: 0.5).
        peak_start_hour: First hour of the peak range (default: 9).
        peak_end_hour: Hour at which the peak range ends, exclusive
            (default: 18).
        peak_multiplier: Multiplier applied to ``base_interval`` during
            peak hours (default: 2.0).
        night_start_hour: First hour of the night range (default: 22).
        night_end_hour: Hour at which the night range ends, exclusive
            (default: 6).
        clock: The source of the current time. Defaults to the system
            clock.

    Example:
        ```pycon
        >>> from datetime import datetime
        >>> from aretry.backoff import TimeAwareBackoff
        >>> from aretry.utils import ManualClock
        >>> clock = ManualClock(now=datetime(2024, 1, 1, 14, 0))
        >>> backoff = TimeAwareBackoff(base_interval=1.0, peak_multiplier=3.0, clock=clock)
        >>> backoff.calculate(1)
        3.0
        >>> clock.set_time(datetime(2024, 1, 1, 2, 0))
        >>> backoff.calculate(1)
        0.5
        >>> clock.set_time(datetime(2024, 1, 1, 20, 0))
        >>> backoff.calculate(1)
        1.0

        ```
    """

    def __init__(
        self,
        base_interval: float = 1.0,
        night_interval: float = 0.5,
        peak_start_hour: int = 9,
        peak_end_hour: int = 18,
        peak_multiplier: float = 2.0,
        night_start_hour: int = 22,
        night_end_hour: int = 6,
        clock: Clock | None = None,
    ) -> None:
        if base_interval < 0:
            msg = f"base_interval must be non-negative, got {base_interval}"
            raise ValueError(msg)
        if night_interval < 0:
            msg = f"night_interval must be non-negative, got {night_interval}"
            raise ValueError(msg)
        if peak_multiplier < 0:
            msg = f"peak_multiplier must be non-negative, got {peak_multiplier}"
            raise ValueError(msg)
        _validate_hour("peak_start_hour", peak_start_hour)
        _validate_hour("peak_end_hour", peak_end_hour)
        _validate_hour("night_start_hour", night_start_hour)
        _validate_hour("night_end_hour", night_end_hour)

        self.base_interval = base_interval
        self.night_interval = night_interval
        self.peak_start_hour = peak_start_hour
        self.peak_end_hour = peak_end_hour
        self.peak_multiplier = peak_multiplier
        self.night_start_hour = night_start_hour
        self.night_end_hour = night_end_hour
        self.clock = clock if clock is not None else system_clock

    def is_peak_hour(self, hour: int) -> bool:
        return _in_range(hour, self.peak_start_hour, self.peak_end_hour)

    def is_night_hour(self, hour: int) -> bool:
        return _in_range(hour, self.night_start_hour, self.night_end_hour)

    def calculate(self, attempt: int) -> float:  # noqa: ARG002
        hour = self.clock.now().hour
        if self.is_peak_hour(hour):
            logger.debug(f"Peak hour ({hour}h), increasing the backoff delay")
            return self.base_interval * self.peak_multiplier
        if self.is_night_hour(hour):
            logger.debug(f"Night hour ({hour}h), reducing the backoff delay")
            return self.night_interval
        return self.base_interval
