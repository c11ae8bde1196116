r"""Utility helpers shared by the retry engine.

This package provides the injectable clock abstraction, the cancellable
wait primitive used for backoff delays, and status-code discovery on
failures.
"""

from __future__ import annotations

__all__ = [
    "Clock",
    "ManualClock",
    "Sleeper",
    "SystemClock",
    "get_status_code",
    "system_clock",
]

from aretry.utils.clock import Clock, ManualClock, SystemClock, system_clock
from aretry.utils.sleep import Sleeper
from aretry.utils.status import get_status_code
