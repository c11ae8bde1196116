r"""Observers of the retry lifecycle.

This package provides the listener base class, a logging listener and a
metrics aggregator.
"""

from __future__ import annotations

__all__ = [
    "BaseRetryListener",
    "LoggingRetryListener",
    "MetricsSnapshot",
    "OperationStatsSnapshot",
    "RetryMetricsListener",
]

from aretry.listeners.base import BaseRetryListener
from aretry.listeners.log import LoggingRetryListener
from aretry.listeners.metrics import (
    MetricsSnapshot,
    OperationStatsSnapshot,
    RetryMetricsListener,
)
