r"""Backoff policies computing the delay between attempts.

This package provides fixed, exponential, exponential-with-jitter and
time-of-day aware backoff policies.
"""

from __future__ import annotations

__all__ = [
    "BackoffState",
    "BaseBackoffPolicy",
    "ExponentialBackoff",
    "ExponentialJitterBackoff",
    "FixedBackoff",
    "TimeAwareBackoff",
]

from aretry.backoff.base import BackoffState, BaseBackoffPolicy
from aretry.backoff.exponential import ExponentialBackoff, ExponentialJitterBackoff
from aretry.backoff.fixed import FixedBackoff
from aretry.backoff.time_aware import TimeAwareBackoff
