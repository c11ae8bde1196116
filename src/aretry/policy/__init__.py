r"""Retry policies deciding whether another attempt is allowed.

This package provides bounded-count, never-retry, exception-classifying,
predicate-based (including status codes) and circuit-breaker policies.
"""

from __future__ import annotations

__all__ = [
    "BaseRetryPolicy",
    "CircuitBreakerRetryPolicy",
    "ClassifierRetryPolicy",
    "ExceptionTypeRetryPolicy",
    "MaxAttemptsRetryPolicy",
    "NeverRetryPolicy",
    "PredicateRetryPolicy",
    "StatusCodeRetryPolicy",
]

from aretry.policy.base import BaseRetryPolicy
from aretry.policy.circuit_breaker import CircuitBreakerRetryPolicy
from aretry.policy.classifier import ClassifierRetryPolicy, ExceptionTypeRetryPolicy
from aretry.policy.predicate import PredicateRetryPolicy, StatusCodeRetryPolicy
from aretry.policy.simple import MaxAttemptsRetryPolicy, NeverRetryPolicy
