r"""Configuration of retry executors and its validation helpers."""

from __future__ import annotations

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "RETRY_STATUS_CODES",
    "BackoffKind",
    "RetryConfig",
    "validate_circuit_params",
    "validate_hour",
    "validate_interval",
]

from aretry.core.config import (
    DEFAULT_MAX_ATTEMPTS,
    RETRY_STATUS_CODES,
    BackoffKind,
    RetryConfig,
)
from aretry.core.validation import validate_circuit_params, validate_hour, validate_interval
