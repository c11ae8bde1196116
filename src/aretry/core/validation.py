r"""Parameter validation utilities for retry configuration.

This module provides validation functions for configuration parameters to
ensure they meet the required constraints before policies are built from
them.
"""

from __future__ import annotations

__all__ = ["validate_circuit_params", "validate_hour", "validate_interval"]


def validate_interval(name: str, value: float) -> None:
    """Validate a delay expressed in seconds.

    Args:
        name: The parameter name, used in the error message.
        value: The delay in seconds. Must be >= 0.

    Raises:
        ValueError: If ``value`` is negative.

    Example:
        ```pycon
        >>> from aretry.core.validation import validate_interval
        >>> validate_interval("fixed_interval", 1.0)
        >>> validate_interval("fixed_interval", -1.0)  # doctest: +SKIP
        Traceback (most recent call last):
        ...
        ValueError: fixed_interval must be >= 0, got -1.0

        ```
    """
    if value < 0:
        msg = f"{name} must be >= 0, got {value}"
        raise ValueError(msg)


def validate_hour(name: str, hour: int) -> None:
    if not 0 <= hour <= 23:
        msg = f"{name} must be in [0, 23], got {hour}"
        raise ValueError(msg)


def validate_circuit_params(
    circuit_threshold: int | None,
    open_timeout: float,
    reset_timeout: float,
) -> None:
    """Validate circuit breaker parameters.

    Args:
        circuit_threshold: The number of consecutive failures opening the
            circuit, or ``None`` for no circuit. Must be >= 0; 0 means the
            circuit never opens.
        open_timeout: Seconds the circuit stays open after crossing the
            threshold. Must be >= 0.
        reset_timeout: Seconds the circuit stays open after a failed trial
            call. Must be >= 0.

    Raises:
        ValueError: If any parameter is negative.
    """
    if circuit_threshold is not None and circuit_threshold < 0:
        msg = f"circuit_threshold must be >= 0, got {circuit_threshold}"
        raise ValueError(msg)
    validate_interval("open_timeout", open_timeout)
    validate_interval("reset_timeout", reset_timeout)
