r"""Exception hierarchy raised by the retry engine.

All the errors raised by the engine itself derive from ``RetryError``.
Failures raised by the user operation are never replaced silently: when a
session is exhausted the last failure is chained as ``__cause__`` of the
``RetryExhaustedError`` so calling code can still branch on the original
failure type.
"""

from __future__ import annotations

__all__ = [
    "CircuitOpenError",
    "RetryError",
    "RetryExhaustedError",
    "RetryInterruptedError",
    "SessionVetoedError",
]

from typing import Any


class RetryError(RuntimeError):
    """Base class of the errors raised by the retry engine.

    Args:
        message: A descriptive error message.

    Example:
        ```pycon
        >>> from aretry.exceptions import RetryError
        >>> raise RetryError("something went wrong")
        Traceback (most recent call last):
            ...
        aretry.exceptions.RetryError: something went wrong

        ```
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RetryExhaustedError(RetryError):
    """Exception raised when the retry policy denies further attempts.

    The error is raised ``from`` the last failure, so the original
    exception is available both as ``last_failure`` and as ``__cause__``.

    Args:
        message: A descriptive error message.
        attempts: The number of attempts made in the session.
        last_failure: The failure of the last attempt, if any.

    Example:
        ```pycon
        >>> from aretry.exceptions import RetryExhaustedError
        >>> error = RetryExhaustedError(
        ...     "operation failed after 3 attempts", attempts=3, last_failure=ValueError("boom")
        ... )
        >>> error.attempts
        3
        >>> error.last_failure
        ValueError('boom')

        ```
    """

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        last_failure: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_failure = last_failure


class RetryInterruptedError(RetryError):
    """Exception raised when a backoff wait is cancelled.

    An interrupted session is never retried further and the recovery
    callback is not invoked.
    """


class SessionVetoedError(RetryError):
    """Exception raised when a listener refuses to open a session.

    Args:
        message: A descriptive error message.
        listener: The listener that vetoed the session.
    """

    def __init__(self, message: str, *, listener: Any = None) -> None:
        super().__init__(message)
        self.listener = listener


class CircuitOpenError(RetryError):
    """Exception raised when an open circuit rejects an attempt.

    The operation is not invoked when this error is raised.

    Args:
        message: A descriptive error message.
        circuit_name: The name of the circuit that rejected the attempt.
        retry_after: The number of seconds before the circuit lets a trial
            attempt through, or ``None`` if unknown.

    Example:
        ```pycon
        >>> from aretry.exceptions import CircuitOpenError
        >>> raise CircuitOpenError("Circuit 'db' is OPEN", circuit_name="db", retry_after=4.2)
        Traceback (most recent call last):
            ...
        aretry.exceptions.CircuitOpenError: Circuit 'db' is OPEN

        ```
    """

    def __init__(
        self,
        message: str,
        *,
        circuit_name: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.circuit_name = circuit_name
        self.retry_after = retry_after
