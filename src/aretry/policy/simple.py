r"""Retry policies bounded by the attempt count only."""

from __future__ import annotations

__all__ = ["MaxAttemptsRetryPolicy", "NeverRetryPolicy"]

from typing import TYPE_CHECKING

from aretry.policy.base import BaseRetryPolicy, validate_max_attempts

if TYPE_CHECKING:
    from aretry.session import RetrySession


class MaxAttemptsRetryPolicy(BaseRetryPolicy):
    """Retry policy allowing a bounded number of attempts.

    Every failure is retried, whatever its type, while the attempt count
    is lower than ``max_attempts``.

    Args:
        max_attempts: The maximum number of attempts, including the first
            one (default: 3).

    Example:
        ```pycon
        >>> from aretry.policy import MaxAttemptsRetryPolicy
        >>> from aretry.session import RetrySession
        >>> policy = MaxAttemptsRetryPolicy(max_attempts=3)
        >>> policy.can_retry(RetrySession(attempt_count=2))
        True
        >>> policy.can_retry(RetrySession(attempt_count=3))
        False

        ```
    """

    def __init__(self, max_attempts: int = 3) -> None:
        validate_max_attempts(max_attempts)
        self.max_attempts = max_attempts

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(max_attempts={self.max_attempts})"

    def can_retry(self, session: RetrySession) -> bool:
        return session.attempt_count < self.max_attempts


class NeverRetryPolicy(BaseRetryPolicy):
    """Retry policy that never allows a retry.

    The operation is attempted once and its failure ends the session.

    Example:
        ```pycon
        >>> from aretry.policy import NeverRetryPolicy
        >>> from aretry.session import RetrySession
        >>> NeverRetryPolicy().can_retry(RetrySession(attempt_count=1))
        False

        ```
    """

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}()"

    def can_retry(self, session: RetrySession) -> bool:  # noqa: ARG002
        return False
