r"""Abstract base class for retry policies."""

from __future__ import annotations

__all__ = ["BaseRetryPolicy", "validate_max_attempts"]

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from aretry.session import RetrySession


def validate_max_attempts(max_attempts: int) -> None:
    """Validate a maximum number of attempts.

    Args:
        max_attempts: The maximum number of attempts, including the first
            one. Must be >= 1.

    Raises:
        ValueError: If ``max_attempts`` is lower than 1.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)


class BaseRetryPolicy(ABC):
    """Abstract base class for retry policies.

    A retry policy decides, from the failure history of a session, whether
    another attempt is allowed. The executor drives it through the
    following lifecycle:

    - ``open`` once when the session starts
    - ``before_attempt`` before each attempt, which may reject it
    - ``is_exhausted`` before the first attempt of a resumed stateful session
    - ``register_failure`` after each failed attempt, then ``can_retry``
    - ``register_success`` when an attempt succeeds
    - ``close`` once when the session ends, whatever the outcome

    Per-session state belongs in ``session.policy_state`` (see
    ``get_state``), never on the policy instance, so one policy can serve
    concurrent sessions.
    """

    def open(self, session: RetrySession) -> None:  # noqa: B027
        """Initialize the policy state of a new session."""

    def before_attempt(self, session: RetrySession) -> None:  # noqa: B027
        """Check that the next attempt may be made.

        Raises:
            CircuitOpenError: If the attempt is rejected without invoking the
                operation.
        """

    def register_failure(self, session: RetrySession, error: BaseException) -> None:  # noqa: B027
        """Record the failure of the last attempt."""

    @abstractmethod
    def can_retry(self, session: RetrySession) -> bool:
        """Decide whether another attempt is allowed.

        Args:
            session: The session, whose ``attempt_count`` and
                ``last_failure`` describe the attempts made so far.

        Returns:
            ``True`` if another attempt may be made.
        """

    def is_exhausted(self, session: RetrySession) -> bool:
        """Whether the attempt budget of a resumed session is spent.

        The executor asks this before the first attempt of a stateful
        session resuming a previous sequence. Unlike ``can_retry``, the
        answer must not depend on transient conditions shared with other
        sessions.
        """
        return not self.can_retry(session)

    def register_success(self, session: RetrySession) -> None:  # noqa: B027
        """Record that the last attempt succeeded."""

    def close(self, session: RetrySession) -> None:  # noqa: B027
        """Release the policy state of a finished session."""

    def get_state(self, session: RetrySession) -> dict[str, Any]:
        """Return the state this policy owns in ``session``.

        Args:
            session: The session.

        Returns:
            A mutable mapping private to this policy instance and session.
        """
        return session.policy_state.setdefault(id(self), {})
