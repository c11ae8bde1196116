r"""Retry session model.

A ``RetrySession`` is created by each ``execute`` call and lives for the
whole call, spanning one or more attempts. The session currently running
in the calling context is published through a context variable so the
operation (or a nested ``execute``) can reach it with
``get_current_session()``.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_OPERATION_NAME",
    "OPERATION_NAME_ATTRIBUTE",
    "RetrySession",
    "get_current_session",
]

import contextvars
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from aretry.backoff.base import BackoffState

if TYPE_CHECKING:
    from collections.abc import Generator

# Attribute used by listeners to group sessions per logical operation
OPERATION_NAME_ATTRIBUTE = "operation_name"
DEFAULT_OPERATION_NAME = "DEFAULT"

_current_session: contextvars.ContextVar[RetrySession | None] = contextvars.ContextVar(
    "aretry_current_session", default=None
)


class RetrySession:
    r"""State of one logical execution spanning one or more attempts.

    Args:
        name: The operation name. It is also stored under the
            ``operation_name`` attribute.
        parent: The enclosing session when ``execute`` is nested inside
            another session's operation.
        attempt_count: The initial attempt count, non-zero when a stateful
            session resumes a previous sequence.
        last_failure: The failure to resume from, if any.

    Attributes:
        attempt_count: The number of attempts started so far. It is
            incremented before each attempt.
        last_failure: The failure of the last attempt, or ``None``.
        attributes: Arbitrary named values set by the operation or the
            listeners.
        parent: The enclosing session, or ``None``.
        exhausted: Whether the retry policy denied further attempts.
        ended: Whether the listeners were notified of the end of the session.
        policy_state: Mutable state owned by the active retry policy.
        backoff_state: Mutable state owned by the active backoff policy.
        start_time: Monotonic timestamp taken when the session opened.

    Example:
        ```pycon
        >>> from aretry.session import RetrySession
        >>> session = RetrySession(name="fetch-user")
        >>> session.attempt_count
        0
        >>> session.set_attribute("user_id", 42)
        >>> session.get_attribute("user_id")
        42
        >>> session.name
        'fetch-user'

        ```
    """

    def __init__(
        self,
        name: str | None = None,
        parent: RetrySession | None = None,
        attempt_count: int = 0,
        last_failure: BaseException | None = None,
    ) -> None:
        self.attempt_count = attempt_count
        self.last_failure = last_failure
        self.parent = parent
        self.attributes: dict[str, Any] = {}
        self.exhausted = False
        self.ended = False
        self.policy_state: dict[int, dict[str, Any]] = {}
        self.backoff_state = BackoffState()
        self.start_time = time.monotonic()
        if name is not None:
            self.attributes[OPERATION_NAME_ATTRIBUTE] = name

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(name={self.name!r}, "
            f"attempt_count={self.attempt_count}, last_failure={self.last_failure!r})"
        )

    @property
    def name(self) -> str:
        """The operation name, ``"DEFAULT"`` when none was given."""
        name = self.attributes.get(OPERATION_NAME_ATTRIBUTE)
        return DEFAULT_OPERATION_NAME if name is None else str(name)

    def get_attribute(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def set_attribute(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def remove_attribute(self, name: str) -> Any:
        return self.attributes.pop(name, None)

    def register_failure(self, error: BaseException) -> None:
        """Record the failure of the current attempt.

        Args:
            error: The failure raised by the operation.
        """
        self.last_failure = error

    def elapsed(self) -> float:
        """Return the number of seconds since the session opened."""
        return time.monotonic() - self.start_time


def get_current_session() -> RetrySession | None:
    """Return the session running in the current context.

    Returns:
        The innermost active session, or ``None`` outside of ``execute``.

    Example:
        ```pycon
        >>> from aretry.session import get_current_session
        >>> get_current_session() is None
        True

        ```
    """
    return _current_session.get()


@contextmanager
def activate(session: RetrySession) -> Generator[RetrySession, None, None]:
    """Make ``session`` the current session for the duration of the block."""
    token = _current_session.set(session)
    try:
        yield session
    finally:
        _current_session.reset(token)
