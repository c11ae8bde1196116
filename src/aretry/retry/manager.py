r"""Listener manager for orchestrating retry lifecycle events.

This module provides the ListenerManager class that invokes the listener
chain at each point of the retry lifecycle.

Error handling is explicit:

- An exception raised by ``on_session_start`` propagates to the caller,
  after the listeners already opened received ``on_session_end``.
- Exceptions raised by ``on_attempt_error`` and ``on_session_end`` are
  logged and the chain continues.

In both cases the attempt count and the retry decision are left
untouched.
"""

from __future__ import annotations

__all__ = ["ListenerManager"]

import logging
from typing import TYPE_CHECKING

from aretry.exceptions import SessionVetoedError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aretry.listeners.base import BaseRetryListener
    from aretry.session import RetrySession

logger: logging.Logger = logging.getLogger(__name__)


class ListenerManager:
    """Manages listener invocations during the retry lifecycle.

    Start and error hooks run in registration order, end hooks in reverse
    registration order so a listener wrapping another one sees symmetric
    enter/exit calls.

    Args:
        listeners: The ordered listeners.

    Attributes:
        listeners: The ordered listeners.
    """

    def __init__(self, listeners: Iterable[BaseRetryListener] = ()) -> None:
        self.listeners: list[BaseRetryListener] = list(listeners)

    def __len__(self) -> int:
        return len(self.listeners)

    def register(self, listener: BaseRetryListener) -> None:
        self.listeners.append(listener)

    def on_session_start(self, session: RetrySession) -> list[BaseRetryListener]:
        """Open the session with every listener, in registration order.

        Args:
            session: The session about to start.

        Returns:
            The listeners that accepted the session, which is every
            listener when no veto happened.

        Raises:
            SessionVetoedError: If a listener vetoed the session. The
                listeners opened before it already received
                ``on_session_end``.
        """
        opened: list[BaseRetryListener] = []
        for listener in self.listeners:
            try:
                allowed = listener.on_session_start(session)
            except BaseException as exc:
                self.on_session_end(session, exc, opened)
                raise
            if not allowed:
                error = SessionVetoedError(
                    f"Session {session.name!r} vetoed by {type(listener).__name__}",
                    listener=listener,
                )
                logger.debug(error.message)
                self.on_session_end(session, error, opened)
                raise error
            opened.append(listener)
        return opened

    def on_attempt_error(self, session: RetrySession, error: BaseException) -> None:
        for listener in self.listeners:
            try:
                listener.on_attempt_error(session, error)
            except Exception:
                logger.exception(
                    f"Error in {type(listener).__name__}.on_attempt_error "
                    f"(session {session.name!r}, attempt {session.attempt_count})"
                )

    def on_session_end(
        self,
        session: RetrySession,
        error: BaseException | None,
        listeners: list[BaseRetryListener] | None = None,
    ) -> None:
        """Close the session with the listeners, in reverse order.

        Args:
            session: The finished session.
            error: The final failure, or ``None`` on success.
            listeners: The listeners to close. Defaults to every listener.
        """
        for listener in reversed(self.listeners if listeners is None else listeners):
            try:
                listener.on_session_end(session, error)
            except Exception:
                logger.exception(
                    f"Error in {type(listener).__name__}.on_session_end "
                    f"(session {session.name!r})"
                )
