r"""Base class for retry listeners."""

from __future__ import annotations

__all__ = ["BaseRetryListener"]

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aretry.session import RetrySession


class BaseRetryListener:
    """Observer of the retry lifecycle with no-op hooks.

    Subclasses override the hooks they need:

    - ``on_session_start`` runs in registration order before the first
      attempt. Returning ``False`` vetoes the session.
    - ``on_attempt_error`` runs in registration order after each failed
      attempt.
    - ``on_session_end`` runs in reverse registration order when the
      session ends, with the final failure or ``None`` on success.
    """

    def on_session_start(self, session: RetrySession) -> bool:  # noqa: ARG002
        """Called before the first attempt of a session.

        Args:
            session: The session about to start.

        Returns:
            ``True`` to let the session start, ``False`` to veto it.
        """
        return True

    def on_attempt_error(self, session: RetrySession, error: BaseException) -> None:  # noqa: B027
        """Called after each failed attempt.

        Args:
            session: The session, whose ``attempt_count`` is the number of
                the failed attempt.
            error: The failure raised by the operation.
        """

    def on_session_end(  # noqa: B027
        self, session: RetrySession, error: BaseException | None
    ) -> None:
        """Called once when the session ends.

        Args:
            session: The finished session.
            error: The final failure, or ``None`` if the session succeeded.
        """
