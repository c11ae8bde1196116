r"""Shared core logic for retry executors.

This module provides the base class and helper functions shared by the
synchronous and asynchronous retry executors. They encapsulate session
creation (including stateful resumption), retry state bookkeeping and the
construction of the terminal errors.
"""

from __future__ import annotations

__all__ = [
    "BaseRetryExecutor",
    "create_exhausted_error",
    "create_session",
]

import logging
from typing import TYPE_CHECKING

from aretry.exceptions import RetryExhaustedError
from aretry.retry.manager import ListenerManager
from aretry.session import RetrySession, get_current_session
from aretry.state import RetryStateStore
from aretry.utils.sleep import Sleeper

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aretry.backoff.base import BaseBackoffPolicy
    from aretry.listeners.base import BaseRetryListener
    from aretry.policy.base import BaseRetryPolicy

logger: logging.Logger = logging.getLogger(__name__)

STATE_KEY_ATTRIBUTE = "state_key"


def create_session(
    name: str | None,
    state_store: RetryStateStore,
    state_key: str | None,
    force_refresh: bool = False,
) -> RetrySession:
    """Create the session of an ``execute`` call.

    The session is nested in the session of the calling context, if any.
    In stateful mode it resumes the attempt count and last failure stored
    under ``state_key``. No state is created here: a sequence gets an
    entry once its first attempt is persisted.

    Args:
        name: The operation name.
        state_store: The store holding stateful progress.
        state_key: The key of the stateful sequence, or ``None``.
        force_refresh: Whether to restart the stateful sequence from zero.

    Returns:
        The new session.
    """
    session = RetrySession(name=name, parent=get_current_session())
    if state_key is not None:
        session.set_attribute(STATE_KEY_ATTRIBUTE, state_key)
        state = state_store.get(state_key)
        if state is not None and (force_refresh or state.force_refresh):
            logger.debug(f"Restarting retry state {state_key!r} from zero")
            state_store.remove(state_key)
        elif state is not None and state.attempt_count:
            session.attempt_count = state.attempt_count
            session.last_failure = state.last_failure
            logger.debug(
                f"Resuming retry state {state_key!r} after {state.attempt_count} attempts"
            )
    return session


def create_exhausted_error(session: RetrySession) -> RetryExhaustedError:
    """Create the error raised when a session is exhausted.

    Args:
        session: The exhausted session.

    Returns:
        The error, whose ``last_failure`` is the failure of the last
        attempt. The caller raises it ``from`` that failure.
    """
    last_failure = session.last_failure
    if last_failure is None:
        message = f"{session.name} exhausted after {session.attempt_count} attempts"
    else:
        message = (
            f"{session.name} failed after {session.attempt_count} attempts: "
            f"{type(last_failure).__name__}: {last_failure}"
        )
    return RetryExhaustedError(
        message, attempts=session.attempt_count, last_failure=last_failure
    )


class BaseRetryExecutor:
    """Configuration and bookkeeping shared by the retry executors.

    Args:
        retry_policy: The policy deciding whether another attempt is allowed.
        backoff_policy: The policy computing the delay between attempts.
        listeners: The ordered listeners notified of the retry lifecycle.
        state_store: The store of stateful retry progress. Defaults to a
            private store.
        sleeper: The cancellable wait primitive used for backoff delays.
            Defaults to a private ``Sleeper``.
        wrap_errors: Whether exhaustion raises ``RetryExhaustedError``
            chained to the last failure (default) or re-raises the last
            failure unchanged.

    Raises:
        ValueError: If ``retry_policy`` or ``backoff_policy`` is ``None``.
    """

    def __init__(
        self,
        retry_policy: BaseRetryPolicy,
        backoff_policy: BaseBackoffPolicy,
        listeners: Iterable[BaseRetryListener] = (),
        *,
        state_store: RetryStateStore | None = None,
        sleeper: Sleeper | None = None,
        wrap_errors: bool = True,
    ) -> None:
        if retry_policy is None:
            msg = "retry_policy must not be None"
            raise ValueError(msg)
        if backoff_policy is None:
            msg = "backoff_policy must not be None"
            raise ValueError(msg)

        self.retry_policy = retry_policy
        self.backoff_policy = backoff_policy
        self.listeners: ListenerManager = ListenerManager(listeners)
        self.state_store = state_store if state_store is not None else RetryStateStore()
        self.sleeper = sleeper if sleeper is not None else Sleeper()
        self.wrap_errors = wrap_errors

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(retry_policy={self.retry_policy!r}, "
            f"backoff_policy={self.backoff_policy!r}, listeners={len(self.listeners)})"
        )

    def register_listener(self, listener: BaseRetryListener) -> None:
        """Append a listener to the chain."""
        self.listeners.register(listener)

    def cancel(self) -> None:
        """Interrupt the pending and future backoff waits of this executor.

        Sessions waiting for their next attempt end with
        ``RetryInterruptedError``. Call ``sleeper.reset()`` to use the
        executor again.
        """
        self.sleeper.cancel()

    def get_active_retry_state_count(self) -> int:
        """Return the number of live stateful retry sequences."""
        return self.state_store.count()

    def has_retry_state(self, key: str) -> bool:
        return key in self.state_store

    def clear_retry_state(self, key: str) -> None:
        self.state_store.remove(key)

    def clear_all_retry_states(self) -> None:
        self.state_store.clear()

    def _persist_state(self, session: RetrySession, state_key: str | None) -> None:
        if state_key is not None:
            self.state_store.update(state_key, session.attempt_count, session.last_failure)

    def _finish_state_on_success(self, session: RetrySession, state_key: str | None) -> None:
        if state_key is None:
            return
        if self.state_store.clear_on_success:
            self.state_store.remove(state_key)
        else:
            self.state_store.update(state_key, session.attempt_count, session.last_failure)

    def _clear_state(self, state_key: str | None) -> None:
        if state_key is not None:
            self.state_store.remove(state_key)

    def _is_resumed_exhausted(self, session: RetrySession, state_key: str | None) -> bool:
        """Whether a resumed stateful session may not attempt again."""
        return (
            state_key is not None
            and session.attempt_count > 0
            and self.retry_policy.is_exhausted(session)
        )

    def _end_session(self, session: RetrySession, error: BaseException | None) -> None:
        """Notify the listeners of the end of the session, exactly once."""
        if session.ended:
            return
        session.ended = True
        self.listeners.on_session_end(session, error)

    def _exhausted_error(self, session: RetrySession) -> BaseException:
        """Return the error to raise for an exhausted session without recovery."""
        if not self.wrap_errors and session.last_failure is not None:
            return session.last_failure
        return create_exhausted_error(session)
