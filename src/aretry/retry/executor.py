r"""Synchronous retry executor.

This module provides the RetryExecutor class that runs a fallible
operation under a retry policy, a backoff policy and a listener chain,
optionally resuming stateful progress across calls.
"""

from __future__ import annotations

__all__ = ["RetryExecutor"]

import logging
from typing import TYPE_CHECKING, TypeVar

from aretry.exceptions import CircuitOpenError, RetryInterruptedError
from aretry.retry.executor_core import BaseRetryExecutor, create_session
from aretry.session import activate

if TYPE_CHECKING:
    from collections.abc import Callable

    from aretry.session import RetrySession

T = TypeVar("T")

logger: logging.Logger = logging.getLogger(__name__)


class RetryExecutor(BaseRetryExecutor):
    r"""Executes operations with automatic retry logic.

    This class implements the retry loop. Each ``execute`` call opens a
    session, notifies the listeners, then alternates attempts and backoff
    waits until the operation succeeds or the retry policy denies another
    attempt. It uses composition with policy objects:

    - BaseRetryPolicy: decides whether another attempt is allowed
    - BaseBackoffPolicy: computes the delay before the next attempt
    - ListenerManager: notifies the listeners of lifecycle events
    - RetryStateStore: keeps stateful progress across calls

    The call occupies the calling thread for its whole duration, including
    the backoff waits. ``cancel()`` interrupts the waits from another
    thread.

    Args:
        retry_policy: The policy deciding whether another attempt is allowed.
        backoff_policy: The policy computing the delay between attempts.
        listeners: The ordered listeners notified of the retry lifecycle.
        state_store: The store of stateful retry progress. Defaults to a
            private store.
        sleeper: The cancellable wait primitive used for backoff delays.
        wrap_errors: Whether exhaustion raises ``RetryExhaustedError``
            chained to the last failure (default) or re-raises the last
            failure unchanged.

    Example:
        ```pycon
        >>> from aretry import RetryExecutor
        >>> from aretry.backoff import FixedBackoff
        >>> from aretry.policy import MaxAttemptsRetryPolicy
        >>> executor = RetryExecutor(MaxAttemptsRetryPolicy(3), FixedBackoff(0.0))
        >>> attempts = []
        >>> def flaky():
        ...     attempts.append(1)
        ...     if len(attempts) < 3:
        ...         raise ConnectionError("transient")
        ...     return "done"
        ...
        >>> executor.execute(flaky)
        'done'
        >>> len(attempts)
        3

        ```
    """

    def execute(
        self,
        operation: Callable[[], T],
        *,
        recovery: Callable[[RetrySession], T] | None = None,
        state_key: str | None = None,
        force_refresh: bool = False,
        name: str | None = None,
    ) -> T:
        """Execute an operation with automatic retry logic.

        The loop handles:
        - Success: the listeners are closed and the value is returned
        - Retryable failure: the backoff wait runs, then a new attempt
        - Denied retry: the recovery callback result is returned, or the
          exhaustion error is raised
        - Circuit rejection: the operation is not invoked

        In stateful mode (``state_key`` given) each call makes at most one
        attempt. A retryable failure is persisted in the state store, the
        backoff wait runs, and the failure is re-raised; the next call with
        the same key resumes the sequence.

        Args:
            operation: Zero-argument callable to execute. It can reach its
                session with ``get_current_session()``.
            recovery: Optional callable invoked with the terminal session
                once the session is exhausted (or rejected by an open
                circuit). Its return value becomes the result.
            state_key: Optional key of a stateful retry sequence.
            force_refresh: Whether to restart the stateful sequence from
                zero.
            name: Optional operation name, used by the listeners.

        Returns:
            The value returned by the operation, or by ``recovery``.

        Raises:
            SessionVetoedError: If a listener vetoed the session.
            RetryExhaustedError: If the retry policy denied another attempt
                and no recovery is configured. The last failure is chained
                as ``__cause__``.
            RetryInterruptedError: If the backoff wait was cancelled.
            CircuitOpenError: If an open circuit rejected the attempt and no
                recovery is configured.
        """
        session = create_session(name, self.state_store, state_key, force_refresh)
        with activate(session):
            self.listeners.on_session_start(session)
            try:
                self.retry_policy.open(session)
                return self._run(session, operation, recovery, state_key)
            except BaseException as exc:
                self._end_session(session, exc)
                raise
            finally:
                self.retry_policy.close(session)

    def _run(
        self,
        session: RetrySession,
        operation: Callable[[], T],
        recovery: Callable[[RetrySession], T] | None,
        state_key: str | None,
    ) -> T:
        if self._is_resumed_exhausted(session, state_key):
            return self._handle_exhausted(session, recovery, state_key)

        while True:
            try:
                self.retry_policy.before_attempt(session)
            except CircuitOpenError as exc:
                return self._handle_rejected(session, exc, recovery)

            session.attempt_count += 1
            try:
                result = operation()
            except Exception as exc:
                failure = exc
            else:
                self.retry_policy.register_success(session)
                self._finish_state_on_success(session, state_key)
                logger.debug(f"{session.name}: succeeded on attempt {session.attempt_count}")
                self._end_session(session, None)
                return result

            session.register_failure(failure)
            self.retry_policy.register_failure(session, failure)
            logger.debug(f"{session.name}: attempt {session.attempt_count} failed: {failure}")
            self.listeners.on_attempt_error(session, failure)

            if not self.retry_policy.can_retry(session):
                return self._handle_exhausted(session, recovery, state_key)

            self._persist_state(session, state_key)
            try:
                self.backoff_policy.wait(session, self.sleeper)
            except RetryInterruptedError as interrupted:
                self._end_session(session, interrupted)
                raise interrupted from failure

            if state_key is not None:
                # Stateful: hand the failure back, the next call resumes
                self._end_session(session, failure)
                raise failure

    def _handle_exhausted(
        self,
        session: RetrySession,
        recovery: Callable[[RetrySession], T] | None,
        state_key: str | None,
    ) -> T:
        session.exhausted = True
        self._clear_state(state_key)
        self._end_session(session, session.last_failure)
        if recovery is not None:
            logger.debug(f"{session.name}: exhausted, invoking recovery")
            return recovery(session)
        error = self._exhausted_error(session)
        if error is session.last_failure:
            raise error
        raise error from session.last_failure

    def _handle_rejected(
        self,
        session: RetrySession,
        error: CircuitOpenError,
        recovery: Callable[[RetrySession], T] | None,
    ) -> T:
        logger.debug(f"{session.name}: attempt rejected: {error}")
        session.register_failure(error)
        self._end_session(session, error)
        if recovery is not None:
            return recovery(session)
        raise error
