r"""Asynchronous retry executor.

This module provides the AsyncRetryExecutor class that runs a fallible
coroutine function under a retry policy, a backoff policy and a listener
chain. Backoff waits suspend the coroutine instead of blocking the
event loop.
"""

from __future__ import annotations

__all__ = ["AsyncRetryExecutor"]

import inspect
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from aretry.exceptions import CircuitOpenError, RetryInterruptedError
from aretry.retry.executor_core import BaseRetryExecutor, create_session
from aretry.session import activate

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aretry.session import RetrySession

T = TypeVar("T")

logger: logging.Logger = logging.getLogger(__name__)


class AsyncRetryExecutor(BaseRetryExecutor):
    r"""Executes async operations with automatic retry logic.

    This is the asynchronous counterpart of ``RetryExecutor``: the same
    policies, listeners and state store drive the loop, the operation is a
    zero-argument coroutine function and the backoff waits are awaited.
    Cancelling the task running ``execute`` closes the listeners and
    propagates ``asyncio.CancelledError``.

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
        >>> import asyncio
        >>> from aretry import AsyncRetryExecutor
        >>> from aretry.backoff import FixedBackoff
        >>> from aretry.policy import MaxAttemptsRetryPolicy
        >>> executor = AsyncRetryExecutor(MaxAttemptsRetryPolicy(3), FixedBackoff(0.0))
        >>> async def fetch():
        ...     return 42
        ...
        >>> asyncio.run(executor.execute(fetch))
        42

        ```
    """

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        recovery: Callable[[RetrySession], T | Awaitable[T]] | None = None,
        state_key: str | None = None,
        force_refresh: bool = False,
        name: str | None = None,
    ) -> T:
        """Execute an async operation with automatic retry logic.

        Args:
            operation: Zero-argument coroutine function to execute.
            recovery: Optional callable invoked with the terminal session
                once the session is exhausted (or rejected by an open
                circuit). It may return a value or an awaitable.
            state_key: Optional key of a stateful retry sequence. Each call
                then makes at most one attempt.
            force_refresh: Whether to restart the stateful sequence from
                zero.
            name: Optional operation name, used by the listeners.

        Returns:
            The value returned by the operation, or by ``recovery``.

        Raises:
            SessionVetoedError: If a listener vetoed the session.
            RetryExhaustedError: If the retry policy denied another attempt
                and no recovery is configured.
            RetryInterruptedError: If the backoff wait was cancelled.
            CircuitOpenError: If an open circuit rejected the attempt and no
                recovery is configured.
        """
        session = create_session(name, self.state_store, state_key, force_refresh)
        with activate(session):
            self.listeners.on_session_start(session)
            try:
                self.retry_policy.open(session)
                return await self._run(session, operation, recovery, state_key)
            except BaseException as exc:
                self._end_session(session, exc)
                raise
            finally:
                self.retry_policy.close(session)

    async def _run(
        self,
        session: RetrySession,
        operation: Callable[[], Awaitable[T]],
        recovery: Callable[[RetrySession], Any] | None,
        state_key: str | None,
    ) -> T:
        if self._is_resumed_exhausted(session, state_key):
            return await self._handle_exhausted(session, recovery, state_key)

        while True:
            try:
                self.retry_policy.before_attempt(session)
            except CircuitOpenError as exc:
                return await self._handle_rejected(session, exc, recovery)

            session.attempt_count += 1
            try:
                result = await operation()
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
                return await self._handle_exhausted(session, recovery, state_key)

            self._persist_state(session, state_key)
            try:
                await self.backoff_policy.wait_async(session, self.sleeper)
            except RetryInterruptedError as interrupted:
                self._end_session(session, interrupted)
                raise interrupted from failure

            if state_key is not None:
                self._end_session(session, failure)
                raise failure

    async def _recover(self, session: RetrySession, recovery: Callable[[RetrySession], Any]) -> Any:
        result = recovery(session)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _handle_exhausted(
        self,
        session: RetrySession,
        recovery: Callable[[RetrySession], Any] | None,
        state_key: str | None,
    ) -> Any:
        session.exhausted = True
        self._clear_state(state_key)
        self._end_session(session, session.last_failure)
        if recovery is not None:
            logger.debug(f"{session.name}: exhausted, invoking recovery")
            return await self._recover(session, recovery)
        error = self._exhausted_error(session)
        if error is session.last_failure:
            raise error
        raise error from session.last_failure

    async def _handle_rejected(
        self,
        session: RetrySession,
        error: CircuitOpenError,
        recovery: Callable[[RetrySession], Any] | None,
    ) -> Any:
        logger.debug(f"{session.name}: attempt rejected: {error}")
        session.register_failure(error)
        self._end_session(session, error)
        if recovery is not None:
            return await self._recover(session, recovery)
        raise error
