r"""Retry policies classifying failures by exception type."""

from __future__ import annotations

__all__ = ["ClassifierRetryPolicy", "ExceptionTypeRetryPolicy"]

import logging
from typing import TYPE_CHECKING

from aretry.policy.base import BaseRetryPolicy, validate_max_attempts

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from aretry.session import RetrySession

logger: logging.Logger = logging.getLogger(__name__)


class ExceptionTypeRetryPolicy(BaseRetryPolicy):
    r"""Retry policy with a retryable flag per exception type.

    A failure is looked up by walking its class hierarchy: the nearest
    class present in ``retryable_exceptions`` decides. Unmapped failures
    use ``default_retryable``. A failure classified as non-retryable ends
    the session immediately, even if attempts remain.

    Args:
        max_attempts: The maximum number of attempts, including the first
            one (default: 3).
        retryable_exceptions: Mapping from exception type to whether it is
            retryable. Defaults to ``{Exception: True}``.
        default_retryable: Whether unmapped failures are retryable
            (default: False).
        traverse_causes: Whether to classify the ``__cause__`` chain of an
            unmapped failure before falling back to ``default_retryable``
            (default: False).

    Example:
        ```pycon
        >>> from aretry.policy import ExceptionTypeRetryPolicy
        >>> from aretry.session import RetrySession
        >>> policy = ExceptionTypeRetryPolicy(
        ...     max_attempts=3,
        ...     retryable_exceptions={ConnectionError: True, ValueError: False},
        ... )
        >>> policy.can_retry(RetrySession(attempt_count=1, last_failure=ConnectionResetError()))
        True
        >>> policy.can_retry(RetrySession(attempt_count=1, last_failure=ValueError()))
        False
        >>> policy.can_retry(RetrySession(attempt_count=1, last_failure=KeyError()))
        False

        ```
    """

    def __init__(
        self,
        max_attempts: int = 3,
        retryable_exceptions: Mapping[type[BaseException], bool] | None = None,
        default_retryable: bool = False,
        traverse_causes: bool = False,
    ) -> None:
        validate_max_attempts(max_attempts)
        self.max_attempts = max_attempts
        self.retryable_exceptions: dict[type[BaseException], bool] = (
            dict(retryable_exceptions) if retryable_exceptions is not None else {Exception: True}
        )
        self.default_retryable = default_retryable
        self.traverse_causes = traverse_causes

    def __repr__(self) -> str:
        kinds = ", ".join(
            f"{kind.__name__}={retryable}" for kind, retryable in self.retryable_exceptions.items()
        )
        return (
            f"{self.__class__.__qualname__}(max_attempts={self.max_attempts}, "
            f"retryable_exceptions={{{kinds}}}, default_retryable={self.default_retryable})"
        )

    def _lookup(self, error: BaseException) -> bool | None:
        for kind in type(error).__mro__:
            if kind in self.retryable_exceptions:
                return self.retryable_exceptions[kind]
        return None

    def classify(self, error: BaseException) -> bool:
        """Return whether ``error`` is retryable.

        Args:
            error: The failure to classify.

        Returns:
            The flag of the nearest mapped class of ``error`` (or of its
            causes when ``traverse_causes`` is set), otherwise
            ``default_retryable``.
        """
        current: BaseException | None = error
        seen: set[int] = set()
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            retryable = self._lookup(current)
            if retryable is not None:
                return retryable
            if not self.traverse_causes:
                break
            current = current.__cause__
        return self.default_retryable

    def can_retry(self, session: RetrySession) -> bool:
        if session.attempt_count >= self.max_attempts:
            return False
        if session.last_failure is None:
            return True
        retryable = self.classify(session.last_failure)
        if not retryable:
            logger.debug(
                f"{type(session.last_failure).__name__} is not retryable, "
                f"ending session {session.name!r}"
            )
        return retryable


class ClassifierRetryPolicy(BaseRetryPolicy):
    r"""Retry policy delegating to a policy chosen per failure.

    The classifier maps each failure to the policy that decides whether it
    may be retried, for example a generous bound for database errors and
    no retry for anything else.

    Args:
        classifier: Callable returning the delegate policy for a failure.

    Example:
        ```pycon
        >>> from aretry.policy import (
        ...     ClassifierRetryPolicy,
        ...     MaxAttemptsRetryPolicy,
        ...     NeverRetryPolicy,
        ... )
        >>> from aretry.session import RetrySession
        >>> generous, never = MaxAttemptsRetryPolicy(5), NeverRetryPolicy()
        >>> policy = ClassifierRetryPolicy(
        ...     lambda error: generous if isinstance(error, ConnectionError) else never
        ... )
        >>> session = RetrySession(attempt_count=3)
        >>> policy.register_failure(session, ConnectionError())
        >>> policy.can_retry(session)
        True

        ```
    """

    def __init__(self, classifier: Callable[[BaseException], BaseRetryPolicy]) -> None:
        self.classifier = classifier

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(classifier={self.classifier!r})"

    def _delegate(self, session: RetrySession) -> BaseRetryPolicy | None:
        return self.get_state(session).get("delegate")

    def register_failure(self, session: RetrySession, error: BaseException) -> None:
        state = self.get_state(session)
        delegate = self.classifier(error)
        opened: list[BaseRetryPolicy] = state.setdefault("opened", [])
        if not any(policy is delegate for policy in opened):
            delegate.open(session)
            opened.append(delegate)
        state["delegate"] = delegate
        delegate.register_failure(session, error)

    def can_retry(self, session: RetrySession) -> bool:
        delegate = self._delegate(session)
        if delegate is None:
            return True
        return delegate.can_retry(session)

    def register_success(self, session: RetrySession) -> None:
        delegate = self._delegate(session)
        if delegate is not None:
            delegate.register_success(session)

    def close(self, session: RetrySession) -> None:
        for delegate in self.get_state(session).get("opened", []):
            delegate.close(session)
