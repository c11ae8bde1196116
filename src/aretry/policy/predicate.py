r"""Retry policies deciding with a predicate over the last failure."""

from __future__ import annotations

__all__ = [
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "LAST_STATUS_CODE_ATTRIBUTE",
    "PredicateRetryPolicy",
    "StatusCodeRetryPolicy",
]

import logging
from typing import TYPE_CHECKING

from aretry.policy.base import BaseRetryPolicy, validate_max_attempts
from aretry.utils.status import get_status_code

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from aretry.session import RetrySession

logger: logging.Logger = logging.getLogger(__name__)

LAST_STATUS_CODE_ATTRIBUTE = "last_status_code"

# 429: Too Many Requests, 500: Internal Server Error, 502: Bad Gateway,
# 503: Service Unavailable, 504: Gateway Timeout
DEFAULT_RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


class PredicateRetryPolicy(BaseRetryPolicy):
    r"""Retry policy accepting failures for which a predicate holds.

    Args:
        predicate: Callable receiving the last failure and returning
            whether it is retryable.
        max_attempts: The maximum number of attempts, including the first
            one (default: 3).

    Example:
        ```pycon
        >>> from aretry.policy import PredicateRetryPolicy
        >>> from aretry.session import RetrySession
        >>> policy = PredicateRetryPolicy(lambda error: "transient" in str(error), max_attempts=2)
        >>> policy.can_retry(RetrySession(attempt_count=1, last_failure=OSError("transient")))
        True
        >>> policy.can_retry(RetrySession(attempt_count=1, last_failure=OSError("disk full")))
        False

        ```
    """

    def __init__(self, predicate: Callable[[BaseException], bool], max_attempts: int = 3) -> None:
        validate_max_attempts(max_attempts)
        self.predicate = predicate
        self.max_attempts = max_attempts

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(predicate={self.predicate!r}, "
            f"max_attempts={self.max_attempts})"
        )

    def can_retry(self, session: RetrySession) -> bool:
        if session.attempt_count >= self.max_attempts:
            return False
        if session.last_failure is None:
            return True
        return bool(self.predicate(session.last_failure))


class StatusCodeRetryPolicy(PredicateRetryPolicy):
    r"""Retry policy keyed on the status code carried by the failure.

    The status code is read with ``get_status_code``: the response of an
    ``httpx.HTTPStatusError`` or the ``status_code`` attribute of any other
    failure. A failure without a status code is not retryable. The last
    status code seen is stored in the session attributes under
    ``last_status_code``.

    Args:
        max_attempts: The maximum number of attempts, including the first
            one (default: 3).
        status_codes: The retryable status codes
            (default: 429, 500, 502, 503, 504).

    Example:
        ```pycon
        >>> from aretry.policy import StatusCodeRetryPolicy
        >>> from aretry.session import RetrySession
        >>> class RemoteServiceError(Exception):
        ...     def __init__(self, status_code):
        ...         super().__init__(f"status {status_code}")
        ...         self.status_code = status_code
        ...
        >>> policy = StatusCodeRetryPolicy(max_attempts=3, status_codes=(503,))
        >>> policy.can_retry(RetrySession(attempt_count=1, last_failure=RemoteServiceError(503)))
        True
        >>> policy.can_retry(RetrySession(attempt_count=1, last_failure=RemoteServiceError(404)))
        False

        ```
    """

    def __init__(
        self,
        max_attempts: int = 3,
        status_codes: Iterable[int] = DEFAULT_RETRYABLE_STATUS_CODES,
    ) -> None:
        self.status_codes = frozenset(status_codes)
        super().__init__(self._is_retryable_status, max_attempts=max_attempts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(max_attempts={self.max_attempts}, "
            f"status_codes={sorted(self.status_codes)})"
        )

    def _is_retryable_status(self, error: BaseException) -> bool:
        status_code = get_status_code(error)
        if status_code is None:
            logger.debug(f"{type(error).__name__} carries no status code, not retryable")
            return False
        return status_code in self.status_codes

    def register_failure(self, session: RetrySession, error: BaseException) -> None:
        status_code = get_status_code(error)
        if status_code is not None:
            session.set_attribute(LAST_STATUS_CODE_ATTRIBUTE, status_code)
            logger.debug(
                f"{session.name}: attempt failed with status code {status_code} "
                f"(attempt {session.attempt_count}/{self.max_attempts})"
            )
