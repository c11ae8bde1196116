r"""Retry listener logging the retry lifecycle.

Example:
    ```python
    import logging

    from aretry import RetryExecutor
    from aretry.backoff import FixedBackoff
    from aretry.listeners import LoggingRetryListener
    from aretry.policy import MaxAttemptsRetryPolicy

    logging.basicConfig(level=logging.INFO)
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(3),
        FixedBackoff(0.5),
        listeners=[LoggingRetryListener()],
    )
    ```
"""

from __future__ import annotations

__all__ = ["LoggingRetryListener"]

import logging
import time
from typing import TYPE_CHECKING

from aretry.listeners.base import BaseRetryListener

if TYPE_CHECKING:
    from aretry.session import RetrySession

logger: logging.Logger = logging.getLogger(__name__)

START_TIME_ATTRIBUTE = "log_start_time"


class LoggingRetryListener(BaseRetryListener):
    r"""Listener logging session start, failed attempts and outcome.

    Records carry structured ``extra`` fields (``operation``, ``attempt``,
    ``duration_ms``) for log aggregation.

    Args:
        logger: The logger to write to. Defaults to this module's logger.
        level: The level of the start and success records
            (default: ``logging.INFO``). Failures log at WARNING, final
            failures at ERROR.

    Example:
        ```pycon
        >>> from aretry.listeners import LoggingRetryListener
        >>> from aretry.session import RetrySession
        >>> listener = LoggingRetryListener()
        >>> session = RetrySession(name="fetch-user")
        >>> listener.on_session_start(session)
        True

        ```
    """

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.level = level

    @staticmethod
    def _duration_ms(session: RetrySession) -> float:
        start_time = session.get_attribute(START_TIME_ATTRIBUTE)
        if start_time is None:
            return 0.0
        return (time.monotonic() - start_time) * 1000

    def on_session_start(self, session: RetrySession) -> bool:
        session.set_attribute(START_TIME_ATTRIBUTE, time.monotonic())
        self.logger.log(
            self.level,
            f"Retry session started: {session.name}",
            extra={"operation": session.name, "attempt": session.attempt_count},
        )
        return True

    def on_attempt_error(self, session: RetrySession, error: BaseException) -> None:
        duration_ms = self._duration_ms(session)
        self.logger.warning(
            f"Attempt #{session.attempt_count} of {session.name} failed after "
            f"{duration_ms:.0f}ms: {error}",
            extra={
                "operation": session.name,
                "attempt": session.attempt_count,
                "duration_ms": duration_ms,
                "error_type": type(error).__name__,
            },
        )

    def on_session_end(self, session: RetrySession, error: BaseException | None) -> None:
        duration_ms = self._duration_ms(session)
        extra = {
            "operation": session.name,
            "attempt": session.attempt_count,
            "duration_ms": duration_ms,
        }
        if error is None:
            self.logger.log(
                self.level,
                f"Retry session {session.name} succeeded, total attempts: "
                f"{session.attempt_count}, duration: {duration_ms:.0f}ms",
                extra=extra,
            )
        else:
            self.logger.error(
                f"Retry session {session.name} failed, total attempts: "
                f"{session.attempt_count}, duration: {duration_ms:.0f}ms, error: {error}",
                extra={**extra, "error_type": type(error).__name__},
            )
