r"""Abstract base class for backoff policies."""

from __future__ import annotations

__all__ = ["BackoffState", "BaseBackoffPolicy"]

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aretry.session import RetrySession
    from aretry.utils.sleep import Sleeper

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class BackoffState:
    """Per-session state of a backoff policy.

    Attributes:
        last_delay: The last computed delay in seconds, or ``None`` before
            the first wait.
        waits: The number of delays computed in the session.
    """

    last_delay: float | None = None
    waits: int = 0


class BaseBackoffPolicy(ABC):
    """Abstract base class for backoff policies.

    A backoff policy determines how long to wait before the next attempt
    of a session. Subclasses only implement ``calculate``; recording the
    per-session state and performing the cancellable wait is shared.
    """

    @abstractmethod
    def calculate(self, attempt: int) -> float:
        """Calculate the delay to wait after a failed attempt.

        Args:
            attempt: The number of the attempt that just failed
                (1-indexed). For example, attempt=1 is the wait after the
                first failure.

        Returns:
            The delay in seconds before the next attempt.
        """

    def next_delay(self, session: RetrySession) -> float:
        """Compute the delay for the session and record it.

        Args:
            session: The session waiting for its next attempt.

        Returns:
            The delay in seconds.
        """
        delay = self.calculate(max(session.attempt_count, 1))
        session.backoff_state.last_delay = delay
        session.backoff_state.waits += 1
        return delay

    def wait(self, session: RetrySession, sleeper: Sleeper) -> float:
        """Block the calling thread for the next delay of the session.

        Args:
            session: The session waiting for its next attempt.
            sleeper: The cancellable wait primitive.

        Returns:
            The delay that was waited, in seconds.

        Raises:
            RetryInterruptedError: If the wait was cancelled.
        """
        delay = self.next_delay(session)
        logger.debug(f"Waiting {delay:.3f}s before attempt {session.attempt_count + 1}")
        sleeper.sleep(delay)
        return delay

    async def wait_async(self, session: RetrySession, sleeper: Sleeper) -> float:
        """Suspend the calling task for the next delay of the session.

        Args:
            session: The session waiting for its next attempt.
            sleeper: The cancellable wait primitive.

        Returns:
            The delay that was waited, in seconds.

        Raises:
            RetryInterruptedError: If the wait was cancelled.
        """
        delay = self.next_delay(session)
        logger.debug(f"Waiting {delay:.3f}s before attempt {session.attempt_count + 1}")
        await sleeper.sleep_async(delay)
        return delay
