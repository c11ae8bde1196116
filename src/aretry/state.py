r"""Retry state store for stateful retries.

In stateful mode, a caller-supplied key identifies one logical retry
sequence spanning several ``execute`` calls. The store keeps the progress
of each sequence (attempt count and last failure) so a later call with the
same key resumes it instead of restarting from zero.

The store is safe for concurrent use with distinct keys. It does not
serialize access to the same key: at most one caller drives a given
sequence at a time.
"""

from __future__ import annotations

__all__ = ["RetryState", "RetryStateStore"]

import logging
import threading
from dataclasses import dataclass

logger: logging.Logger = logging.getLogger(__name__)


@dataclass
class RetryState:
    """Progress of one logical retry sequence.

    Attributes:
        key: The caller-supplied key of the sequence.
        attempt_count: The number of attempts made so far.
        last_failure: The failure of the last attempt, or ``None``.
        force_refresh: Whether the next call restarts the sequence from
            zero instead of resuming it.
    """

    key: str
    attempt_count: int = 0
    last_failure: BaseException | None = None
    force_refresh: bool = False


class RetryStateStore:
    r"""Concurrency-safe mapping from key to retry progress.

    Args:
        clear_on_success: Whether the executor removes the state of a
            sequence whose attempt succeeded (default: True).

    Example:
        ```pycon
        >>> from aretry.state import RetryStateStore
        >>> store = RetryStateStore()
        >>> state = store.get_or_create("T1")
        >>> state.attempt_count
        0
        >>> store.count()
        1
        >>> store.remove("T1")
        >>> store.count()
        0

        ```
    """

    def __init__(self, clear_on_success: bool = True) -> None:
        self.clear_on_success = clear_on_success
        self._states: dict[str, RetryState] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(count={self.count()}, "
            f"clear_on_success={self.clear_on_success})"
        )

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._states

    def __len__(self) -> int:
        return self.count()

    def get_or_create(self, key: str, force_refresh: bool = False) -> RetryState:
        """Return the state of ``key``, creating it if needed.

        Args:
            key: The key of the sequence.
            force_refresh: Whether to restart an existing sequence from
                zero.

        Returns:
            The state registered under ``key``.
        """
        with self._lock:
            state = self._states.get(key)
            if state is None:
                state = RetryState(key=key, force_refresh=force_refresh)
                self._states[key] = state
                logger.debug(f"Created retry state {key!r}")
            elif force_refresh or state.force_refresh:
                logger.debug(f"Refreshing retry state {key!r} ({state.attempt_count} attempts)")
                state.attempt_count = 0
                state.last_failure = None
            return state

    def get(self, key: str) -> RetryState | None:
        with self._lock:
            return self._states.get(key)

    def update(
        self, key: str, attempt_count: int, last_failure: BaseException | None
    ) -> RetryState:
        """Persist the progress of the sequence ``key``.

        Args:
            key: The key of the sequence.
            attempt_count: The number of attempts made so far.
            last_failure: The failure of the last attempt.

        Returns:
            The updated state.
        """
        with self._lock:
            state = self._states.get(key)
            if state is None:
                state = RetryState(key=key)
                self._states[key] = state
            state.attempt_count = attempt_count
            state.last_failure = last_failure
            return state

    def remove(self, key: str) -> None:
        """Remove the state of ``key``, if any."""
        with self._lock:
            if self._states.pop(key, None) is not None:
                logger.debug(f"Removed retry state {key!r}")

    def clear(self) -> None:
        with self._lock:
            self._states.clear()

    def count(self) -> int:
        """Return the number of live retry states."""
        with self._lock:
            return len(self._states)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._states)
