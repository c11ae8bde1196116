r"""Retry listener aggregating counters per operation.

The aggregator counts sessions, successes, failures, retries and time
spent, both globally and per operation name (the ``operation_name``
session attribute, ``"DEFAULT"`` when unset).

Example:
    ```pycon
    >>> from aretry import RetryExecutor
    >>> from aretry.backoff import FixedBackoff
    >>> from aretry.listeners import RetryMetricsListener
    >>> from aretry.policy import MaxAttemptsRetryPolicy
    >>> metrics = RetryMetricsListener()
    >>> executor = RetryExecutor(
    ...     MaxAttemptsRetryPolicy(3), FixedBackoff(0.0), listeners=[metrics]
    ... )
    >>> executor.execute(lambda: "ok", name="ping")
    'ok'
    >>> stats = metrics.get_operation_stats("ping")
    >>> stats.total_sessions, stats.success_count, stats.total_retry_attempts
    (1, 1, 0)

    ```
"""

from __future__ import annotations

__all__ = [
    "MetricsSnapshot",
    "OperationStats",
    "OperationStatsSnapshot",
    "RetryMetricsListener",
]

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aretry.listeners.base import BaseRetryListener
from aretry.utils.clock import Clock, system_clock

if TYPE_CHECKING:
    from aretry.session import RetrySession

logger: logging.Logger = logging.getLogger(__name__)

START_TIME_ATTRIBUTE = "metric_start_time"
COUNTED_AS_ATTRIBUTE = "metric_operation_name"


@dataclass
class OperationStats:
    """Mutable counters of one operation.

    The counters are only updated under the lock of the owning
    ``RetryMetricsListener``.
    """

    total_sessions: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_retry_attempts: int = 0
    total_duration_ms: float = 0.0

    def freeze(self, name: str) -> OperationStatsSnapshot:
        return OperationStatsSnapshot(
            name=name,
            total_sessions=self.total_sessions,
            success_count=self.success_count,
            failure_count=self.failure_count,
            total_retry_attempts=self.total_retry_attempts,
            total_duration_ms=self.total_duration_ms,
        )


@dataclass(frozen=True)
class OperationStatsSnapshot:
    """Point-in-time view of the counters of one operation.

    Attributes:
        name: The operation name, or ``"TOTAL"`` for the aggregate.
        total_sessions: The number of started sessions.
        success_count: The number of sessions that succeeded.
        failure_count: The number of sessions that failed.
        total_retry_attempts: The number of attempts beyond the first one,
            summed over the ended sessions.
        total_duration_ms: The time spent in ended sessions, in
            milliseconds.
    """

    name: str
    total_sessions: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_retry_attempts: int = 0
    total_duration_ms: float = 0.0

    @property
    def average_duration_ms(self) -> float:
        if self.total_sessions == 0:
            return 0.0
        return self.total_duration_ms / self.total_sessions

    @property
    def success_rate(self) -> float:
        """Percentage of started sessions that succeeded, between 0 and 100."""
        if self.total_sessions == 0:
            return 0.0
        return self.success_count / self.total_sessions * 100


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time view of all the counters.

    Attributes:
        total: The aggregate over every operation.
        operations: The counters per operation name.
    """

    total: OperationStatsSnapshot
    operations: dict[str, OperationStatsSnapshot] = field(default_factory=dict)


class RetryMetricsListener(BaseRetryListener):
    r"""Listener accumulating retry statistics.

    Every counter update happens under a single lock, so many sessions can
    report concurrently.

    Args:
        clock: The time source used to measure session durations. Defaults
            to the system clock.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock if clock is not None else system_clock
        self._total = OperationStats()
        self._operations: dict[str, OperationStats] = {}
        self._lock = threading.Lock()

    def _get_stats(self, name: str) -> OperationStats:
        stats = self._operations.get(name)
        if stats is None:
            stats = self._operations[name] = OperationStats()
        return stats

    def on_session_start(self, session: RetrySession) -> bool:
        name = session.name
        session.set_attribute(START_TIME_ATTRIBUTE, self._clock.monotonic())
        session.set_attribute(COUNTED_AS_ATTRIBUTE, name)
        with self._lock:
            self._total.total_sessions += 1
            self._get_stats(name).total_sessions += 1
        return True

    def on_session_end(self, session: RetrySession, error: BaseException | None) -> None:
        start_time = session.get_attribute(START_TIME_ATTRIBUTE)
        if start_time is None:
            logger.debug(f"Session {session.name!r} was not counted at start, ignoring it")
            return
        duration_ms = (self._clock.monotonic() - start_time) * 1000
        retries = max(session.attempt_count - 1, 0)
        name = session.name
        counted_as = session.get_attribute(COUNTED_AS_ATTRIBUTE, name)
        with self._lock:
            if counted_as != name:
                # The operation named itself after the session started
                self._get_stats(counted_as).total_sessions -= 1
                self._get_stats(name).total_sessions += 1
            stats = self._get_stats(name)
            for counters in (self._total, stats):
                if error is None:
                    counters.success_count += 1
                else:
                    counters.failure_count += 1
                counters.total_retry_attempts += retries
                counters.total_duration_ms += duration_ms

    def get_operation_stats(self, name: str) -> OperationStatsSnapshot:
        """Return the counters of one operation.

        Args:
            name: The operation name.

        Returns:
            The counters, all zero if the operation was never seen.
        """
        with self._lock:
            stats = self._operations.get(name)
            return stats.freeze(name) if stats is not None else OperationStatsSnapshot(name=name)

    def get_total_stats(self) -> OperationStatsSnapshot:
        with self._lock:
            return self._total.freeze("TOTAL")

    def snapshot(self) -> MetricsSnapshot:
        """Return a consistent view of the aggregate and per-operation counters."""
        with self._lock:
            return MetricsSnapshot(
                total=self._total.freeze("TOTAL"),
                operations={
                    name: stats.freeze(name) for name, stats in sorted(self._operations.items())
                },
            )

    def reset(self) -> None:
        with self._lock:
            self._total = OperationStats()
            self._operations.clear()

    def format_stats(self) -> str:
        """Return a human-readable report of the counters.

        Returns:
            A multi-line report with the aggregate first, then one block
            per operation.
        """
        snapshot = self.snapshot()
        total = snapshot.total
        lines = [
            "===== Retry statistics =====",
            f"Total sessions: {total.total_sessions}",
            f"Successful sessions: {total.success_count}",
            f"Failed sessions: {total.failure_count}",
            f"Total retries: {total.total_retry_attempts}",
            f"Average duration: {total.average_duration_ms:.2f}ms",
        ]
        for name, stats in snapshot.operations.items():
            lines.extend(
                [
                    f"Operation: {name}",
                    f"  Total: {stats.total_sessions}",
                    f"  Successes: {stats.success_count}",
                    f"  Failures: {stats.failure_count}",
                    f"  Retries: {stats.total_retry_attempts}",
                    f"  Average duration: {stats.average_duration_ms:.2f}ms",
                    f"  Success rate: {stats.success_rate:.2f}%",
                ]
            )
        return "\n".join(lines)

    def log_stats(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        """Write the report of ``format_stats`` to a logger.

        Args:
            logger: The logger to write to. Defaults to this module's logger.
            level: The level of the record (default: ``logging.INFO``).
        """
        target = logger if logger is not None else logging.getLogger(__name__)
        target.log(level, self.format_stats())
