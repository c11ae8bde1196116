r"""Unit tests for the synchronous retry executor."""

from __future__ import annotations

from typing import NoReturn
from unittest.mock import Mock

import pytest

from aretry.backoff import ExponentialBackoff, FixedBackoff
from aretry.circuit_breaker import CircuitBreakerRegistry, CircuitState
from aretry.exceptions import (
    CircuitOpenError,
    RetryExhaustedError,
    RetryInterruptedError,
    SessionVetoedError,
)
from aretry.listeners import BaseRetryListener, RetryMetricsListener
from aretry.policy import (
    BaseRetryPolicy,
    CircuitBreakerRetryPolicy,
    ExceptionTypeRetryPolicy,
    MaxAttemptsRetryPolicy,
    PredicateRetryPolicy,
)
from aretry.retry import RetryExecutor
from aretry.session import RetrySession, get_current_session
from aretry.utils import ManualClock, Sleeper
from tests.helpers import FatalError, Flaky, RecordingListener, TransientError


class Shutdown(BaseException):
    """Non-Exception failure, like KeyboardInterrupt."""


@pytest.fixture
def executor(mock_sleeper: Mock) -> RetryExecutor:
    return RetryExecutor(
        MaxAttemptsRetryPolicy(max_attempts=3),
        ExponentialBackoff(initial_interval=0.1, max_interval=10.0),
        sleeper=mock_sleeper,
    )


#######################################
#     Tests for RetryExecutor init    #
#######################################


def test_executor_requires_retry_policy() -> None:
    with pytest.raises(ValueError, match=r"retry_policy must not be None"):
        RetryExecutor(None, FixedBackoff())


def test_executor_requires_backoff_policy() -> None:
    with pytest.raises(ValueError, match=r"backoff_policy must not be None"):
        RetryExecutor(MaxAttemptsRetryPolicy(), None)


def test_executor_defaults() -> None:
    executor = RetryExecutor(MaxAttemptsRetryPolicy(), FixedBackoff())
    assert isinstance(executor.sleeper, Sleeper)
    assert executor.get_active_retry_state_count() == 0
    assert executor.wrap_errors
    assert len(executor.listeners) == 0


##########################################
#     Tests for RetryExecutor.execute    #
##########################################


def test_execute_success_first_attempt(executor: RetryExecutor, mock_sleeper: Mock) -> None:
    operation = Flaky(failures=0)
    assert executor.execute(operation) == "ok"
    assert operation.calls == 1
    mock_sleeper.sleep.assert_not_called()


def test_execute_retries_until_success(executor: RetryExecutor, mock_sleeper: Mock) -> None:
    operation = Flaky(failures=2)
    assert executor.execute(operation) == "ok"
    assert operation.calls == 3
    assert [call.args[0] for call in mock_sleeper.sleep.call_args_list] == pytest.approx(
        [0.1, 0.2]
    )


def test_execute_exhausted_raises_with_cause(executor: RetryExecutor, mock_sleeper: Mock) -> None:
    operation = Flaky(failures=10)
    with pytest.raises(RetryExhaustedError, match=r"failed after 3 attempts") as exc_info:
        executor.execute(operation)
    assert operation.calls == 3
    assert exc_info.value.attempts == 3
    assert isinstance(exc_info.value.__cause__, TransientError)
    assert exc_info.value.last_failure is exc_info.value.__cause__
    assert mock_sleeper.sleep.call_count == 2


def test_execute_exhausted_without_wrapping(mock_sleeper: Mock) -> None:
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(max_attempts=2),
        FixedBackoff(0.0),
        sleeper=mock_sleeper,
        wrap_errors=False,
    )
    with pytest.raises(TransientError, match=r"attempt 2 failed"):
        executor.execute(Flaky(failures=10))


def test_execute_single_attempt_policy(mock_sleeper: Mock) -> None:
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(max_attempts=1), FixedBackoff(1.0), sleeper=mock_sleeper
    )
    operation = Flaky(failures=1)
    with pytest.raises(RetryExhaustedError):
        executor.execute(operation)
    assert operation.calls == 1
    mock_sleeper.sleep.assert_not_called()


def test_execute_recovery_after_exhaustion(executor: RetryExecutor) -> None:
    seen: list[RetrySession] = []

    def recovery(session: RetrySession) -> str:
        seen.append(session)
        return f"fallback after {session.last_failure}"

    result = executor.execute(Flaky(failures=10), recovery=recovery)
    assert result == "fallback after attempt 3 failed"
    assert seen[0].attempt_count == 3
    assert seen[0].exhausted


def test_execute_recovery_not_called_on_success(executor: RetryExecutor) -> None:
    recovery = Mock(return_value="fallback")
    assert executor.execute(Flaky(failures=1), recovery=recovery) == "ok"
    recovery.assert_not_called()


def test_execute_recovery_error_propagates(executor: RetryExecutor) -> None:
    def recovery(session: RetrySession) -> NoReturn:
        msg = "recovery failed"
        raise LookupError(msg)

    with pytest.raises(LookupError, match=r"recovery failed"):
        executor.execute(Flaky(failures=10), recovery=recovery)


def test_execute_non_retryable_failure_stops_immediately(mock_sleeper: Mock) -> None:
    executor = RetryExecutor(
        ExceptionTypeRetryPolicy(
            max_attempts=5, retryable_exceptions={TransientError: True, FatalError: False}
        ),
        FixedBackoff(0.5),
        sleeper=mock_sleeper,
    )
    operation = Flaky(failures=10, error=FatalError)
    with pytest.raises(RetryExhaustedError) as exc_info:
        executor.execute(operation)
    assert operation.calls == 1
    assert isinstance(exc_info.value.__cause__, FatalError)
    mock_sleeper.sleep.assert_not_called()


def test_execute_base_exception_propagates_unchanged(executor: RetryExecutor) -> None:
    journal: list[tuple] = []
    executor.register_listener(RecordingListener("a", journal))

    def operation() -> NoReturn:
        raise Shutdown

    with pytest.raises(Shutdown):
        executor.execute(operation)
    assert journal == [("a", "start", 0), ("a", "end", "Shutdown")]


######################################
#     Tests for the listener chain   #
######################################


def test_execute_listener_order(executor: RetryExecutor) -> None:
    journal: list[tuple] = []
    executor.register_listener(RecordingListener("a", journal))
    executor.register_listener(RecordingListener("b", journal))

    executor.execute(Flaky(failures=1))

    assert journal == [
        ("a", "start", 0),
        ("b", "start", 0),
        ("a", "error", 1),
        ("b", "error", 1),
        ("b", "end", None),
        ("a", "end", None),
    ]


def test_execute_listener_end_receives_last_failure(executor: RetryExecutor) -> None:
    journal: list[tuple] = []
    executor.register_listener(RecordingListener("a", journal))
    with pytest.raises(RetryExhaustedError):
        executor.execute(Flaky(failures=10))
    assert journal[-1] == ("a", "end", "TransientError")
    assert [entry for entry in journal if entry[1] == "error"] == [
        ("a", "error", 1),
        ("a", "error", 2),
        ("a", "error", 3),
    ]


def test_execute_veto_skips_operation(mock_sleeper: Mock) -> None:
    journal: list[tuple] = []
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(),
        FixedBackoff(0.0),
        [RecordingListener("a", journal), RecordingListener("b", journal, allow=False)],
        sleeper=mock_sleeper,
    )
    operation = Flaky(failures=0)
    with pytest.raises(SessionVetoedError):
        executor.execute(operation)
    assert operation.calls == 0
    assert journal == [("a", "start", 0), ("b", "start", 0), ("a", "end", "SessionVetoedError")]


def test_execute_listener_errors_do_not_change_outcome(
    executor: RetryExecutor, caplog: pytest.LogCaptureFixture
) -> None:
    class Broken(BaseRetryListener):
        def on_attempt_error(self, session: RetrySession, error: BaseException) -> None:
            raise RuntimeError

        def on_session_end(self, session: RetrySession, error: BaseException | None) -> None:
            raise RuntimeError

    executor.register_listener(Broken())
    assert executor.execute(Flaky(failures=1)) == "ok"
    assert "Broken.on_session_end" in caplog.text


def test_execute_metrics_listener_counts(mock_sleeper: Mock) -> None:
    metrics = RetryMetricsListener()
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(max_attempts=3), FixedBackoff(0.0), [metrics], sleeper=mock_sleeper
    )
    executor.execute(Flaky(failures=0), name="op")
    executor.execute(Flaky(failures=2), name="op")
    with pytest.raises(RetryExhaustedError):
        executor.execute(Flaky(failures=10), name="op")

    stats = metrics.get_operation_stats("op")
    assert stats.total_sessions == 3
    assert stats.success_count == 2
    assert stats.failure_count == 1
    assert stats.total_retry_attempts == 4


def test_execute_vetoed_session_counted_as_failure(mock_sleeper: Mock) -> None:
    metrics = RetryMetricsListener()
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(),
        FixedBackoff(0.0),
        [metrics, RecordingListener("veto", [], allow=False)],
        sleeper=mock_sleeper,
    )
    with pytest.raises(SessionVetoedError):
        executor.execute(Flaky(failures=0))
    total = metrics.get_total_stats()
    assert total.total_sessions == total.success_count + total.failure_count == 1


######################################
#     Tests for sessions and names   #
######################################


def test_execute_exposes_current_session(executor: RetryExecutor) -> None:
    seen: list[RetrySession | None] = []

    def operation() -> str:
        seen.append(get_current_session())
        return "ok"

    executor.execute(operation, name="lookup")
    assert seen[0] is not None
    assert seen[0].name == "lookup"
    assert seen[0].attempt_count == 1
    assert get_current_session() is None


def test_execute_nested_session_has_parent(executor: RetryExecutor) -> None:
    sessions: dict[str, RetrySession | None] = {}

    def inner() -> str:
        sessions["inner"] = get_current_session()
        return "inner"

    def outer() -> str:
        sessions["outer"] = get_current_session()
        return executor.execute(inner, name="inner")

    assert executor.execute(outer, name="outer") == "inner"
    assert sessions["inner"].parent is sessions["outer"]
    assert sessions["outer"].parent is None


def test_execute_policy_lifecycle() -> None:
    policy = Mock(spec=BaseRetryPolicy)
    policy.can_retry.return_value = False
    executor = RetryExecutor(policy, FixedBackoff(0.0))
    with pytest.raises(RetryExhaustedError):
        executor.execute(Flaky(failures=1))
    policy.open.assert_called_once()
    policy.before_attempt.assert_called_once()
    policy.register_failure.assert_called_once()
    policy.close.assert_called_once()


##########################################
#     Tests for circuit-breaker runs     #
##########################################


@pytest.fixture
def circuit_policy(
    registry: CircuitBreakerRegistry, manual_clock: ManualClock
) -> CircuitBreakerRetryPolicy:
    return CircuitBreakerRetryPolicy(
        MaxAttemptsRetryPolicy(max_attempts=5),
        registry=registry,
        name="inventory",
        failure_threshold=3,
        open_timeout=5.0,
        reset_timeout=10.0,
        clock=manual_clock,
    )


def test_execute_circuit_opens_and_rejects(
    circuit_policy: CircuitBreakerRetryPolicy, mock_sleeper: Mock
) -> None:
    executor = RetryExecutor(circuit_policy, FixedBackoff(0.0), sleeper=mock_sleeper)
    operation = Flaky(failures=100)

    with pytest.raises(RetryExhaustedError) as exc_info:
        executor.execute(operation)
    assert exc_info.value.attempts == 3
    assert circuit_policy.state == CircuitState.OPEN

    with pytest.raises(CircuitOpenError):
        executor.execute(operation)
    assert operation.calls == 3


def test_execute_circuit_rejection_uses_recovery(
    circuit_policy: CircuitBreakerRetryPolicy, mock_sleeper: Mock
) -> None:
    executor = RetryExecutor(circuit_policy, FixedBackoff(0.0), sleeper=mock_sleeper)
    with pytest.raises(RetryExhaustedError):
        executor.execute(Flaky(failures=100))

    operation = Flaky(failures=0)
    result = executor.execute(
        operation, recovery=lambda session: type(session.last_failure).__name__
    )
    assert result == "CircuitOpenError"
    assert operation.calls == 0


def test_execute_circuit_half_open_trial_closes(
    circuit_policy: CircuitBreakerRetryPolicy, mock_sleeper: Mock, manual_clock: ManualClock
) -> None:
    executor = RetryExecutor(circuit_policy, FixedBackoff(0.0), sleeper=mock_sleeper)
    with pytest.raises(RetryExhaustedError):
        executor.execute(Flaky(failures=100))

    manual_clock.advance(5.0)
    assert executor.execute(Flaky(failures=0)) == "ok"
    assert circuit_policy.state == CircuitState.CLOSED


def test_execute_circuit_half_open_trial_failure_reopens(
    circuit_policy: CircuitBreakerRetryPolicy, mock_sleeper: Mock, manual_clock: ManualClock
) -> None:
    executor = RetryExecutor(circuit_policy, FixedBackoff(0.0), sleeper=mock_sleeper)
    with pytest.raises(RetryExhaustedError):
        executor.execute(Flaky(failures=100))

    manual_clock.advance(5.0)
    operation = Flaky(failures=100)
    with pytest.raises(RetryExhaustedError) as exc_info:
        executor.execute(operation)
    assert exc_info.value.attempts == 1
    assert circuit_policy.state == CircuitState.OPEN


#################################
#     Tests for cancellation    #
#################################


def test_execute_cancelled_wait_raises_interrupted() -> None:
    journal: list[tuple] = []
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(max_attempts=3),
        FixedBackoff(30.0),
        [RecordingListener("a", journal)],
    )
    executor.cancel()
    operation = Flaky(failures=10)
    with pytest.raises(RetryInterruptedError) as exc_info:
        executor.execute(operation)
    assert operation.calls == 1
    assert isinstance(exc_info.value.__cause__, TransientError)
    assert journal[-1] == ("a", "end", "RetryInterruptedError")


def test_execute_cancelled_never_uses_recovery() -> None:
    executor = RetryExecutor(MaxAttemptsRetryPolicy(), FixedBackoff(30.0))
    executor.cancel()
    recovery = Mock(return_value="fallback")
    with pytest.raises(RetryInterruptedError):
        executor.execute(Flaky(failures=10), recovery=recovery)
    recovery.assert_not_called()


#########################################################
#     Tests for errors raised while handling failures   #
#########################################################


def test_execute_backoff_base_exception_closes_listeners_once(mock_sleeper: Mock) -> None:
    journal: list[tuple] = []
    metrics = RetryMetricsListener()
    mock_sleeper.sleep.side_effect = KeyboardInterrupt
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(max_attempts=3),
        FixedBackoff(1.0),
        [RecordingListener("a", journal), metrics],
        sleeper=mock_sleeper,
    )
    with pytest.raises(KeyboardInterrupt):
        executor.execute(Flaky(failures=10), name="op")
    assert journal == [("a", "start", 0), ("a", "error", 1), ("a", "end", "KeyboardInterrupt")]
    stats = metrics.get_operation_stats("op")
    assert stats.success_count + stats.failure_count == stats.total_sessions == 1


def test_execute_backoff_error_closes_listeners(mock_sleeper: Mock) -> None:
    journal: list[tuple] = []
    mock_sleeper.sleep.side_effect = RuntimeError("clock went backwards")
    executor = RetryExecutor(
        MaxAttemptsRetryPolicy(max_attempts=3),
        FixedBackoff(1.0),
        [RecordingListener("a", journal)],
        sleeper=mock_sleeper,
    )
    with pytest.raises(RuntimeError, match=r"clock went backwards"):
        executor.execute(Flaky(failures=10))
    assert journal[-1] == ("a", "end", "RuntimeError")


def test_execute_policy_error_closes_listeners(mock_sleeper: Mock) -> None:
    journal: list[tuple] = []
    metrics = RetryMetricsListener()

    def predicate(error: BaseException) -> bool:
        msg = f"cannot classify {error}"
        raise ValueError(msg)

    executor = RetryExecutor(
        PredicateRetryPolicy(predicate),
        FixedBackoff(0.0),
        [RecordingListener("a", journal), metrics],
        sleeper=mock_sleeper,
    )
    with pytest.raises(ValueError, match=r"cannot classify"):
        executor.execute(Flaky(failures=10), name="op")
    assert journal == [("a", "start", 0), ("a", "error", 1), ("a", "end", "ValueError")]
    stats = metrics.get_operation_stats("op")
    assert (stats.total_sessions, stats.success_count, stats.failure_count) == (1, 0, 1)


def test_execute_recovery_error_does_not_end_session_twice(executor: RetryExecutor) -> None:
    journal: list[tuple] = []
    executor.register_listener(RecordingListener("a", journal))

    def recovery(session: RetrySession) -> NoReturn:
        msg = "fallback unavailable"
        raise FatalError(msg)

    with pytest.raises(FatalError, match=r"fallback unavailable"):
        executor.execute(Flaky(failures=10), recovery=recovery)
    assert [entry for entry in journal if entry[1] == "end"] == [("a", "end", "TransientError")]
