r"""Unit tests for MaxAttemptsRetryPolicy and NeverRetryPolicy."""

from __future__ import annotations

import pytest

from aretry.policy import MaxAttemptsRetryPolicy, NeverRetryPolicy
from aretry.session import RetrySession


@pytest.mark.parametrize(
    ("attempt_count", "expected"), [(0, True), (1, True), (2, True), (3, False)]
)
def test_max_attempts_retry_policy(attempt_count: int, expected: bool) -> None:
    policy = MaxAttemptsRetryPolicy(max_attempts=3)
    session = RetrySession(attempt_count=attempt_count, last_failure=ValueError())
    assert policy.can_retry(session) is expected


@pytest.mark.parametrize(("attempt_count", "expected"), [(2, False), (3, True)])
def test_max_attempts_retry_policy_is_exhausted(attempt_count: int, expected: bool) -> None:
    policy = MaxAttemptsRetryPolicy(max_attempts=3)
    session = RetrySession(attempt_count=attempt_count, last_failure=ValueError())
    assert policy.is_exhausted(session) is expected


def test_max_attempts_retry_policy_retries_any_failure() -> None:
    policy = MaxAttemptsRetryPolicy(max_attempts=5)
    assert policy.can_retry(RetrySession(attempt_count=1, last_failure=KeyError("x")))


def test_max_attempts_retry_policy_invalid() -> None:
    with pytest.raises(ValueError, match=r"max_attempts must be >= 1, got 0"):
        MaxAttemptsRetryPolicy(max_attempts=0)


def test_max_attempts_retry_policy_repr() -> None:
    assert repr(MaxAttemptsRetryPolicy(4)) == "MaxAttemptsRetryPolicy(max_attempts=4)"


def test_never_retry_policy() -> None:
    policy = NeverRetryPolicy()
    assert not policy.can_retry(RetrySession())
    assert not policy.can_retry(RetrySession(attempt_count=1, last_failure=ValueError()))


def test_policy_state_is_private_per_policy() -> None:
    first, second = MaxAttemptsRetryPolicy(), MaxAttemptsRetryPolicy()
    session = RetrySession()
    first.get_state(session)["value"] = 1
    assert second.get_state(session) == {}
    assert first.get_state(session) == {"value": 1}
