r"""Unit tests for the shared backoff behavior."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from aretry.backoff import BackoffState, ExponentialBackoff, FixedBackoff
from aretry.exceptions import RetryInterruptedError
from aretry.session import RetrySession
from aretry.utils import Sleeper

if TYPE_CHECKING:
    from unittest.mock import Mock


def test_next_delay_uses_attempt_count() -> None:
    backoff = ExponentialBackoff(initial_interval=1.0, max_interval=100.0)
    session = RetrySession(attempt_count=3)
    assert backoff.next_delay(session) == 4.0


def test_next_delay_before_first_attempt_uses_first_delay() -> None:
    backoff = ExponentialBackoff(initial_interval=1.0)
    assert backoff.next_delay(RetrySession()) == 1.0


def test_next_delay_records_backoff_state() -> None:
    backoff = FixedBackoff(interval=0.25)
    session = RetrySession(attempt_count=1)
    backoff.next_delay(session)
    backoff.next_delay(session)
    assert session.backoff_state == BackoffState(last_delay=0.25, waits=2)


def test_wait_sleeps_for_the_delay(mock_sleeper: Mock) -> None:
    backoff = FixedBackoff(interval=0.75)
    assert backoff.wait(RetrySession(attempt_count=1), mock_sleeper) == 0.75
    mock_sleeper.sleep.assert_called_once_with(0.75)


def test_wait_propagates_interruption() -> None:
    sleeper = Sleeper()
    sleeper.cancel()
    with pytest.raises(RetryInterruptedError, match=r"interrupted"):
        FixedBackoff(interval=5.0).wait(RetrySession(attempt_count=1), sleeper)


@pytest.mark.asyncio
async def test_wait_async_sleeps_for_the_delay(mock_sleeper: Mock) -> None:
    backoff = FixedBackoff(interval=0.5)
    assert await backoff.wait_async(RetrySession(attempt_count=2), mock_sleeper) == 0.5
    mock_sleeper.sleep_async.assert_awaited_once_with(0.5)
