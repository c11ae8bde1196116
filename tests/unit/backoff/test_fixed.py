r"""Unit tests for FixedBackoff."""

from __future__ import annotations

import pytest

from aretry.backoff import FixedBackoff


def test_fixed_backoff_constant_delay() -> None:
    backoff = FixedBackoff(interval=2.5)
    assert [backoff.calculate(attempt) for attempt in range(1, 5)] == [2.5, 2.5, 2.5, 2.5]


def test_fixed_backoff_default_interval() -> None:
    assert FixedBackoff().calculate(1) == 1.0


def test_fixed_backoff_zero_interval() -> None:
    assert FixedBackoff(interval=0.0).calculate(3) == 0.0


def test_fixed_backoff_negative_interval() -> None:
    with pytest.raises(ValueError, match=r"interval must be"):
        FixedBackoff(interval=-1.0)


def test_fixed_backoff_repr() -> None:
    assert repr(FixedBackoff(interval=0.5)) == "FixedBackoff(interval=0.5)"
