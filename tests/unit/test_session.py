r"""Unit tests for RetrySession and the current session."""

from __future__ import annotations

from aretry.session import (
    DEFAULT_OPERATION_NAME,
    OPERATION_NAME_ATTRIBUTE,
    RetrySession,
    activate,
    get_current_session,
)


def test_session_defaults() -> None:
    session = RetrySession()
    assert session.attempt_count == 0
    assert session.last_failure is None
    assert session.parent is None
    assert not session.exhausted
    assert not session.ended
    assert session.policy_state == {}
    assert session.name == DEFAULT_OPERATION_NAME


def test_session_name_stored_as_attribute() -> None:
    session = RetrySession(name="charge-card")
    assert session.get_attribute(OPERATION_NAME_ATTRIBUTE) == "charge-card"
    session.set_attribute(OPERATION_NAME_ATTRIBUTE, "refund")
    assert session.name == "refund"


def test_session_attributes() -> None:
    session = RetrySession()
    assert not session.has_attribute("user_id")
    assert session.get_attribute("user_id", 0) == 0
    session.set_attribute("user_id", 42)
    assert session.has_attribute("user_id")
    assert session.remove_attribute("user_id") == 42
    assert session.remove_attribute("user_id") is None


def test_session_register_failure() -> None:
    session = RetrySession()
    error = ValueError("boom")
    session.register_failure(error)
    assert session.last_failure is error


def test_session_elapsed_non_negative() -> None:
    assert RetrySession().elapsed() >= 0.0


def test_current_session_outside_execute() -> None:
    assert get_current_session() is None


def test_activate_nests_sessions() -> None:
    outer = RetrySession(name="outer")
    inner = RetrySession(name="inner", parent=outer)
    with activate(outer):
        assert get_current_session() is outer
        with activate(inner):
            assert get_current_session() is inner
            assert get_current_session().parent is outer
        assert get_current_session() is outer
    assert get_current_session() is None
