r"""Unit tests for ListenerManager."""

from __future__ import annotations

import pytest

from aretry.exceptions import SessionVetoedError
from aretry.listeners import BaseRetryListener
from aretry.retry import ListenerManager
from aretry.session import RetrySession
from tests.helpers import RecordingListener


class BrokenListener(BaseRetryListener):
    def on_attempt_error(self, session: RetrySession, error: BaseException) -> None:
        msg = "broken error hook"
        raise RuntimeError(msg)

    def on_session_end(self, session: RetrySession, error: BaseException | None) -> None:
        msg = "broken end hook"
        raise RuntimeError(msg)


class ExplodingStartListener(BaseRetryListener):
    def on_session_start(self, session: RetrySession) -> bool:
        msg = "cannot start"
        raise ValueError(msg)


def test_manager_start_in_order_end_in_reverse() -> None:
    journal: list[tuple] = []
    manager = ListenerManager([RecordingListener("a", journal), RecordingListener("b", journal)])
    session = RetrySession()

    opened = manager.on_session_start(session)
    manager.on_attempt_error(session, ValueError())
    manager.on_session_end(session, None)

    assert len(opened) == 2
    assert journal == [
        ("a", "start", 0),
        ("b", "start", 0),
        ("a", "error", 0),
        ("b", "error", 0),
        ("b", "end", None),
        ("a", "end", None),
    ]


def test_manager_veto_closes_opened_listeners() -> None:
    journal: list[tuple] = []
    veto = RecordingListener("b", journal, allow=False)
    manager = ListenerManager(
        [RecordingListener("a", journal), veto, RecordingListener("c", journal)]
    )

    with pytest.raises(SessionVetoedError, match=r"vetoed by RecordingListener") as exc_info:
        manager.on_session_start(RetrySession())

    assert exc_info.value.listener is veto
    assert journal == [
        ("a", "start", 0),
        ("b", "start", 0),
        ("a", "end", "SessionVetoedError"),
    ]


def test_manager_start_error_closes_opened_listeners() -> None:
    journal: list[tuple] = []
    manager = ListenerManager([RecordingListener("a", journal), ExplodingStartListener()])

    with pytest.raises(ValueError, match=r"cannot start"):
        manager.on_session_start(RetrySession())

    assert journal == [("a", "start", 0), ("a", "end", "ValueError")]


def test_manager_hook_errors_are_logged_and_skipped(caplog: pytest.LogCaptureFixture) -> None:
    journal: list[tuple] = []
    manager = ListenerManager([RecordingListener("a", journal), BrokenListener()])
    session = RetrySession()

    manager.on_attempt_error(session, ValueError())
    manager.on_session_end(session, None)

    assert journal == [("a", "error", 0), ("a", "end", None)]
    assert "BrokenListener.on_attempt_error" in caplog.text
    assert "BrokenListener.on_session_end" in caplog.text


def test_manager_register_appends() -> None:
    manager = ListenerManager()
    manager.register(BaseRetryListener())
    assert len(manager) == 1
