r"""Operations and listeners shared by the tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from aretry.listeners import BaseRetryListener

if TYPE_CHECKING:
    from aretry.session import RetrySession


class TransientError(Exception):
    """Failure that is worth retrying."""


class FatalError(Exception):
    """Failure that is not worth retrying."""


class Flaky:
    """Operation failing a fixed number of times before succeeding.

    Args:
        failures: The number of leading attempts that fail.
        error: The exception type raised by the failing attempts.
        result: The value returned once the attempts succeed.
    """

    def __init__(
        self, failures: int, error: type[Exception] = TransientError, result: str = "ok"
    ) -> None:
        self.failures = failures
        self.error = error
        self.result = result
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            msg = f"attempt {self.calls} failed"
            raise self.error(msg)
        return self.result

    async def run_async(self) -> str:
        return self()


class RecordingListener(BaseRetryListener):
    """Listener appending every hook call to a shared journal.

    Args:
        name: The name written in the journal.
        journal: The list receiving ``(name, hook, detail)`` tuples.
        allow: The value returned by ``on_session_start``.
    """

    def __init__(self, name: str, journal: list[tuple], allow: bool = True) -> None:
        self.name = name
        self.journal = journal
        self.allow = allow

    def on_session_start(self, session: RetrySession) -> bool:
        self.journal.append((self.name, "start", session.attempt_count))
        return self.allow

    def on_attempt_error(self, session: RetrySession, error: BaseException) -> None:
        self.journal.append((self.name, "error", session.attempt_count))

    def on_session_end(self, session: RetrySession, error: BaseException | None) -> None:
        self.journal.append((self.name, "end", type(error).__name__ if error else None))
