r"""Fixed backoff policy."""

from __future__ import annotations

__all__ = ["FixedBackoff"]

from aretry.backoff.base import BaseBackoffPolicy


class FixedBackoff(BaseBackoffPolicy):
    """Fixed backoff policy.

    Returns the same delay after every failed attempt.

    Args:
        interval: The delay in seconds between attempts (default: 1.0).

    Example:
        ```pycon
        >>> from aretry.backoff import FixedBackoff
        >>> backoff = FixedBackoff(interval=0.5)
        >>> backoff.calculate(1)
        0.5
        >>> backoff.calculate(10)
        0.5

        ```
    """

    def __init__(self, interval: float = 1.0) -> None:
        if interval < 0:
            msg = f"interval must be non-negative, got {interval}"
            raise ValueError(msg)

        self.interval = interval

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(interval={self.interval})"

    def calculate(self, attempt: int) -> float:  # noqa: ARG002
        return self.interval
