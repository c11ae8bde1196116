r"""Exponential backoff policies, with and without jitter."""

from __future__ import annotations

__all__ = ["ExponentialBackoff", "ExponentialJitterBackoff"]

import random

from aretry.backoff.base import BaseBackoffPolicy


class ExponentialBackoff(BaseBackoffPolicy):
    """Exponential backoff policy.

    Calculates delay as: initial_interval * multiplier ** (attempt - 1),
    capped at max_interval.

    Args:
        initial_interval: The delay in seconds after the first failure
            (default: 0.1).
        multiplier: The growth factor between consecutive delays. Must be
            >= 1 (default: 2.0).
        max_interval: The maximum delay in seconds (default: 30.0).

    Example:
        ```pycon
        >>> from aretry.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(initial_interval=1.0, multiplier=2.0, max_interval=10.0)
        >>> [backoff.calculate(attempt) for attempt in range(1, 6)]
        [1.0, 2.0, 4.0, 8.0, 10.0]

        ```
    """

    def __init__(
        self,
        initial_interval: float = 0.1,
        multiplier: float = 2.0,
        max_interval: float = 30.0,
    ) -> None:
        if initial_interval < 0:
            msg = f"initial_interval must be non-negative, got {initial_interval}"
            raise ValueError(msg)
        if multiplier < 1:
            msg = f"multiplier must be >= 1, got {multiplier}"
            raise ValueError(msg)
        if max_interval < initial_interval:
            msg = (
                f"max_interval must be >= initial_interval, got {max_interval} "
                f"(initial_interval={initial_interval})"
            )
            raise ValueError(msg)

        self.initial_interval = initial_interval
        self.multiplier = multiplier
        self.max_interval = max_interval

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(initial_interval={self.initial_interval}, "
            f"multiplier={self.multiplier}, max_interval={self.max_interval})"
        )

    def calculate(self, attempt: int) -> float:
        exponent = max(attempt - 1, 0)
        try:
            delay = self.initial_interval * (self.multiplier**exponent)
        except OverflowError:
            return self.max_interval
        return min(delay, self.max_interval)


class ExponentialJitterBackoff(ExponentialBackoff):
    """Exponential backoff policy with full jitter.

    The delay is drawn uniformly from ``[0, computed_delay]`` where
    ``computed_delay`` is the capped exponential delay. Spreading the waits
    desynchronizes clients that failed at the same time.

    Args:
        initial_interval: The delay in seconds after the first failure
            (default: 0.1).
        multiplier: The growth factor between consecutive delays. Must be
            >= 1 (default: 2.0).
        max_interval: The maximum delay in seconds (default: 30.0).
        rng: Optional random number generator, mostly useful to make tests
            deterministic. Defaults to the ``random`` module.

    Example:
        ```pycon
        >>> import random
        >>> from aretry.backoff import ExponentialJitterBackoff
        >>> backoff = ExponentialJitterBackoff(initial_interval=1.0, rng=random.Random(42))
        >>> 0.0 <= backoff.calculate(3) <= 4.0
        True

        ```
    """

    def __init__(
        self,
        initial_interval: float = 0.1,
        multiplier: float = 2.0,
        max_interval: float = 30.0,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(
            initial_interval=initial_interval, multiplier=multiplier, max_interval=max_interval
        )
        self._rng = rng

    def calculate(self, attempt: int) -> float:
        delay = super().calculate(attempt)
        uniform = self._rng.uniform if self._rng is not None else random.uniform
        return uniform(0, delay)  # noqa: S311
