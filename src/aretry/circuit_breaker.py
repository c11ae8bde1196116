r"""Circuit breaker state machine and process-wide registry.

A circuit is a failure-tracking unit shared by every session that uses
the same circuit name. It has three states:

- CLOSED: Normal operation, attempts go through
- OPEN: After N consecutive failures, attempts are rejected without being made
- HALF_OPEN: After the open timeout, one trial attempt checks whether the
  protected service recovered

Circuits live in a ``CircuitBreakerRegistry``. They are created lazily on
first use, never destroyed, and only go back to a pristine state through
an explicit ``reset``.

Example:
    ```pycon
    >>> from aretry.circuit_breaker import CircuitBreakerRegistry
    >>> registry = CircuitBreakerRegistry()
    >>> breaker = registry.get_or_create("inventory", failure_threshold=2)
    >>> breaker.record_failure(Exception("error"))
    >>> breaker.record_failure(Exception("error"))
    >>> registry.snapshot()["inventory"].state
    <CircuitState.OPEN: 'open'>

    ```
"""

from __future__ import annotations

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitSnapshot",
    "CircuitState",
    "default_registry",
]

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from aretry.exceptions import CircuitOpenError
from aretry.utils.clock import Clock, system_clock

if TYPE_CHECKING:
    from collections.abc import Callable

logger: logging.Logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states.

    Attributes:
        CLOSED: Normal operation, attempts are allowed.
        OPEN: Circuit is open, attempts are rejected without being made.
        HALF_OPEN: Testing if the service recovered, allows one trial attempt.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of a circuit.

    Attributes:
        name: The circuit name.
        state: The circuit state.
        failure_count: The number of consecutive failures.
        opened_at: Monotonic timestamp of the last transition to OPEN, or
            ``None`` if the circuit never opened since the last reset.
    """

    name: str
    state: CircuitState
    failure_count: int
    opened_at: float | None


class CircuitBreaker:
    r"""Circuit breaker for preventing cascading failures.

    Thread-safe implementation: every check-and-transition happens under
    one lock per circuit, so two concurrent failures can never open the
    circuit twice or miss a transition.

    Args:
        name: The circuit name, used in logs and errors.
        failure_threshold: Number of consecutive failures before opening
            the circuit. Must be >= 0; 0 means the circuit never opens.
            Default is 5.
        open_timeout: Time in seconds the circuit stays OPEN after the
            threshold is crossed, before letting a trial attempt through.
            Must be >= 0. Default is 5.0 seconds.
        reset_timeout: Time in seconds the circuit stays OPEN after a failed
            trial attempt. Must be >= 0. Default is 10.0 seconds.
        expected_exception: Optional exception type or tuple of exception
            types that count as failures. If None, any exception counts as
            a failure. Default is None.
        on_state_change: Optional callback function called when the circuit
            state changes. Receives (old_state: CircuitState, new_state:
            CircuitState).
        clock: The time source. Defaults to the system clock.

    Raises:
        ValueError: If a threshold or timeout is negative.

    Example:
        ```pycon
        >>> from aretry.circuit_breaker import CircuitBreaker, CircuitState
        >>> from aretry.utils import ManualClock
        >>> clock = ManualClock()
        >>> cb = CircuitBreaker(failure_threshold=3, open_timeout=5.0, clock=clock)
        >>> for _ in range(3):
        ...     cb.record_failure(Exception("error"))
        ...
        >>> cb.state
        <CircuitState.OPEN: 'open'>
        >>> clock.advance(5.0)
        >>> cb.acquire()
        True
        >>> cb.state
        <CircuitState.HALF_OPEN: 'half_open'>
        >>> cb.record_success()
        >>> cb.state
        <CircuitState.CLOSED: 'closed'>

        ```
    """

    def __init__(
        self,
        name: str = "default",
        *,
        failure_threshold: int = 5,
        open_timeout: float = 5.0,
        reset_timeout: float = 10.0,
        expected_exception: type[BaseException] | tuple[type[BaseException], ...] | None = None,
        on_state_change: Callable[[CircuitState, CircuitState], None] | None = None,
        clock: Clock | None = None,
    ) -> None:
        if failure_threshold < 0:
            msg = f"failure_threshold must be >= 0, got {failure_threshold}"
            raise ValueError(msg)
        if open_timeout < 0:
            msg = f"open_timeout must be >= 0, got {open_timeout}"
            raise ValueError(msg)
        if reset_timeout < 0:
            msg = f"reset_timeout must be >= 0, got {reset_timeout}"
            raise ValueError(msg)

        self.name = name
        self.failure_threshold = failure_threshold
        self.open_timeout = open_timeout
        self.reset_timeout = reset_timeout
        self._expected_exception = expected_exception
        self._on_state_change = on_state_change
        self._clock = clock if clock is not None else system_clock

        # State tracking (protected by lock)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None
        self._blackout = open_timeout
        self._trial_in_flight = False
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(name={self.name!r}, state={self.state.value}, "
            f"failure_count={self.failure_count}, failure_threshold={self.failure_threshold})"
        )

    @property
    def state(self) -> CircuitState:
        """The current circuit state."""
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        """The current number of consecutive failures."""
        with self._lock:
            return self._failure_count

    @property
    def opened_at(self) -> float | None:
        """Monotonic timestamp of the last transition to OPEN."""
        with self._lock:
            return self._opened_at

    def snapshot(self) -> CircuitSnapshot:
        """Return a consistent view of the circuit.

        Returns:
            The state, failure count and opening time read under the lock.
        """
        with self._lock:
            return CircuitSnapshot(
                name=self.name,
                state=self._state,
                failure_count=self._failure_count,
                opened_at=self._opened_at,
            )

    def _change_state(self, new_state: CircuitState) -> None:
        """Change the circuit state and invoke callback.

        Internal method to transition between states. Must be called with lock held.

        Args:
            new_state: The new state to transition to.
        """
        old_state = self._state
        if old_state != new_state:
            self._state = new_state
            logger.debug(
                f"Circuit {self.name!r} state changed: {old_state.value} -> {new_state.value}"
            )

            if self._on_state_change is not None:
                try:
                    self._on_state_change(old_state, new_state)
                except Exception:
                    logger.exception(f"Error in circuit {self.name!r} state change callback")

    def _open(self, blackout: float) -> None:
        """Open the circuit for ``blackout`` seconds. Must be called with lock held."""
        self._opened_at = self._clock.monotonic()
        self._blackout = blackout
        self._trial_in_flight = False
        self._change_state(CircuitState.OPEN)

    def _reject(self, message: str, retry_after: float | None) -> CircuitOpenError:
        return CircuitOpenError(message, circuit_name=self.name, retry_after=retry_after)

    def acquire(self) -> bool:
        """Check whether an attempt may go through the circuit.

        In OPEN state, the circuit moves to HALF_OPEN once its blackout
        elapsed and admits the caller as the single trial attempt. While
        the trial is in flight, other callers are rejected.

        Returns:
            ``True`` if the caller was admitted as the trial attempt of a
            HALF_OPEN circuit, ``False`` for a regular attempt.

        Raises:
            CircuitOpenError: If the circuit rejects the attempt.
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                opened_at = self._opened_at if self._opened_at is not None else 0.0
                elapsed = self._clock.monotonic() - opened_at
                if elapsed < self._blackout:
                    retry_after = self._blackout - elapsed
                    msg = (
                        f"Circuit {self.name!r} is OPEN (failed {self._failure_count} times). "
                        f"Retry after {retry_after:.1f}s"
                    )
                    raise self._reject(msg, retry_after)
                self._change_state(CircuitState.HALF_OPEN)
                self._trial_in_flight = True
                return True
            if self._state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    msg = f"Circuit {self.name!r} is HALF_OPEN and its trial attempt is in flight"
                    raise self._reject(msg, None)
                self._trial_in_flight = True
                return True
            return False

    def release_trial(self) -> None:
        """Give back a trial slot that ended without success or failure."""
        with self._lock:
            self._trial_in_flight = False

    def is_open(self) -> bool:
        """Indicate whether the circuit currently rejects attempts.

        Unlike ``acquire``, this never changes the state.

        Returns:
            ``True`` if the circuit is OPEN and its blackout has not
            elapsed yet.
        """
        with self._lock:
            if self._state != CircuitState.OPEN:
                return False
            opened_at = self._opened_at if self._opened_at is not None else 0.0
            return self._clock.monotonic() - opened_at < self._blackout

    def call(self, func: Callable[[], object]) -> object:
        """Execute a function through the circuit breaker.

        Args:
            func: A callable function to execute through the circuit breaker.
                The function should take no arguments.

        Returns:
            The return value from the executed function.

        Raises:
            CircuitOpenError: If the circuit rejects the attempt.
            Any exception raised by the function will be propagated after
                recording the failure.

        Example:
            ```pycon
            >>> from aretry.circuit_breaker import CircuitBreaker
            >>> cb = CircuitBreaker(failure_threshold=3)
            >>> cb.call(lambda: "success")
            'success'

            ```
        """
        self.acquire()
        try:
            result = func()
        except Exception as exc:
            self.record_failure(exc)
            raise
        else:
            self.record_success()
            return result

    def record_success(self) -> None:
        """Record a successful attempt.

        Resets the failure count and closes the circuit if it was HALF_OPEN.
        """
        with self._lock:
            self._failure_count = 0
            self._trial_in_flight = False
            if self._state == CircuitState.HALF_OPEN:
                self._change_state(CircuitState.CLOSED)
                logger.info(f"Circuit {self.name!r} recovery successful, circuit CLOSED")

    def record_failure(self, exception: BaseException) -> None:
        """Record a failed attempt.

        In CLOSED state, increments the failure count and opens the circuit
        for ``open_timeout`` once the threshold is reached. In HALF_OPEN
        state, the failed trial reopens the circuit for ``reset_timeout``.

        Args:
            exception: The exception that caused the failure. If
                expected_exception was configured, only matching exceptions
                count as failures.
        """
        if self._expected_exception is not None and not isinstance(
            exception, self._expected_exception
        ):
            logger.debug(
                f"Circuit {self.name!r} ignoring exception type {type(exception).__name__} "
                f"(expected {self._expected_exception})"
            )
            with self._lock:
                self._trial_in_flight = False
            return

        with self._lock:
            self._failure_count += 1
            logger.debug(
                f"Circuit {self.name!r} recorded failure "
                f"({self._failure_count}/{self.failure_threshold})"
            )

            if self._state == CircuitState.HALF_OPEN:
                self._open(self.reset_timeout)
                logger.warning(
                    f"Circuit {self.name!r} trial attempt failed, reopened for "
                    f"{self.reset_timeout:.1f}s"
                )
            elif (
                self._state == CircuitState.CLOSED
                and self.failure_threshold > 0
                and self._failure_count >= self.failure_threshold
            ):
                self._open(self.open_timeout)
                logger.warning(
                    f"Circuit {self.name!r} OPENED after {self._failure_count} consecutive failures"
                )

    def reset(self) -> None:
        """Manually reset the circuit breaker to CLOSED state.

        Resets the failure count and the opening time.
        """
        with self._lock:
            old_state = self._state
            self._failure_count = 0
            self._opened_at = None
            self._blackout = self.open_timeout
            self._trial_in_flight = False
            if old_state != CircuitState.CLOSED:
                self._change_state(CircuitState.CLOSED)
                logger.info(f"Circuit {self.name!r} manually reset to CLOSED state")


class CircuitBreakerRegistry:
    r"""Process-scoped store of circuits keyed by name.

    Circuits are created lazily by ``get_or_create``. The configuration
    given on creation is kept: later calls with the same name return the
    existing circuit unchanged.

    Example:
        ```pycon
        >>> from aretry.circuit_breaker import CircuitBreakerRegistry
        >>> registry = CircuitBreakerRegistry()
        >>> breaker = registry.get_or_create("payments", failure_threshold=3)
        >>> registry.get_or_create("payments") is breaker
        True
        >>> len(registry)
        1

        ```
    """

    def __init__(self) -> None:
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._breakers)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._breakers

    def get_or_create(
        self,
        name: str,
        *,
        failure_threshold: int = 5,
        open_timeout: float = 5.0,
        reset_timeout: float = 10.0,
        expected_exception: type[BaseException] | tuple[type[BaseException], ...] | None = None,
        on_state_change: Callable[[CircuitState, CircuitState], None] | None = None,
        clock: Clock | None = None,
    ) -> CircuitBreaker:
        """Return the circuit named ``name``, creating it if needed.

        Args:
            name: The circuit name.
            failure_threshold: Threshold used if the circuit is created.
            open_timeout: Open timeout used if the circuit is created.
            reset_timeout: Reset timeout used if the circuit is created.
            expected_exception: Failure filter used if the circuit is created.
            on_state_change: Callback used if the circuit is created.
            clock: Time source used if the circuit is created.

        Returns:
            The circuit registered under ``name``.
        """
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(
                    name,
                    failure_threshold=failure_threshold,
                    open_timeout=open_timeout,
                    reset_timeout=reset_timeout,
                    expected_exception=expected_exception,
                    on_state_change=on_state_change,
                    clock=clock,
                )
                self._breakers[name] = breaker
                logger.debug(f"Created circuit {name!r}")
            return breaker

    def get(self, name: str) -> CircuitBreaker | None:
        with self._lock:
            return self._breakers.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._breakers)

    def reset(self, name: str) -> None:
        """Reset the circuit named ``name`` to CLOSED.

        Args:
            name: The circuit name.

        Raises:
            KeyError: If no circuit is registered under ``name``.
        """
        breaker = self.get(name)
        if breaker is None:
            msg = f"No circuit registered under {name!r}"
            raise KeyError(msg)
        breaker.reset()

    def reset_all(self) -> None:
        with self._lock:
            breakers = list(self._breakers.values())
        for breaker in breakers:
            breaker.reset()

    def snapshot(self) -> dict[str, CircuitSnapshot]:
        """Return a view of every registered circuit.

        Returns:
            A mapping from circuit name to its snapshot.
        """
        with self._lock:
            breakers = list(self._breakers.values())
        return {breaker.name: breaker.snapshot() for breaker in breakers}


default_registry = CircuitBreakerRegistry()
