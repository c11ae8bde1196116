r"""Retry policy gating attempts with a circuit breaker.

Example:
    ```pycon
    >>> from aretry.circuit_breaker import CircuitBreakerRegistry
    >>> from aretry.policy import CircuitBreakerRetryPolicy, MaxAttemptsRetryPolicy
    >>> policy = CircuitBreakerRetryPolicy(
    ...     MaxAttemptsRetryPolicy(3),
    ...     name="inventory",
    ...     registry=CircuitBreakerRegistry(),
    ...     failure_threshold=3,
    ...     open_timeout=5.0,
    ...     reset_timeout=10.0,
    ... )
    >>> policy.state
    <CircuitState.CLOSED: 'closed'>

    ```
"""

from __future__ import annotations

__all__ = ["CIRCUIT_OPEN_ATTRIBUTE", "CircuitBreakerRetryPolicy"]

import logging
from typing import TYPE_CHECKING

from aretry.circuit_breaker import CircuitBreaker, default_registry
from aretry.policy.base import BaseRetryPolicy

if TYPE_CHECKING:
    from aretry.circuit_breaker import CircuitBreakerRegistry, CircuitState
    from aretry.session import RetrySession
    from aretry.utils.clock import Clock

logger: logging.Logger = logging.getLogger(__name__)

# Session attribute telling whether the circuit rejected further attempts
CIRCUIT_OPEN_ATTRIBUTE = "circuit_open"


class CircuitBreakerRetryPolicy(BaseRetryPolicy):
    r"""Retry policy decorating another one with a circuit breaker.

    The circuit is shared by every session using the same circuit name.
    While it is CLOSED, the decision is delegated to the inner policy and
    every failure counts towards the threshold. Once OPEN, attempts are
    rejected with ``CircuitOpenError`` before the operation is invoked,
    and ``can_retry`` returns ``False``. After ``open_timeout`` one trial
    attempt goes through (HALF_OPEN): its success closes the circuit, its
    failure reopens it for ``reset_timeout``.

    Args:
        inner: The policy deciding retries while the circuit lets attempts
            through.
        registry: The registry holding the circuit. Defaults to the
            process-wide ``default_registry``.
        name: The circuit name. Defaults to a name derived from this policy
            instance, so each policy instance gets its own circuit.
        failure_threshold: Number of consecutive failures opening the
            circuit. 0 means the circuit never opens (default: 5).
        open_timeout: Seconds the circuit stays OPEN after crossing the
            threshold (default: 5.0).
        reset_timeout: Seconds the circuit stays OPEN after a failed trial
            attempt (default: 10.0).
        clock: The time source of the circuit. Defaults to the system clock.
    """

    def __init__(
        self,
        inner: BaseRetryPolicy,
        *,
        registry: CircuitBreakerRegistry | None = None,
        name: str | None = None,
        failure_threshold: int = 5,
        open_timeout: float = 5.0,
        reset_timeout: float = 10.0,
        clock: Clock | None = None,
    ) -> None:
        self.inner = inner
        self.registry = registry if registry is not None else default_registry
        self.name = name if name is not None else f"circuit-{id(self):x}"
        # Validates the configuration eagerly, the circuit itself is created lazily
        CircuitBreaker(
            self.name,
            failure_threshold=failure_threshold,
            open_timeout=open_timeout,
            reset_timeout=reset_timeout,
        )
        self.failure_threshold = failure_threshold
        self.open_timeout = open_timeout
        self.reset_timeout = reset_timeout
        self.clock = clock

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(inner={self.inner!r}, name={self.name!r}, "
            f"failure_threshold={self.failure_threshold}, open_timeout={self.open_timeout}, "
            f"reset_timeout={self.reset_timeout})"
        )

    @property
    def breaker(self) -> CircuitBreaker:
        """The circuit of this policy, created on first use."""
        return self.registry.get_or_create(
            self.name,
            failure_threshold=self.failure_threshold,
            open_timeout=self.open_timeout,
            reset_timeout=self.reset_timeout,
            clock=self.clock,
        )

    @property
    def state(self) -> CircuitState:
        return self.breaker.state

    @property
    def failure_count(self) -> int:
        return self.breaker.failure_count

    def reset(self) -> None:
        """Reset the circuit to CLOSED."""
        self.breaker.reset()

    def open(self, session: RetrySession) -> None:
        session.set_attribute(CIRCUIT_OPEN_ATTRIBUTE, self.breaker.is_open())
        self.inner.open(session)

    def before_attempt(self, session: RetrySession) -> None:
        state = self.get_state(session)
        try:
            state["trial"] = self.breaker.acquire()
        except Exception:
            session.set_attribute(CIRCUIT_OPEN_ATTRIBUTE, True)
            raise
        self.inner.before_attempt(session)

    def register_failure(self, session: RetrySession, error: BaseException) -> None:
        self.get_state(session)["trial"] = False
        self.breaker.record_failure(error)
        self.inner.register_failure(session, error)

    def can_retry(self, session: RetrySession) -> bool:
        if self.breaker.is_open():
            logger.debug(f"Circuit {self.name!r} is OPEN, no further attempt allowed")
            session.set_attribute(CIRCUIT_OPEN_ATTRIBUTE, True)
            return False
        return self.inner.can_retry(session)

    def is_exhausted(self, session: RetrySession) -> bool:
        # An open circuit rejects the attempt in before_attempt instead
        return self.inner.is_exhausted(session)

    def register_success(self, session: RetrySession) -> None:
        self.get_state(session)["trial"] = False
        self.breaker.record_success()
        session.set_attribute(CIRCUIT_OPEN_ATTRIBUTE, False)
        self.inner.register_success(session)

    def close(self, session: RetrySession) -> None:
        if self.get_state(session).pop("trial", False):
            # The trial attempt ended without a recorded outcome
            self.breaker.release_trial()
        self.inner.close(session)
