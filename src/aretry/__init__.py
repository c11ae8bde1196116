r"""aretry - Resilient execution engine with pluggable retry logic.

This package runs fallible operations under a combination of a retry
policy, a backoff policy, an optional circuit breaker and a chain of
listeners. It makes transient failures (network glitches, overloaded
services, optimistic-lock conflicts) invisible to calling code while
keeping the original failure available once retries are exhausted.

Key Features:
    - Retry policies: bounded attempts, exception classification,
      predicates, status codes and circuit breaking
    - Backoff policies: fixed, exponential, exponential with jitter and
      time-of-day aware
    - Circuit breakers shared by name through a registry
    - Stateful retries resuming across calls identified by a key
    - Listener chain for observability, with logging and metrics listeners
    - Sync and async executors with cancellable backoff waits

Example:
    ```pycon
    >>> from aretry import RetryExecutor, RetryExhaustedError
    >>> from aretry.backoff import FixedBackoff
    >>> from aretry.policy import MaxAttemptsRetryPolicy
    >>> executor = RetryExecutor(MaxAttemptsRetryPolicy(2), FixedBackoff(0.0))
    >>> def always_fails():
    ...     raise ConnectionError("unreachable")
    ...
    >>> executor.execute(always_fails, recovery=lambda session: "fallback")
    'fallback'
    >>> try:
    ...     executor.execute(always_fails)
    ... except RetryExhaustedError as exc:
    ...     print(exc.attempts, type(exc.__cause__).__name__)
    ...
    2 ConnectionError

    ```
"""

from __future__ import annotations

__all__ = [
    "AsyncRetryExecutor",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitOpenError",
    "CircuitState",
    "RetryConfig",
    "RetryError",
    "RetryExecutor",
    "RetryExhaustedError",
    "RetryInterruptedError",
    "RetrySession",
    "RetryStateStore",
    "SessionVetoedError",
    "__version__",
    "default_registry",
    "get_current_session",
]

from importlib.metadata import PackageNotFoundError, version

from aretry.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitState,
    default_registry,
)
from aretry.core import RetryConfig
from aretry.exceptions import (
    CircuitOpenError,
    RetryError,
    RetryExhaustedError,
    RetryInterruptedError,
    SessionVetoedError,
)
from aretry.retry import AsyncRetryExecutor, RetryExecutor
from aretry.session import RetrySession, get_current_session
from aretry.state import RetryStateStore

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
