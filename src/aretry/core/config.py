r"""Configuration dataclass and defaults for retry executors.

This module provides configuration constants and a dataclass-based
configuration object from which the retry policy, the backoff policy and
the executor are built.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "RETRY_STATUS_CODES",
    "BackoffKind",
    "RetryConfig",
]

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from aretry.backoff import (
    ExponentialBackoff,
    ExponentialJitterBackoff,
    FixedBackoff,
    TimeAwareBackoff,
)
from aretry.core.validation import validate_circuit_params, validate_hour, validate_interval
from aretry.policy import (
    CircuitBreakerRetryPolicy,
    ExceptionTypeRetryPolicy,
    MaxAttemptsRetryPolicy,
    StatusCodeRetryPolicy,
)
from aretry.policy.base import validate_max_attempts
from aretry.policy.predicate import DEFAULT_RETRYABLE_STATUS_CODES
from aretry.retry import AsyncRetryExecutor, RetryExecutor

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from aretry.backoff import BaseBackoffPolicy
    from aretry.circuit_breaker import CircuitBreakerRegistry
    from aretry.listeners import BaseRetryListener
    from aretry.policy import BaseRetryPolicy
    from aretry.state import RetryStateStore
    from aretry.utils import Clock, Sleeper


# Default maximum number of attempts, the first one included
DEFAULT_MAX_ATTEMPTS = 3

# Status codes of transient remote failures
# 429: Too Many Requests, 500: Internal Server Error, 502: Bad Gateway,
# 503: Service Unavailable, 504: Gateway Timeout
RETRY_STATUS_CODES = DEFAULT_RETRYABLE_STATUS_CODES


class BackoffKind(str, Enum):
    """The backoff policies that can be built from a ``RetryConfig``."""

    FIXED = "fixed"
    EXPONENTIAL = "exponential"
    EXPONENTIAL_JITTER = "exponential-jitter"
    TIME_AWARE = "time-aware"


@dataclass
class RetryConfig:
    """Configuration of a retry executor.

    This dataclass gathers every recognized option, validates it and builds
    the matching policies. The retry policy is chosen as follows:

    - ``retryable_status_codes`` set: ``StatusCodeRetryPolicy``
    - ``retryable_kinds`` set: ``ExceptionTypeRetryPolicy``
    - otherwise: ``MaxAttemptsRetryPolicy``

    and is wrapped in a ``CircuitBreakerRetryPolicy`` when
    ``circuit_threshold`` is set.

    Args:
        max_attempts: Maximum number of attempts, the first one included.
            Must be >= 1.
        retryable_kinds: Optional mapping from exception type to whether
            it is retryable.
        default_retryable: Whether exception types missing from
            ``retryable_kinds`` are retryable.
        retryable_status_codes: Optional status codes that make a failure
            retryable.
        backoff_kind: The backoff policy to build.
        initial_interval: First delay of the exponential policies, in
            seconds.
        multiplier: Growth factor of the exponential policies. Must be >= 1.
        max_interval: Cap of the exponential policies, in seconds.
        fixed_interval: Delay of the fixed policy, in seconds.
        base_interval: Delay of the time-aware policy outside peak and
            night hours, in seconds.
        peak_start_hour: First peak hour of the time-aware policy.
        peak_end_hour: End of the peak range, exclusive.
        peak_multiplier: Multiplier applied to ``base_interval`` during
            peak hours.
        night_interval: Delay of the time-aware policy at night, in
            seconds.
        night_start_hour: First night hour of the time-aware policy.
        night_end_hour: End of the night range, exclusive.
        circuit_threshold: Optional number of consecutive failures opening
            the circuit. 0 means the circuit never opens.
        open_timeout: Seconds the circuit stays open after crossing the
            threshold.
        reset_timeout: Seconds the circuit stays open after a failed trial
            call.
        circuit_name: Optional name of the circuit in the registry, so
            several executors can share it.
        stateful_key: Optional default key of a stateful retry sequence.
        wrap_errors: Whether exhaustion raises ``RetryExhaustedError``
            (default) or the last failure unchanged.

    Example:
        ```pycon
        >>> from aretry.core import RetryConfig
        >>> config = RetryConfig()
        >>> config.max_attempts
        3
        >>> config = RetryConfig(max_attempts=5, backoff_kind="fixed", fixed_interval=0.5)
        >>> config.build_backoff_policy()
        FixedBackoff(interval=0.5)
        >>> merged = config.merge(max_attempts=10)
        >>> merged.max_attempts
        10
        >>> config.max_attempts
        5

        ```
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retryable_kinds: Mapping[type[BaseException], bool] | None = None
    default_retryable: bool = False
    retryable_status_codes: tuple[int, ...] | None = None
    backoff_kind: BackoffKind | str = BackoffKind.EXPONENTIAL
    initial_interval: float = 0.1
    multiplier: float = 2.0
    max_interval: float = 30.0
    fixed_interval: float = 1.0
    base_interval: float = 1.0
    peak_start_hour: int = 9
    peak_end_hour: int = 18
    peak_multiplier: float = 2.0
    night_interval: float = 0.5
    night_start_hour: int = 22
    night_end_hour: int = 6
    circuit_threshold: int | None = None
    open_timeout: float = 5.0
    reset_timeout: float = 10.0
    circuit_name: str | None = None
    stateful_key: str | None = None
    wrap_errors: bool = True

    def __post_init__(self) -> None:
        """Validate configuration parameters after initialization.

        Raises:
            ValueError: If any parameter fails validation.
        """
        validate_max_attempts(self.max_attempts)
        try:
            self.backoff_kind = BackoffKind(self.backoff_kind)
        except ValueError:
            valid = ", ".join(kind.value for kind in BackoffKind)
            msg = f"backoff_kind must be one of {valid}, got {self.backoff_kind!r}"
            raise ValueError(msg) from None
        for name in (
            "initial_interval",
            "max_interval",
            "fixed_interval",
            "base_interval",
            "night_interval",
        ):
            validate_interval(name, getattr(self, name))
        if self.multiplier < 1:
            msg = f"multiplier must be >= 1, got {self.multiplier}"
            raise ValueError(msg)
        if self.max_interval < self.initial_interval:
            msg = (
                f"max_interval must be >= initial_interval, got {self.max_interval} "
                f"(initial_interval={self.initial_interval})"
            )
            raise ValueError(msg)
        if self.peak_multiplier < 0:
            msg = f"peak_multiplier must be >= 0, got {self.peak_multiplier}"
            raise ValueError(msg)
        for name in ("peak_start_hour", "peak_end_hour", "night_start_hour", "night_end_hour"):
            validate_hour(name, getattr(self, name))
        validate_circuit_params(
            circuit_threshold=self.circuit_threshold,
            open_timeout=self.open_timeout,
            reset_timeout=self.reset_timeout,
        )

    def merge(self, **overrides: Any) -> RetryConfig:
        """Create a new config with specified parameters overridden.

        Only non-None override values are applied.

        Args:
            **overrides: Keyword arguments for parameters to override.

        Returns:
            A new, validated ``RetryConfig``.
        """
        filtered_overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered_overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert the configuration to a dictionary.

        Returns:
            The parameters by name, ``backoff_kind`` as its string value.

        Example:
            ```pycon
            >>> from aretry.core import RetryConfig
            >>> params = RetryConfig(max_attempts=5).to_dict()
            >>> params["max_attempts"], params["backoff_kind"]
            (5, 'exponential')

            ```
        """
        params = asdict(self)
        params["backoff_kind"] = BackoffKind(self.backoff_kind).value
        return params

    def build_retry_policy(
        self,
        *,
        registry: CircuitBreakerRegistry | None = None,
        clock: Clock | None = None,
    ) -> BaseRetryPolicy:
        """Build the retry policy described by this configuration.

        Args:
            registry: The registry holding the circuit, if any. Defaults to
                the process-wide registry.
            clock: The time source of the circuit. Defaults to the system
                clock.

        Returns:
            The retry policy.
        """
        policy: BaseRetryPolicy
        if self.retryable_status_codes is not None:
            policy = StatusCodeRetryPolicy(
                max_attempts=self.max_attempts, status_codes=self.retryable_status_codes
            )
        elif self.retryable_kinds is not None:
            policy = ExceptionTypeRetryPolicy(
                max_attempts=self.max_attempts,
                retryable_exceptions=self.retryable_kinds,
                default_retryable=self.default_retryable,
            )
        else:
            policy = MaxAttemptsRetryPolicy(max_attempts=self.max_attempts)

        if self.circuit_threshold is not None:
            policy = CircuitBreakerRetryPolicy(
                policy,
                registry=registry,
                name=self.circuit_name,
                failure_threshold=self.circuit_threshold,
                open_timeout=self.open_timeout,
                reset_timeout=self.reset_timeout,
                clock=clock,
            )
        return policy

    def build_backoff_policy(self, *, clock: Clock | None = None) -> BaseBackoffPolicy:
        """Build the backoff policy described by this configuration.

        Args:
            clock: The time source of the time-aware policy. Defaults to
                the system clock.

        Returns:
            The backoff policy.
        """
        kind = BackoffKind(self.backoff_kind)
        if kind is BackoffKind.FIXED:
            return FixedBackoff(interval=self.fixed_interval)
        if kind is BackoffKind.TIME_AWARE:
            return TimeAwareBackoff(
                base_interval=self.base_interval,
                night_interval=self.night_interval,
                peak_start_hour=self.peak_start_hour,
                peak_end_hour=self.peak_end_hour,
                peak_multiplier=self.peak_multiplier,
                night_start_hour=self.night_start_hour,
                night_end_hour=self.night_end_hour,
                clock=clock,
            )
        cls = (
            ExponentialJitterBackoff
            if kind is BackoffKind.EXPONENTIAL_JITTER
            else ExponentialBackoff
        )
        return cls(
            initial_interval=self.initial_interval,
            multiplier=self.multiplier,
            max_interval=self.max_interval,
        )

    def build_executor(
        self,
        listeners: Iterable[BaseRetryListener] = (),
        *,
        state_store: RetryStateStore | None = None,
        sleeper: Sleeper | None = None,
        registry: CircuitBreakerRegistry | None = None,
        clock: Clock | None = None,
        asynchronous: bool = False,
    ) -> RetryExecutor | AsyncRetryExecutor:
        """Build an executor from this configuration.

        ``stateful_key`` is not bound to the executor: pass it as the
        ``state_key`` argument of ``execute``.

        Args:
            listeners: The ordered listeners of the executor.
            state_store: The store of stateful retry progress.
            sleeper: The cancellable wait primitive.
            registry: The registry holding the circuit, if any.
            clock: The time source of the circuit and of the time-aware
                backoff.
            asynchronous: Whether to build an ``AsyncRetryExecutor``
                instead of a ``RetryExecutor``.

        Returns:
            The executor.

        Example:
            ```pycon
            >>> from aretry.core import RetryConfig
            >>> executor = RetryConfig(backoff_kind="fixed", fixed_interval=0.0).build_executor()
            >>> executor.execute(lambda: "ok")
            'ok'

            ```
        """
        executor_cls = AsyncRetryExecutor if asynchronous else RetryExecutor
        return executor_cls(
            self.build_retry_policy(registry=registry, clock=clock),
            self.build_backoff_policy(clock=clock),
            listeners,
            state_store=state_store,
            sleeper=sleeper,
            wrap_errors=self.wrap_errors,
        )
