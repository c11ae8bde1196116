from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest

from aretry.circuit_breaker import CircuitBreakerRegistry
from aretry.utils import ManualClock, Sleeper


@pytest.fixture
def mock_sleeper() -> Mock:
    """Create a sleeper that records the waits without sleeping."""
    sleeper = Mock(spec=Sleeper)
    sleeper.sleep_async = AsyncMock(return_value=None)
    return sleeper


@pytest.fixture
def manual_clock() -> ManualClock:
    """Create a clock fixed at 14:00, 1 January 2024."""
    return ManualClock(now=datetime(2024, 1, 1, 14, 0))


@pytest.fixture
def registry() -> CircuitBreakerRegistry:
    """Create a circuit breaker registry isolated from the default one."""
    return CircuitBreakerRegistry()
