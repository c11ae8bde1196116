r"""Retry execution: the sync and async executors and the listener chain."""

from __future__ import annotations

__all__ = ["AsyncRetryExecutor", "BaseRetryExecutor", "ListenerManager", "RetryExecutor"]

from aretry.retry.executor import RetryExecutor
from aretry.retry.executor_async import AsyncRetryExecutor
from aretry.retry.executor_core import BaseRetryExecutor
from aretry.retry.manager import ListenerManager
