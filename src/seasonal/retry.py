"""Shared retry policy for the fetch client, gap detector, aggregator and orchestrator.

One policy object replaces the ad hoc sleeps scattered through every
catch block: HTTP calls use max_retries/initial_backoff, storage calls
that hit a throttled database wait storage_cooldown and retry once.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from seasonal.exceptions import StorageError
from seasonal.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry parameters. All durations are in seconds."""

    max_retries: int = 5
    initial_backoff: float = 2.0
    storage_cooldown: float = 15.0


async def with_storage_retry(
    policy: RetryPolicy,
    operation: Callable[[], Awaitable[T]],
    sleep: Sleep = asyncio.sleep,
    label: str = "storage_operation",
) -> T:
    """Run a storage operation, waiting out one rate-limit signal.

    A StorageError flagged rate_limited triggers a single cooldown wait
    and one retry. Any other error, or a second failure, propagates.
    """
    try:
        return await operation()
    except StorageError as e:
        if not e.rate_limited:
            raise
        logger.warning(
            "storage_rate_limited",
            operation=label,
            cooldown=policy.storage_cooldown,
        )
        await sleep(policy.storage_cooldown)
        return await operation()
