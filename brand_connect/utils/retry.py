"""
Bounded retry for side effects.

Notifications and conversation bootstrap run after a state write has
already committed.  They are retried with jittered exponential backoff
on transient failures only, then the caller logs and moves on.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from brand_connect.config import AppConfig
from brand_connect.errors import MarketplaceError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_s: float = 0.5
    timeout_s: float = 10.0

    @classmethod
    def from_config(cls, config: AppConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.SIDE_EFFECT_MAX_ATTEMPTS,
            backoff_s=config.SIDE_EFFECT_BACKOFF_S,
            timeout_s=config.SIDE_EFFECT_TIMEOUT_S,
        )


def is_transient(exc: Exception) -> bool:
    """Retry only upstream outages and timeouts."""
    if isinstance(exc, MarketplaceError):
        return exc.retryable
    return isinstance(exc, (TimeoutError, ConnectionError))


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    policy: Optional[RetryPolicy] = None,
    retryable: Optional[Callable[[Exception], bool]] = None,
) -> T:
    """Await ``func()`` until it succeeds or the policy is exhausted.

    Non-retryable errors and the last transient error propagate.
    """
    policy = policy or RetryPolicy()
    retryable = retryable or is_transient
    attempt = 1
    while True:
        try:
            return await asyncio.wait_for(func(), timeout=policy.timeout_s)
        except Exception as exc:
            if attempt >= max(policy.max_attempts, 1) or not retryable(exc):
                raise
            jitter = random.uniform(0.5, 1.5)
            await asyncio.sleep(policy.backoff_s * (2 ** (attempt - 1)) * jitter)
            attempt += 1
