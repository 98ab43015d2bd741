from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .config import RetryPolicy
from .outcome import Err, Outcome

log = logging.getLogger("guild_templater.retry")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
RetryHook = Callable[[int, str], None]


@dataclass(frozen=True, slots=True)
class RetryResult(Generic[T]):
    outcome: Outcome[T]
    attempts: int

    @property
    def retries(self) -> int:
        return self.attempts - 1


def backoff_delay_ms(policy: RetryPolicy, attempt: int) -> int:
    """Delay to wait after failed attempt number ``attempt`` (1-based)."""
    if not policy.exponential_backoff:
        return policy.retry_delay_ms
    return min(policy.retry_delay_ms * 2 ** (attempt - 1), policy.max_delay_ms)


async def run_with_retry(
    operation: Callable[[], Awaitable[Outcome[T]]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    on_retry: Optional[RetryHook] = None,
) -> RetryResult[T]:
    """Run ``operation`` until it returns ``Ok`` or ``policy.max_attempts`` is spent.

    The last ``Err`` is returned when every attempt fails. No delay follows the
    final attempt.
    """
    if policy.max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    outcome: Outcome[T] = Err("operation was never attempted")
    for attempt in range(1, policy.max_attempts + 1):
        outcome = await operation()
        if outcome.ok:
            return RetryResult(outcome=outcome, attempts=attempt)
        if attempt == policy.max_attempts:
            break
        delay_ms = backoff_delay_ms(policy, attempt)
        log.debug(
            "Attempt %d/%d failed (%s); retrying in %dms",
            attempt,
            policy.max_attempts,
            outcome.reason,
            delay_ms,
        )
        if on_retry is not None:
            on_retry(attempt, outcome.reason)
        await sleep(delay_ms / 1000)
    return RetryResult(outcome=outcome, attempts=policy.max_attempts)
