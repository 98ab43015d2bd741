"""Step executors: one remote mutation each, wrapped in the retry engine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from .backend import ProvisioningBackend
from .config import RetryPolicy
from .outcome import Err, Ok, Outcome
from .retry import RetryHook, RetryResult, Sleep, run_with_retry
from .templates.models import Category, Channel, Role

log = logging.getLogger("guild_templater.steps")


@dataclass(frozen=True, slots=True)
class StepContext:
    backend: ProvisioningBackend
    container_name: str
    policy: RetryPolicy
    sleep: Sleep = asyncio.sleep
    on_retry: Optional[RetryHook] = None


def normalize_outcome(action: str, value: Any) -> Outcome[str]:
    """Coerce whatever a collaborator returned into ``Ok`` or a retryable ``Err``."""
    if isinstance(value, Ok):
        return value
    if isinstance(value, Err):
        return value if value.reason else Err(f"{action} failed")
    return Err(f"{action} returned an unexpected result: {value!r}")


async def _run_step(
    context: StepContext,
    action: str,
    call: Callable[[], Awaitable[Any]],
) -> RetryResult[str]:
    async def attempt() -> Outcome[str]:
        try:
            value = await call()
        except Exception as exc:  # noqa: BLE001
            log.warning("%s raised %s: %s", action, type(exc).__name__, exc)
            return Err(str(exc) or f"{action} failed")
        return normalize_outcome(action, value)

    return await run_with_retry(
        attempt, context.policy, sleep=context.sleep, on_retry=context.on_retry
    )


async def create_server_step(context: StepContext) -> RetryResult[str]:
    return await _run_step(
        context,
        "Server creation",
        lambda: context.backend.create_container(context.container_name),
    )


async def create_role_step(context: StepContext, role: Role) -> RetryResult[str]:
    return await _run_step(
        context,
        "Role creation",
        lambda: context.backend.create_role(context.container_name, role),
    )


async def create_category_step(context: StepContext, category: Category) -> RetryResult[str]:
    return await _run_step(
        context,
        "Category creation",
        lambda: context.backend.create_category(
            context.container_name, category.name, category.permission_overrides
        ),
    )


async def create_channel_step(
    context: StepContext, category_name: str, channel: Channel
) -> RetryResult[str]:
    return await _run_step(
        context,
        "Channel creation",
        lambda: context.backend.create_channel(context.container_name, category_name, channel),
    )
