"""Template execution orchestrator.

Drives the phases of a run in order: server, roles, then each category
followed by its channels. One item is in flight at a time. Per-item failures
are recorded and the run continues unless ``stop_on_first_error`` is set;
a server failure always ends the run.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Tuple

from .backend import ProvisioningBackend
from .config import Customization, ExecuteRequest, ExecutionTimings, RetryPolicy
from .errors import ConfigurationError, ErrorCode, GuildTemplaterError, wrap_error
from .progress import Clock, ProgressCallback, ProgressReporter
from .report import (
    ENTITY_PHASES,
    PHASE_FAILURE_CODES,
    EntityKind,
    ExecutionFailure,
    ExecutionPhase,
    ExecutionReport,
    ExecutionResult,
    ExecutionRun,
    ExecutionSummary,
    PartialResults,
    StepResult,
    suggestion_for_phase,
)
from .retry import RetryResult, Sleep
from .steps import (
    StepContext,
    create_category_step,
    create_channel_step,
    create_role_step,
    create_server_step,
)
from .templates import Category, Channel, Role, TemplatePreview, resolve_template
from .utils import parse_execute_request, validate_request

log = logging.getLogger("guild_templater.executor")

StepCall = Callable[[StepContext], Awaitable[RetryResult[str]]]


class TemplateExecutor:
    """Applies one template to one new server and reports what happened."""

    def __init__(
        self,
        backend: ProvisioningBackend,
        template_id: str,
        target_name: str,
        preview: TemplatePreview,
        *,
        customization: Optional[Customization] = None,
        retry_policy: Optional[RetryPolicy] = None,
        stop_on_first_error: bool = False,
        dry_run: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
        timings: Optional[ExecutionTimings] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._template_id = template_id
        self._target_name = target_name
        self._preview = preview
        self._customization = customization or Customization()
        self._stop_on_first_error = stop_on_first_error
        self._dry_run = dry_run
        self._timings = timings or ExecutionTimings()
        self._sleep = sleep
        self._clock = clock
        self._reporter = ProgressReporter(progress_callback, clock)
        self._context = StepContext(
            backend=backend,
            container_name=target_name,
            policy=retry_policy or RetryPolicy(),
            sleep=sleep,
        )

    def plan(self) -> Tuple[List[Role], List[Tuple[Category, List[Channel]]]]:
        """Items that will be attempted once skip lists are applied."""
        skip_roles = set(self._customization.skip_roles)
        skip_channels = set(self._customization.skip_channels)
        roles = [role for role in self._preview.roles if role.name not in skip_roles]
        categories = [
            (category, [ch for ch in category.channels if ch.name not in skip_channels])
            for category in self._preview.categories
        ]
        return roles, categories

    async def execute(self) -> ExecutionResult:
        run = ExecutionRun(started_at=self._clock())
        try:
            return await self._drive(run)
        except Exception as exc:  # noqa: BLE001
            failed_phase = run.phase
            wrapped = wrap_error(exc, "Template execution failed")
            log.exception("Template execution failed during %s", failed_phase.value)
            return self._fail(run, str(wrapped), wrapped.code, failed_phase)

    async def _drive(self, run: ExecutionRun) -> ExecutionResult:
        roles, categories = self.plan()
        run.total_steps = (
            1 + len(roles) + len(categories) + sum(len(channels) for _, channels in categories)
        )
        log.debug(
            "Executing template %s for '%s' (%d steps)",
            self._template_id,
            self._target_name,
            run.total_steps,
        )

        run.phase = ExecutionPhase.CREATING_SERVER
        result = await self._attempt(
            run, EntityKind.SERVER, self._target_name, create_server_step
        )
        if not result.success:
            return self._fail(
                run,
                result.error or "Failed to create server",
                ErrorCode.SERVER_CREATION_FAILED,
                ExecutionPhase.CREATING_SERVER,
            )
        await self._pause(self._timings.settle_delay)

        run.phase = ExecutionPhase.CREATING_ROLES
        for role in roles:
            role = self._apply_overrides(role)
            result = await self._attempt(
                run, EntityKind.ROLE, role.name, lambda ctx: create_role_step(ctx, role)
            )
            if not result.success and self._stop_on_first_error:
                return self._stop(run, EntityKind.ROLE, role.name)
            await self._pause(self._timings.step_delay)

        for category, channels in categories:
            run.phase = ExecutionPhase.CREATING_CATEGORIES
            result = await self._attempt(
                run,
                EntityKind.CATEGORY,
                category.name,
                lambda ctx: create_category_step(ctx, category),
            )
            if not result.success and self._stop_on_first_error:
                return self._stop(run, EntityKind.CATEGORY, category.name)
            await self._pause(self._timings.step_delay)

            # Channels are attempted even when their category failed.
            run.phase = ExecutionPhase.CREATING_CHANNELS
            for channel in channels:
                result = await self._attempt(
                    run,
                    EntityKind.CHANNEL,
                    channel.name,
                    lambda ctx: create_channel_step(ctx, category.name, channel),
                    detail=f" in {category.name}",
                )
                if not result.success and self._stop_on_first_error:
                    return self._stop(run, EntityKind.CHANNEL, channel.name)
                await self._pause(self._timings.step_delay)

        run.phase = ExecutionPhase.COMPLETED
        total_duration_ms = self._elapsed_ms(run)
        self._reporter.report(run, "Completed")
        summary = ExecutionSummary.from_run(run)
        return ExecutionReport(
            message=self._summary_message(summary),
            server_name=self._target_name,
            template_id=self._template_id,
            summary=summary,
            total_duration_ms=total_duration_ms,
            step_results=list(run.step_results),
            dry_run=self._dry_run,
        )

    async def _attempt(
        self,
        run: ExecutionRun,
        kind: EntityKind,
        name: str,
        call: StepCall,
        *,
        detail: str = "",
    ) -> StepResult:
        label = f"{kind.value}: {name}"
        self._reporter.report(run, f"Creating {kind.value.lower()}: {name}{detail}")
        started = self._clock()
        if self._dry_run:
            result = StepResult(name=label, success=True)
        else:
            context = replace(
                self._context,
                on_retry=lambda attempt, reason: log.info(
                    "Retrying %s after attempt %d failed: %s", label, attempt, reason
                ),
            )
            retry = await call(context)
            result = StepResult(
                name=label,
                success=retry.outcome.ok,
                error=None if retry.outcome.ok else retry.outcome.reason,
                retry_attempts=retry.retries,
                duration_ms=int((self._clock() - started) * 1000),
            )
        if not result.success:
            log.warning("%s failed: %s", label, result.error)
        run.record(kind, name, result)
        self._reporter.report(run, label, include_last_result=True)
        return result

    def _apply_overrides(self, role: Role) -> Role:
        color = self._customization.role_color_overrides.get(role.name)
        if color is None:
            return role
        return role.with_color(color)

    async def _pause(self, seconds: float) -> None:
        if self._dry_run or seconds <= 0:
            return
        await self._sleep(seconds)

    def _stop(self, run: ExecutionRun, kind: EntityKind, name: str) -> ExecutionFailure:
        phase = ENTITY_PHASES[kind]
        return self._fail(
            run,
            f"Failed to create {kind.value.lower()}: {name}",
            PHASE_FAILURE_CODES[phase],
            phase,
        )

    def _fail(
        self,
        run: ExecutionRun,
        error: str,
        code: ErrorCode,
        failed_phase: ExecutionPhase,
    ) -> ExecutionFailure:
        run.phase = ExecutionPhase.FAILED
        self._reporter.report(run, f"Failed: {error}", include_last_result=True)
        return ExecutionFailure(
            error=error,
            code=code,
            failed_phase=failed_phase,
            step_results=list(run.step_results),
            partial_results=PartialResults.from_run(run),
            suggestion=suggestion_for_phase(failed_phase),
        )

    def _elapsed_ms(self, run: ExecutionRun) -> int:
        return int((self._clock() - run.started_at) * 1000)

    def _summary_message(self, summary: ExecutionSummary) -> str:
        failed = (
            len(summary.roles_failed)
            + len(summary.categories_failed)
            + len(summary.channels_failed)
        )
        prefix = "Dry run: " if self._dry_run else ""
        if failed:
            return (
                f"{prefix}Applied template '{self._preview.name}' to server "
                f"'{self._target_name}' with {failed} failed item(s)"
            )
        return (
            f"{prefix}Successfully applied template '{self._preview.name}' to server "
            f"'{self._target_name}'"
        )


def _initialization_failure(exc: GuildTemplaterError) -> ExecutionFailure:
    message = str(exc)
    if exc.code is ErrorCode.INVALID_INPUT:
        message = f"Invalid input: {message}"
    return ExecutionFailure(
        error=message,
        code=exc.code,
        failed_phase=ExecutionPhase.INITIALIZING,
        suggestion=exc.suggestion,
    )


async def execute_template(
    request: ExecuteRequest,
    backend: ProvisioningBackend,
    *,
    progress_callback: Optional[ProgressCallback] = None,
    timings: Optional[ExecutionTimings] = None,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> ExecutionResult:
    """Validate ``request``, resolve its template and run it against ``backend``."""
    try:
        validate_request(request)
        _, preview = resolve_template(request.template_id)
    except GuildTemplaterError as exc:
        log.warning("Cannot execute template %s: %s", request.template_id, exc)
        return _initialization_failure(exc)

    executor = TemplateExecutor(
        backend,
        request.template_id,
        request.target_name,
        preview,
        customization=request.customization,
        retry_policy=request.retry_policy,
        stop_on_first_error=request.stop_on_first_error,
        dry_run=request.dry_run,
        progress_callback=progress_callback,
        timings=timings,
        sleep=sleep,
        clock=clock,
    )
    return await executor.execute()


async def handle_execute_request(
    payload: Mapping[str, Any],
    backend: ProvisioningBackend,
    **options: Any,
) -> ExecutionResult:
    """Entry point for untyped (camelCase) request payloads."""
    try:
        request = parse_execute_request(payload)
    except ConfigurationError as exc:
        return _initialization_failure(exc)
    return await execute_template(request, backend, **options)
