from __future__ import annotations

import datetime as _dt
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .report import ExecutionPhase, ExecutionRun, StepResult

log = logging.getLogger("guild_templater.progress")

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class ExecutionProgress:
    """Snapshot of a running execution, pushed to the progress callback."""

    phase: ExecutionPhase
    current_step: str
    total_steps: int
    completed_steps: int
    overall_progress: int
    elapsed_ms: int
    estimated_remaining_ms: Optional[int] = None
    last_step_result: Optional[StepResult] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "phase": self.phase.value,
            "currentStep": self.current_step,
            "totalSteps": self.total_steps,
            "completedSteps": self.completed_steps,
            "overallProgress": self.overall_progress,
            "elapsedMs": self.elapsed_ms,
        }
        if self.estimated_remaining_ms is not None:
            data["estimatedRemainingMs"] = self.estimated_remaining_ms
        if self.last_step_result is not None:
            data["lastStepResult"] = self.last_step_result.to_dict()
        return data


ProgressCallback = Callable[[ExecutionProgress], None]


def percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(completed * 100 / total + 0.5)


def build_progress(
    run: ExecutionRun,
    current_step: str,
    now: float,
    *,
    include_last_result: bool = False,
) -> ExecutionProgress:
    elapsed_ms = int((now - run.started_at) * 1000)
    remaining: Optional[int] = None
    if 0 < run.completed_steps < run.total_steps:
        per_step = elapsed_ms / run.completed_steps
        remaining = int(per_step * (run.total_steps - run.completed_steps))
    elif run.total_steps and run.completed_steps >= run.total_steps:
        remaining = 0
    return ExecutionProgress(
        phase=run.phase,
        current_step=current_step,
        total_steps=run.total_steps,
        completed_steps=run.completed_steps,
        overall_progress=percentage(run.completed_steps, run.total_steps),
        elapsed_ms=elapsed_ms,
        estimated_remaining_ms=remaining,
        last_step_result=run.last_step_result if include_last_result else None,
    )


class ProgressReporter:
    """Pushes :class:`ExecutionProgress` snapshots to an optional callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None, clock: Clock = time.monotonic) -> None:
        self._callback = callback
        self._clock = clock

    def report(self, run: ExecutionRun, current_step: str, *, include_last_result: bool = False) -> None:
        if self._callback is None:
            return
        progress = build_progress(
            run, current_step, self._clock(), include_last_result=include_last_result
        )
        try:
            self._callback(progress)
        except Exception:  # noqa: BLE001
            log.exception("Progress callback raised; continuing execution")


class ProgressPrinter:
    """Timestamped narration of a provisioning session on stdout."""

    DIVIDER_WIDTH = 60

    def _emit(self, marker: str, message: str) -> None:
        stamp = _dt.datetime.now().strftime("%H:%M:%S")
        line = f"{marker} {message}" if marker else message
        print(f"[{stamp}] {line}")

    def info(self, message: str) -> None:
        self._emit("", message)

    def step(self, message: str) -> None:
        self._emit("➡️ ", message)

    def success(self, message: str) -> None:
        self._emit("✅", message)

    def warning(self, message: str) -> None:
        self._emit("⚠️ ", message)

    def error(self, message: str) -> None:
        self._emit("❌", message)

    def divider(self) -> None:
        print("-" * self.DIVIDER_WIDTH)

    def execution_update(self, progress: ExecutionProgress) -> None:
        """Print one line per progress snapshot; failed steps are flagged."""
        prefix = f"[{progress.overall_progress:3d}%]"
        result = progress.last_step_result
        if result is None:
            self.step(f"{prefix} {progress.current_step}")
        elif result.success:
            self.success(f"{prefix} {result.name}")
        else:
            self.warning(f"{prefix} {result.name} failed: {result.error}")
