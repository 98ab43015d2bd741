from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import ErrorCode


class ExecutionPhase(str, Enum):
    INITIALIZING = "initializing"
    CREATING_SERVER = "creating_server"
    CREATING_ROLES = "creating_roles"
    CREATING_CATEGORIES = "creating_categories"
    CREATING_CHANNELS = "creating_channels"
    COMPLETED = "completed"
    FAILED = "failed"


class EntityKind(str, Enum):
    SERVER = "Server"
    ROLE = "Role"
    CATEGORY = "Category"
    CHANNEL = "Channel"


PHASE_SUGGESTIONS: Dict[ExecutionPhase, str] = {
    ExecutionPhase.INITIALIZING: (
        "Check the request and the template id, then try again."
    ),
    ExecutionPhase.CREATING_SERVER: (
        "Verify the token is valid and the account can create servers, then retry."
    ),
    ExecutionPhase.CREATING_ROLES: (
        "The server was created but role creation failed. Add the remaining roles "
        "manually or retry with the same template."
    ),
    ExecutionPhase.CREATING_CATEGORIES: (
        "Roles were created but category creation failed. Retry category and "
        "channel creation directly."
    ),
    ExecutionPhase.CREATING_CHANNELS: (
        "Categories were created but channel creation failed. Create the remaining "
        "channels directly."
    ),
    ExecutionPhase.COMPLETED: "No action needed.",
    ExecutionPhase.FAILED: (
        "Check the Discord connection and permissions, then retry."
    ),
}

PHASE_FAILURE_CODES: Dict[ExecutionPhase, ErrorCode] = {
    ExecutionPhase.CREATING_SERVER: ErrorCode.SERVER_CREATION_FAILED,
    ExecutionPhase.CREATING_ROLES: ErrorCode.ROLE_CREATION_FAILED,
    ExecutionPhase.CREATING_CATEGORIES: ErrorCode.CATEGORY_CREATION_FAILED,
    ExecutionPhase.CREATING_CHANNELS: ErrorCode.CHANNEL_CREATION_FAILED,
}

ENTITY_PHASES: Dict[EntityKind, ExecutionPhase] = {
    EntityKind.SERVER: ExecutionPhase.CREATING_SERVER,
    EntityKind.ROLE: ExecutionPhase.CREATING_ROLES,
    EntityKind.CATEGORY: ExecutionPhase.CREATING_CATEGORIES,
    EntityKind.CHANNEL: ExecutionPhase.CREATING_CHANNELS,
}


def suggestion_for_phase(phase: ExecutionPhase) -> str:
    return PHASE_SUGGESTIONS[phase]


@dataclass(frozen=True, slots=True)
class StepResult:
    """Audit record of one attempted item."""

    name: str
    success: bool
    error: Optional[str] = None
    retry_attempts: int = 0
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "success": self.success,
            "retryAttempts": self.retry_attempts,
            "durationMs": self.duration_ms,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class EntityLedger:
    """Names created and failed for one entity kind. The two lists never overlap."""

    created: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    def record(self, name: str, success: bool) -> None:
        (self.created if success else self.failed).append(name)


@dataclass(slots=True)
class ExecutionRun:
    """Mutable state of one ``execute`` call."""

    started_at: float
    total_steps: int = 0
    completed_steps: int = 0
    phase: ExecutionPhase = ExecutionPhase.INITIALIZING
    step_results: List[StepResult] = field(default_factory=list)
    roles: EntityLedger = field(default_factory=EntityLedger)
    categories: EntityLedger = field(default_factory=EntityLedger)
    channels: EntityLedger = field(default_factory=EntityLedger)

    def ledger(self, kind: EntityKind) -> Optional[EntityLedger]:
        if kind is EntityKind.ROLE:
            return self.roles
        if kind is EntityKind.CATEGORY:
            return self.categories
        if kind is EntityKind.CHANNEL:
            return self.channels
        return None

    def record(self, kind: EntityKind, name: str, result: StepResult) -> None:
        self.step_results.append(result)
        self.completed_steps += 1
        ledger = self.ledger(kind)
        if ledger is not None:
            ledger.record(name, result.success)

    @property
    def last_step_result(self) -> Optional[StepResult]:
        return self.step_results[-1] if self.step_results else None


@dataclass(frozen=True, slots=True)
class ExecutionSummary:
    roles_created: List[str]
    roles_failed: List[str]
    categories_created: List[str]
    categories_failed: List[str]
    channels_created: List[str]
    channels_failed: List[str]

    @classmethod
    def from_run(cls, run: ExecutionRun) -> "ExecutionSummary":
        return cls(
            roles_created=list(run.roles.created),
            roles_failed=list(run.roles.failed),
            categories_created=list(run.categories.created),
            categories_failed=list(run.categories.failed),
            channels_created=list(run.channels.created),
            channels_failed=list(run.channels.failed),
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "rolesCreated": list(self.roles_created),
            "rolesFailed": list(self.roles_failed),
            "categoriesCreated": list(self.categories_created),
            "categoriesFailed": list(self.categories_failed),
            "channelsCreated": list(self.channels_created),
            "channelsFailed": list(self.channels_failed),
        }


@dataclass(frozen=True, slots=True)
class PartialResults:
    roles_created: List[str] = field(default_factory=list)
    categories_created: List[str] = field(default_factory=list)
    channels_created: List[str] = field(default_factory=list)

    @classmethod
    def from_run(cls, run: ExecutionRun) -> "PartialResults":
        return cls(
            roles_created=list(run.roles.created),
            categories_created=list(run.categories.created),
            channels_created=list(run.channels.created),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.roles_created or self.categories_created or self.channels_created)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "rolesCreated": list(self.roles_created),
            "categoriesCreated": list(self.categories_created),
            "channelsCreated": list(self.channels_created),
        }


@dataclass(frozen=True, slots=True)
class ExecutionReport:
    """Returned when every phase ran to the end."""

    message: str
    server_name: str
    template_id: str
    summary: ExecutionSummary
    total_duration_ms: int
    step_results: List[StepResult]
    dry_run: bool = False

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": True,
            "message": self.message,
            "serverName": self.server_name,
            "templateId": self.template_id,
            "summary": self.summary.to_dict(),
            "totalDurationMs": self.total_duration_ms,
            "stepResults": [result.to_dict() for result in self.step_results],
        }
        if self.dry_run:
            data["dryRun"] = True
        return data


@dataclass(frozen=True, slots=True)
class ExecutionFailure:
    """Returned when a run stops early. Carries what was created before the stop."""

    error: str
    code: ErrorCode
    failed_phase: ExecutionPhase
    step_results: List[StepResult] = field(default_factory=list)
    partial_results: Optional[PartialResults] = None
    suggestion: Optional[str] = None

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": False,
            "error": self.error,
            "code": self.code.value,
            "failedPhase": self.failed_phase.value,
            "stepResults": [result.to_dict() for result in self.step_results],
        }
        if self.partial_results is not None:
            data["partialResults"] = self.partial_results.to_dict()
        if self.suggestion is not None:
            data["suggestion"] = self.suggestion
        return data


ExecutionResult = Union[ExecutionReport, ExecutionFailure]
