from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

TEMPLATE_IDS = ("gaming", "community", "business", "study_group")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_MAX_DELAY_MS = 5000


@dataclass(slots=True)
class RetryPolicy:
    """Bounded retry settings applied to every step."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    exponential_backoff: bool = True
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS


@dataclass(slots=True)
class Customization:
    """Per-run overlay that skips or recolors template items."""

    skip_roles: List[str] = field(default_factory=list)
    skip_channels: List[str] = field(default_factory=list)
    role_color_overrides: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ExecuteRequest:
    """Represents a single template execution request."""

    template_id: str
    target_name: str
    customization: Optional[Customization] = None
    retry_policy: Optional[RetryPolicy] = None
    stop_on_first_error: bool = False
    dry_run: bool = False


@dataclass(slots=True)
class ExecutionTimings:
    """Fixed pauses, in seconds, between remote mutations."""

    settle_delay: float = 2.0
    step_delay: float = 0.3


@dataclass(slots=True)
class WebhookConfig:
    """Configuration for optional webhook notifications."""

    enabled: bool
    url: Optional[str] = None
    username: Optional[str] = None


@dataclass(slots=True)
class SessionConfig:
    """Aggregate configuration for a provisioning session."""

    token: str
    request: ExecuteRequest
    webhook: Optional[WebhookConfig] = None
