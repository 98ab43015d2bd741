"""Discord server provisioning from declarative templates."""

from .backend import DiscordBackend, ProvisioningBackend
from .cli import collect_session_configuration, display_summary
from .config import (
    Customization,
    ExecuteRequest,
    ExecutionTimings,
    RetryPolicy,
    SessionConfig,
    WebhookConfig,
)
from .executor import TemplateExecutor, execute_template, handle_execute_request
from .outcome import Err, Ok, Outcome
from .progress import ExecutionProgress, ProgressPrinter
from .report import (
    ExecutionFailure,
    ExecutionPhase,
    ExecutionReport,
    ExecutionResult,
    StepResult,
)

__all__ = [
    "Customization",
    "DiscordBackend",
    "Err",
    "ExecuteRequest",
    "ExecutionFailure",
    "ExecutionPhase",
    "ExecutionProgress",
    "ExecutionReport",
    "ExecutionResult",
    "ExecutionTimings",
    "Ok",
    "Outcome",
    "ProgressPrinter",
    "ProvisioningBackend",
    "RetryPolicy",
    "SessionConfig",
    "StepResult",
    "TemplateExecutor",
    "WebhookConfig",
    "collect_session_configuration",
    "display_summary",
    "execute_template",
    "handle_execute_request",
]
