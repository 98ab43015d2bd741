from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .config import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY_MS,
    TEMPLATE_IDS,
    Customization,
    ExecuteRequest,
    RetryPolicy,
)
from .errors import ConfigurationError
from .templates.models import HEX_COLOR_REGEX

MIN_TARGET_NAME_LENGTH = 2
MAX_TARGET_NAME_LENGTH = 100
MAX_ATTEMPTS_RANGE = (1, 5)
RETRY_DELAY_MS_RANGE = (100, 5000)


def validate_target_name(name: str) -> str:
    if not isinstance(name, str):
        raise ConfigurationError("Server name must be a string.")
    if len(name) < MIN_TARGET_NAME_LENGTH:
        raise ConfigurationError(
            f"Server name must be at least {MIN_TARGET_NAME_LENGTH} characters."
        )
    if len(name) > MAX_TARGET_NAME_LENGTH:
        raise ConfigurationError(
            f"Server name must be {MAX_TARGET_NAME_LENGTH} characters or less."
        )
    return name


def _require_int(value: Any, label: str, bounds: tuple) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{label} must be an integer.")
    low, high = bounds
    if not low <= value <= high:
        raise ConfigurationError(f"{label} must be between {low} and {high}.")
    return value


def _require_bool(value: Any, label: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigurationError(f"{label} must be true or false.")
    return value


def _require_names(value: Any, label: str) -> List[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"{label} must be a list of names.")
    return list(value)


def validate_retry_policy(policy: RetryPolicy) -> RetryPolicy:
    _require_int(policy.max_attempts, "maxAttempts", MAX_ATTEMPTS_RANGE)
    _require_int(policy.retry_delay_ms, "retryDelayMs", RETRY_DELAY_MS_RANGE)
    _require_bool(policy.exponential_backoff, "exponentialBackoff")
    if policy.max_delay_ms < policy.retry_delay_ms:
        raise ConfigurationError("maxDelayMs cannot be lower than retryDelayMs.")
    return policy


def validate_customization(customization: Customization) -> Customization:
    _require_names(customization.skip_roles, "skipRoles")
    _require_names(customization.skip_channels, "skipChannels")
    for role_name, color in customization.role_color_overrides.items():
        if not isinstance(color, str) or not HEX_COLOR_REGEX.fullmatch(color):
            raise ConfigurationError(
                f"Color override for role '{role_name}' must be a hex color like #1ABC9C."
            )
    return customization


def validate_request(request: ExecuteRequest) -> ExecuteRequest:
    """Check an already-built request. The request is returned unchanged."""
    validate_target_name(request.target_name)
    if request.customization is not None:
        validate_customization(request.customization)
    if request.retry_policy is not None:
        validate_retry_policy(request.retry_policy)
    _require_bool(request.stop_on_first_error, "stopOnFirstError")
    _require_bool(request.dry_run, "dryRun")
    return request


def _parse_customization(raw: Any) -> Optional[Customization]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ConfigurationError("customization must be an object.")
    overrides = raw.get("roleColorOverrides", {})
    if not isinstance(overrides, Mapping):
        raise ConfigurationError("roleColorOverrides must map role names to colors.")
    return Customization(
        skip_roles=_require_names(raw.get("skipRoles", []), "skipRoles"),
        skip_channels=_require_names(raw.get("skipChannels", []), "skipChannels"),
        role_color_overrides=dict(overrides),
    )


def _parse_retry_policy(raw: Any) -> Optional[RetryPolicy]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ConfigurationError("retryPolicy must be an object.")
    return RetryPolicy(
        max_attempts=raw.get("maxAttempts", DEFAULT_MAX_ATTEMPTS),
        retry_delay_ms=raw.get("retryDelayMs", DEFAULT_RETRY_DELAY_MS),
        exponential_backoff=raw.get("exponentialBackoff", raw.get("useExponentialBackoff", True)),
    )


def parse_execute_request(payload: Mapping[str, Any]) -> ExecuteRequest:
    """Build and validate an :class:`ExecuteRequest` from a camelCase payload."""
    if not isinstance(payload, Mapping):
        raise ConfigurationError("Request must be an object.")
    template_id = payload.get("templateId")
    if template_id not in TEMPLATE_IDS:
        raise ConfigurationError(
            f"templateId must be one of: {', '.join(TEMPLATE_IDS)}.",
            suggestion=f"Available templates: {', '.join(TEMPLATE_IDS)}",
        )
    request = ExecuteRequest(
        template_id=template_id,
        target_name=payload.get("targetName", ""),
        customization=_parse_customization(payload.get("customization")),
        retry_policy=_parse_retry_policy(
            payload.get("retryPolicy", payload.get("retryOptions"))
        ),
        stop_on_first_error=payload.get("stopOnFirstError", False),
        dry_run=payload.get("dryRun", False),
    )
    return validate_request(request)


def parse_name_list(raw: str) -> List[str]:
    return [name.strip() for name in raw.split(",") if name.strip()]


def parse_color_overrides(raw: str) -> Dict[str, str]:
    """Parse ``Role=#RRGGBB, Other=#RRGGBB`` into a mapping."""
    overrides: Dict[str, str] = {}
    for entry in parse_name_list(raw):
        role_name, sep, color = entry.partition("=")
        if not sep or not role_name.strip() or not HEX_COLOR_REGEX.fullmatch(color.strip()):
            raise ConfigurationError(
                f"Color override '{entry}' must look like RoleName=#1ABC9C."
            )
        overrides[role_name.strip()] = color.strip()
    return overrides
