from __future__ import annotations

import getpass
import os
from typing import List, Optional

from .config import Customization, ExecuteRequest, SessionConfig, WebhookConfig
from .errors import ConfigurationError
from .progress import ProgressPrinter
from .report import ExecutionReport, ExecutionResult
from .templates import TemplatePreview, list_templates
from .utils import parse_color_overrides, parse_name_list, validate_target_name

WARNING_BANNER = "=" * 72
TOKEN_ENV_VAR = "DISCORD_TOKEN"


def display_intro(progress: Optional[ProgressPrinter] = None) -> None:
    warning = (
        "This tool creates a new Discord server and fills it with the roles,\n"
        "categories and channels of the selected template.\n"
        "Never share your token and keep it secure."
    )
    banner = f"{WARNING_BANNER}\n⚠️  IMPORTANT\n{warning}\n{WARNING_BANNER}"
    if progress:
        progress.warning(warning)
    else:
        print(banner)


def _prompt_yes_no(prompt: str, default: bool = False) -> bool:
    suffix = " [Y/n]: " if default else " [y/N]: "
    while True:
        answer = input(prompt + suffix).strip().lower()
        if not answer:
            return default
        if answer in {"y", "yes"}:
            return True
        if answer in {"n", "no"}:
            return False
        print("Please enter 'y' or 'n'.")


def _prompt_token() -> str:
    print("Your token will not be displayed and is only used in memory for this session.")
    return getpass.getpass("Enter your Discord token: ").strip()


def _resolve_token() -> str:
    token = os.environ.get(TOKEN_ENV_VAR, "").strip()
    if token:
        print(f"Using the token from ${TOKEN_ENV_VAR}.")
        return token
    token = _prompt_token()
    while not token:
        print("Token cannot be empty. Please try again.")
        token = _prompt_token()
    return token


def _describe_template(preview: TemplatePreview) -> str:
    return (
        f"{preview.id:<12} {preview.name} "
        f"({preview.role_count} roles, {preview.category_count} categories, "
        f"{preview.channel_count} channels)"
    )


def _prompt_template(templates: List[TemplatePreview]) -> str:
    print("Available templates:")
    for preview in templates:
        print(f"  • {_describe_template(preview)}")
    known = {preview.id for preview in templates}
    while True:
        template_id = input("Template to apply: ").strip()
        if template_id in known:
            return template_id
        print(f"Please choose one of: {', '.join(sorted(known))}.")


def _prompt_target_name() -> str:
    while True:
        raw = input("Enter the name of the server to create: ")
        try:
            return validate_target_name(raw.strip())
        except ConfigurationError as exc:
            print(f"Error: {exc}")


def _prompt_customization() -> Optional[Customization]:
    if not _prompt_yes_no("Would you like to customize the template?", False):
        return None
    skip_roles = parse_name_list(input("Roles to skip (comma-separated, blank for none): "))
    skip_channels = parse_name_list(
        input("Channels to skip (comma-separated, blank for none): ")
    )
    while True:
        raw = input("Role color overrides, e.g. Admin=#FF0000 (blank for none): ")
        try:
            overrides = parse_color_overrides(raw)
            break
        except ConfigurationError as exc:
            print(f"Error: {exc}")
    return Customization(
        skip_roles=skip_roles,
        skip_channels=skip_channels,
        role_color_overrides=overrides,
    )


def _prompt_webhook_configuration() -> Optional[WebhookConfig]:
    if not _prompt_yes_no("Would you like to send a webhook notification when provisioning completes?", False):
        return None
    url = input("Enter the webhook URL: ").strip()
    if not url:
        print("Webhook URL cannot be empty. Webhook notifications will be disabled.")
        return None
    username = input("Optional: Enter a custom webhook username (leave blank to skip): ").strip()
    return WebhookConfig(enabled=True, url=url, username=username or None)


def collect_session_configuration() -> SessionConfig:
    """Interactively gather configuration from the user via CLI prompts."""
    display_intro()
    token = _resolve_token()
    template_id = _prompt_template(list_templates())
    target_name = _prompt_target_name()
    customization = _prompt_customization()
    stop_on_first_error = _prompt_yes_no("Stop at the first failed item?", False)
    dry_run = _prompt_yes_no("Dry run (show the plan without creating anything)?", False)
    webhook = _prompt_webhook_configuration()

    request = ExecuteRequest(
        template_id=template_id,
        target_name=target_name,
        customization=customization,
        stop_on_first_error=stop_on_first_error,
        dry_run=dry_run,
    )
    return SessionConfig(token=token, request=request, webhook=webhook)


def display_summary(result: ExecutionResult, progress: Optional[ProgressPrinter] = None) -> None:
    """Print a high-level summary of the execution result."""
    if isinstance(result, ExecutionReport):
        summary = result.summary
        lines = [
            "",
            "Summary:",
            f" • {result.message}",
            f" • Roles: {len(summary.roles_created)} created, {len(summary.roles_failed)} failed",
            f" • Categories: {len(summary.categories_created)} created, "
            f"{len(summary.categories_failed)} failed",
            f" • Channels: {len(summary.channels_created)} created, "
            f"{len(summary.channels_failed)} failed",
            f" • Duration: {result.total_duration_ms / 1000:.1f}s",
        ]
        failed = summary.roles_failed + summary.categories_failed + summary.channels_failed
        if failed:
            lines.append(f" • Failed items: {', '.join(failed)}")
    else:
        lines = [
            "",
            "Provisioning failed:",
            f" • [{result.code.value}] {result.error}",
            f" • Phase: {result.failed_phase.value}",
        ]
        if result.partial_results is not None and not result.partial_results.is_empty:
            partial = result.partial_results
            lines.append(
                f" • Created before failure: {len(partial.roles_created)} roles, "
                f"{len(partial.categories_created)} categories, "
                f"{len(partial.channels_created)} channels"
            )
        if result.suggestion:
            lines.append(f" • Suggestion: {result.suggestion}")
    message = "\n".join(lines)
    if progress:
        progress.divider()
        progress.info(message)
    else:
        print(message)
