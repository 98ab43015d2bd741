from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from .config import WebhookConfig
from .errors import DiscordOperationError
from .progress import ProgressPrinter
from .report import ExecutionReport, ExecutionResult

SUCCESS_COLOR = 0x2ECC71
PARTIAL_COLOR = 0xF39C12
FAILURE_COLOR = 0xE74C3C
MAX_FIELD_LENGTH = 1024


def _name_list(names: List[str]) -> str:
    if not names:
        return "none"
    text = ", ".join(names)
    if len(text) > MAX_FIELD_LENGTH:
        text = text[: MAX_FIELD_LENGTH - 3] + "..."
    return text


def build_report_payload(result: ExecutionResult, username: Optional[str] = None) -> Dict[str, Any]:
    """Render an execution result as a Discord webhook message."""
    if isinstance(result, ExecutionReport):
        summary = result.summary
        failures = summary.roles_failed + summary.categories_failed + summary.channels_failed
        embed = {
            "title": "Server Template Applied",
            "description": result.message,
            "color": PARTIAL_COLOR if failures else SUCCESS_COLOR,
            "fields": [
                {"name": "Roles created", "value": str(len(summary.roles_created)), "inline": True},
                {"name": "Categories created", "value": str(len(summary.categories_created)), "inline": True},
                {"name": "Channels created", "value": str(len(summary.channels_created)), "inline": True},
                {"name": "Failed items", "value": _name_list(failures)},
                {"name": "Duration", "value": f"{result.total_duration_ms / 1000:.1f}s"},
            ],
        }
        content = f"Server '{result.server_name}' has been provisioned from template '{result.template_id}'."
    else:
        embed = {
            "title": "Server Template Failed",
            "description": result.error,
            "color": FAILURE_COLOR,
            "fields": [
                {"name": "Code", "value": result.code.value, "inline": True},
                {"name": "Phase", "value": result.failed_phase.value, "inline": True},
            ],
        }
        if result.partial_results is not None and not result.partial_results.is_empty:
            partial = result.partial_results
            embed["fields"].append(
                {
                    "name": "Created before failure",
                    "value": _name_list(
                        partial.roles_created + partial.categories_created + partial.channels_created
                    ),
                }
            )
        if result.suggestion:
            embed["fields"].append({"name": "Suggestion", "value": result.suggestion})
        content = "Server provisioning did not complete."

    data: Dict[str, Any] = {"content": content, "embeds": [embed]}
    if username:
        data["username"] = username
    return data


class WebhookNotifier:
    """Handles optional webhook notifications once provisioning completes."""

    def __init__(self, config: WebhookConfig, progress: ProgressPrinter) -> None:
        self._config = config
        self._progress = progress
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=30)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def notify(self, result: ExecutionResult) -> None:
        if not self._config.enabled or not self._config.url:
            return

        session = await self._ensure_session()
        data = build_report_payload(result, self._config.username)

        try:
            async with session.post(self._config.url, json=data) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise DiscordOperationError(
                        f"Webhook responded with status {response.status}: {body}"
                    )
        except asyncio.TimeoutError as exc:
            raise DiscordOperationError("Webhook request timed out") from exc
        self._progress.success("Webhook notification sent.")

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
