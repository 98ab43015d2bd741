from __future__ import annotations

import asyncio
import logging

from guild_templater import (
    DiscordBackend,
    collect_session_configuration,
    display_summary,
    execute_template,
)
from guild_templater.errors import ConfigurationError, GuildTemplaterError
from guild_templater.progress import ProgressPrinter
from guild_templater.webhook import WebhookNotifier


async def _async_main() -> None:
    progress = ProgressPrinter()

    try:
        config = collect_session_configuration()
    except ConfigurationError as exc:
        progress.error(str(exc))
        return

    progress.step("Starting server template workflow...")

    webhook_notifier = WebhookNotifier(config.webhook, progress) if config.webhook else None
    backend = DiscordBackend(config.token, progress=progress)

    try:
        if not config.request.dry_run:
            await backend.start()
        result = await execute_template(
            config.request, backend, progress_callback=progress.execution_update
        )
        display_summary(result, progress=progress)
        if webhook_notifier:
            await webhook_notifier.notify(result)
    except GuildTemplaterError as exc:
        progress.error(str(exc))
    except Exception as exc:  # noqa: BLE001
        progress.error(f"An unexpected error occurred: {exc}")
    finally:
        await backend.close()
        if webhook_notifier:
            await webhook_notifier.close()


def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(_async_main())
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")


if __name__ == "__main__":
    main()
