from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import discord

from .errors import AuthenticationError, DiscordOperationError
from .outcome import Err, Ok, Outcome
from .progress import ProgressPrinter
from .templates.models import Channel, ChannelKind, Permission, PermissionOverride, Role

log = logging.getLogger("guild_templater.backend")

AUDIT_REASON = "Server template provisioning"
EVERYONE_ROLE = "@everyone"


class ProvisioningBackend(Protocol):
    """Remote mutations the executor drives. Each returns ``Ok(identifier)`` or ``Err(message)``."""

    async def create_container(self, name: str) -> Outcome[str]:
        ...

    async def create_role(self, container_name: str, role: Role) -> Outcome[str]:
        ...

    async def create_category(
        self,
        container_name: str,
        name: str,
        overrides: Sequence[PermissionOverride] = (),
    ) -> Outcome[str]:
        ...

    async def create_channel(
        self, container_name: str, category_name: str, channel: Channel
    ) -> Outcome[str]:
        ...


@dataclass(slots=True)
class _GuildHandle:
    guild: discord.Guild
    roles: Dict[str, discord.Role] = field(default_factory=dict)
    categories: Dict[str, discord.CategoryChannel] = field(default_factory=dict)


def _permission_flags(permissions: Iterable[Permission]) -> List[str]:
    flags = []
    for permission in permissions:
        if permission.flag in discord.Permissions.VALID_FLAGS:
            flags.append(permission.flag)
        else:
            log.warning("discord.py does not know permission %s; ignoring it", permission.value)
    return flags


def build_permissions(permissions: Iterable[Permission]) -> discord.Permissions:
    return discord.Permissions(**{flag: True for flag in _permission_flags(permissions)})


def build_overwrite(override: PermissionOverride) -> discord.PermissionOverwrite:
    values: Dict[str, bool] = {flag: True for flag in _permission_flags(override.allow)}
    values.update({flag: False for flag in _permission_flags(override.deny)})
    return discord.PermissionOverwrite(**values)


class DiscordBackend:
    """discord.py implementation of :class:`ProvisioningBackend`.

    The handle owns one client session: ``start()`` logs in and waits for the
    gateway to become ready, ``close()`` tears the session down. It can also be
    used as an async context manager.
    """

    def __init__(
        self,
        token: str,
        *,
        progress: Optional[ProgressPrinter] = None,
        intents: Optional[discord.Intents] = None,
    ) -> None:
        self._token = token
        self._progress = progress or ProgressPrinter()
        self._client = discord.Client(intents=intents or discord.Intents.default())
        self._connection: Optional[asyncio.Task] = None
        self._handles: Dict[str, _GuildHandle] = {}
        self._started = False

    async def __aenter__(self) -> "DiscordBackend":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def start(self) -> None:
        if self._connection is not None:
            return
        self._started = True
        self._progress.step("Authenticating with Discord...")
        try:
            await self._client.login(self._token)
        except discord.LoginFailure as exc:
            raise AuthenticationError(
                "Discord rejected the provided token. Please verify it and try again."
            ) from exc
        except discord.HTTPException as exc:
            raise self._build_authentication_error(exc) from exc

        self._progress.step("Connecting to Discord...")
        self._connection = asyncio.create_task(self._client.connect(reconnect=False))
        ready = asyncio.create_task(self._client.wait_until_ready())
        done, _ = await asyncio.wait(
            {self._connection, ready}, return_when=asyncio.FIRST_COMPLETED
        )
        if ready not in done:
            ready.cancel()
            cause = None
            if not self._connection.cancelled():
                cause = self._connection.exception()
            await self.close()
            raise DiscordOperationError(
                "Discord closed the connection before the client became ready."
            ) from cause
        self._progress.success(f"Authenticated as {self._client.user}.")

    async def close(self) -> None:
        if not self._started:
            return
        self._started = False
        self._handles.clear()
        if not self._client.is_closed():
            await self._client.close()
        connection, self._connection = self._connection, None
        if connection is None:
            return
        if not connection.done():
            await asyncio.wait({connection}, timeout=5)
        if connection.done() and not connection.cancelled() and connection.exception():
            log.warning("Discord connection ended with an error: %s", connection.exception())

    async def create_container(self, name: str) -> Outcome[str]:
        try:
            guild = await self._client.create_guild(name=name)
        except discord.HTTPException as exc:
            return Err(self._describe_http_error(exc, "creating the server"))
        self._handles[name] = _GuildHandle(
            guild=guild, roles={role.name: role for role in guild.roles}
        )
        return Ok(str(guild.id))

    async def create_role(self, container_name: str, role: Role) -> Outcome[str]:
        handle = self._handle(container_name)
        if handle is None:
            return self._missing_container(container_name)
        try:
            colour = discord.Colour.from_str(role.color)
        except ValueError:
            return Err(f"Invalid color {role.color!r} for role '{role.name}'")
        try:
            created = await handle.guild.create_role(
                name=role.name,
                colour=colour,
                hoist=role.hoist,
                mentionable=role.mentionable,
                permissions=build_permissions(role.permissions),
                reason=AUDIT_REASON,
            )
        except discord.HTTPException as exc:
            return Err(self._describe_http_error(exc, f"creating role '{role.name}'"))
        handle.roles[created.name] = created
        return Ok(str(created.id))

    async def create_category(
        self,
        container_name: str,
        name: str,
        overrides: Sequence[PermissionOverride] = (),
    ) -> Outcome[str]:
        handle = self._handle(container_name)
        if handle is None:
            return self._missing_container(container_name)
        try:
            category = await handle.guild.create_category(
                name,
                overwrites=self._overwrites(handle, overrides),
                reason=AUDIT_REASON,
            )
        except discord.HTTPException as exc:
            return Err(self._describe_http_error(exc, f"creating category '{name}'"))
        handle.categories[name] = category
        return Ok(str(category.id))

    async def create_channel(
        self, container_name: str, category_name: str, channel: Channel
    ) -> Outcome[str]:
        handle = self._handle(container_name)
        if handle is None:
            return self._missing_container(container_name)
        category = handle.categories.get(category_name)
        if category is None:
            log.warning(
                "Category '%s' is unavailable; creating '%s' without a parent",
                category_name,
                channel.name,
            )
        options: Dict[str, Any] = {
            "category": category,
            "overwrites": self._overwrites(handle, channel.permission_overrides),
            "reason": AUDIT_REASON,
        }
        guild = handle.guild
        try:
            if channel.kind is ChannelKind.TEXT or channel.kind is ChannelKind.ANNOUNCEMENT:
                if channel.topic:
                    options["topic"] = channel.topic
                created = await guild.create_text_channel(
                    channel.name,
                    news=channel.kind is ChannelKind.ANNOUNCEMENT,
                    slowmode_delay=channel.slowmode,
                    nsfw=channel.nsfw,
                    **options,
                )
            elif channel.kind is ChannelKind.VOICE:
                if channel.bitrate:
                    options["bitrate"] = channel.bitrate
                if channel.user_limit:
                    options["user_limit"] = channel.user_limit
                created = await guild.create_voice_channel(channel.name, **options)
            elif channel.kind is ChannelKind.STAGE:
                created = await guild.create_stage_channel(channel.name, **options)
            elif channel.kind is ChannelKind.FORUM:
                if channel.topic:
                    options["topic"] = channel.topic
                created = await guild.create_forum(
                    channel.name,
                    slowmode_delay=channel.slowmode,
                    nsfw=channel.nsfw,
                    **options,
                )
            else:
                return Err(f"Unsupported channel type {channel.kind!r}")
        except discord.HTTPException as exc:
            return Err(self._describe_http_error(exc, f"creating channel '{channel.name}'"))
        return Ok(str(created.id))

    def _handle(self, container_name: str) -> Optional[_GuildHandle]:
        handle = self._handles.get(container_name)
        if handle is not None:
            return handle
        guild = discord.utils.get(self._client.guilds, name=container_name)
        if guild is None:
            return None
        handle = _GuildHandle(
            guild=guild,
            roles={role.name: role for role in guild.roles},
            categories={category.name: category for category in guild.categories},
        )
        self._handles[container_name] = handle
        return handle

    @staticmethod
    def _missing_container(container_name: str) -> Err:
        return Err(f"Server '{container_name}' was not found")

    @staticmethod
    def _overwrites(
        handle: _GuildHandle, overrides: Sequence[PermissionOverride]
    ) -> Dict[discord.Role, discord.PermissionOverwrite]:
        overwrites: Dict[discord.Role, discord.PermissionOverwrite] = {}
        for override in overrides:
            if override.role == EVERYONE_ROLE:
                target = handle.guild.default_role
            else:
                target = handle.roles.get(override.role)
            if target is None:
                log.warning("Skipping permission override for unknown role '%s'", override.role)
                continue
            overwrites[target] = build_overwrite(override)
        return overwrites

    @staticmethod
    def _describe_http_error(exc: discord.HTTPException, action: str) -> str:
        if isinstance(exc, discord.Forbidden):
            return f"Discord denied the request while {action}."
        detail = (exc.text or "").strip()
        if detail:
            return f"Discord API responded with status {exc.status} while {action}: {detail}"
        return f"Discord API responded with status {exc.status} while {action}."

    @staticmethod
    def _build_authentication_error(exc: discord.HTTPException) -> AuthenticationError:
        status = exc.status
        if status == 401:
            return AuthenticationError(
                "Discord rejected the provided token. Please verify it and try again."
            )
        if status == 403:
            return AuthenticationError(
                "Discord refused to log this account in. It may be locked or need "
                "extra verification."
            )
        if status == 429:
            seconds = _retry_after_seconds(exc)
            pause = f"wait {seconds} seconds" if seconds else "wait a moment"
            return AuthenticationError(
                f"Discord is rate limiting authentication attempts. Please {pause} "
                "before trying again."
            )
        detail = (exc.text or "").strip()
        suffix = f": {detail}" if detail else "."
        return AuthenticationError(f"Failed to authenticate with Discord (HTTP {status}){suffix}")


def _retry_after_seconds(exc: discord.HTTPException) -> Optional[int]:
    """Whole seconds Discord asked us to wait, from the header or the JSON body."""
    response = getattr(exc, "response", None)
    raw: Any = response.headers.get("Retry-After") if response is not None else None
    if not raw and exc.text:
        try:
            body = json.loads(exc.text)
        except ValueError:
            body = None
        if isinstance(body, dict):
            raw = body.get("retry_after")
    try:
        seconds = float(raw)
    except (TypeError, ValueError):
        return None
    return round(seconds) if seconds >= 1 else None
