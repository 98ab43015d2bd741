from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

HEX_COLOR_REGEX = re.compile(r"#[0-9A-Fa-f]{6}")


class ChannelKind(str, Enum):
    TEXT = "text"
    VOICE = "voice"
    ANNOUNCEMENT = "announcement"
    FORUM = "forum"
    STAGE = "stage"


class Permission(str, Enum):
    """Discord permission names as they appear in template files."""

    ADMINISTRATOR = "ADMINISTRATOR"
    VIEW_CHANNEL = "VIEW_CHANNEL"
    MANAGE_CHANNELS = "MANAGE_CHANNELS"
    MANAGE_ROLES = "MANAGE_ROLES"
    MANAGE_EMOJIS_AND_STICKERS = "MANAGE_EMOJIS_AND_STICKERS"
    VIEW_AUDIT_LOG = "VIEW_AUDIT_LOG"
    MANAGE_WEBHOOKS = "MANAGE_WEBHOOKS"
    MANAGE_GUILD = "MANAGE_GUILD"
    CREATE_INSTANT_INVITE = "CREATE_INSTANT_INVITE"
    CHANGE_NICKNAME = "CHANGE_NICKNAME"
    MANAGE_NICKNAMES = "MANAGE_NICKNAMES"
    KICK_MEMBERS = "KICK_MEMBERS"
    BAN_MEMBERS = "BAN_MEMBERS"
    MODERATE_MEMBERS = "MODERATE_MEMBERS"
    SEND_MESSAGES = "SEND_MESSAGES"
    SEND_MESSAGES_IN_THREADS = "SEND_MESSAGES_IN_THREADS"
    CREATE_PUBLIC_THREADS = "CREATE_PUBLIC_THREADS"
    CREATE_PRIVATE_THREADS = "CREATE_PRIVATE_THREADS"
    EMBED_LINKS = "EMBED_LINKS"
    ATTACH_FILES = "ATTACH_FILES"
    ADD_REACTIONS = "ADD_REACTIONS"
    USE_EXTERNAL_EMOJIS = "USE_EXTERNAL_EMOJIS"
    USE_EXTERNAL_STICKERS = "USE_EXTERNAL_STICKERS"
    MENTION_EVERYONE = "MENTION_EVERYONE"
    MANAGE_MESSAGES = "MANAGE_MESSAGES"
    MANAGE_THREADS = "MANAGE_THREADS"
    READ_MESSAGE_HISTORY = "READ_MESSAGE_HISTORY"
    SEND_TTS_MESSAGES = "SEND_TTS_MESSAGES"
    USE_APPLICATION_COMMANDS = "USE_APPLICATION_COMMANDS"
    CONNECT = "CONNECT"
    SPEAK = "SPEAK"
    STREAM = "STREAM"
    USE_EMBEDDED_ACTIVITIES = "USE_EMBEDDED_ACTIVITIES"
    USE_SOUNDBOARD = "USE_SOUNDBOARD"
    USE_EXTERNAL_SOUNDS = "USE_EXTERNAL_SOUNDS"
    USE_VAD = "USE_VAD"
    PRIORITY_SPEAKER = "PRIORITY_SPEAKER"
    MUTE_MEMBERS = "MUTE_MEMBERS"
    DEAFEN_MEMBERS = "DEAFEN_MEMBERS"
    MOVE_MEMBERS = "MOVE_MEMBERS"
    CREATE_EVENTS = "CREATE_EVENTS"
    MANAGE_EVENTS = "MANAGE_EVENTS"

    @property
    def flag(self) -> str:
        """Attribute name of this permission on ``discord.Permissions``."""
        if self is Permission.USE_VAD:
            return "use_voice_activation"
        return self.value.lower()


@dataclass(frozen=True, slots=True)
class PermissionOverride:
    role: str
    allow: Tuple[Permission, ...] = ()
    deny: Tuple[Permission, ...] = ()


@dataclass(frozen=True, slots=True)
class Role:
    name: str
    color: str
    hoist: bool
    mentionable: bool
    permissions: Tuple[Permission, ...]
    position: int

    def with_color(self, color: str) -> "Role":
        return replace(self, color=color)


@dataclass(frozen=True, slots=True)
class Channel:
    name: str
    kind: ChannelKind
    topic: Optional[str] = None
    slowmode: int = 0
    nsfw: bool = False
    bitrate: Optional[int] = None
    user_limit: Optional[int] = None
    permission_overrides: Tuple[PermissionOverride, ...] = ()


@dataclass(frozen=True, slots=True)
class Category:
    name: str
    channels: Tuple[Channel, ...]
    permission_overrides: Tuple[PermissionOverride, ...] = ()


@dataclass(frozen=True, slots=True)
class Template:
    id: str
    name: str
    description: str
    roles: Tuple[Role, ...]
    categories: Tuple[Category, ...]
    use_case: Optional[str] = None
    icon: Optional[str] = None

    @property
    def channel_count(self) -> int:
        return sum(len(category.channels) for category in self.categories)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Template":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data["description"],
            roles=tuple(_parse_role(raw) for raw in data["roles"]),
            categories=tuple(_parse_category(raw) for raw in data["categories"]),
            use_case=data.get("use_case"),
            icon=data.get("icon"),
        )


def _parse_overrides(raw_overrides: Any) -> Tuple[PermissionOverride, ...]:
    return tuple(
        PermissionOverride(
            role=raw["role"],
            allow=tuple(Permission(name) for name in raw.get("allow", ())),
            deny=tuple(Permission(name) for name in raw.get("deny", ())),
        )
        for raw in raw_overrides or ()
    )


def _parse_role(raw: Mapping[str, Any]) -> Role:
    color = raw["color"]
    if not HEX_COLOR_REGEX.fullmatch(color):
        raise ValueError(f"Role '{raw['name']}' has invalid color {color!r}")
    return Role(
        name=raw["name"],
        color=color,
        hoist=bool(raw.get("hoist", False)),
        mentionable=bool(raw.get("mentionable", False)),
        permissions=tuple(Permission(name) for name in raw.get("permissions", ())),
        position=int(raw["position"]),
    )


def _parse_channel(raw: Mapping[str, Any]) -> Channel:
    return Channel(
        name=raw["name"],
        kind=ChannelKind(raw["type"]),
        topic=raw.get("topic"),
        slowmode=int(raw.get("slowmode", 0)),
        nsfw=bool(raw.get("nsfw", False)),
        bitrate=raw.get("bitrate"),
        user_limit=raw.get("user_limit"),
        permission_overrides=_parse_overrides(raw.get("permission_overrides")),
    )


def _parse_category(raw: Mapping[str, Any]) -> Category:
    return Category(
        name=raw["name"],
        channels=tuple(_parse_channel(channel) for channel in raw["channels"]),
        permission_overrides=_parse_overrides(raw.get("permission_overrides")),
    )
