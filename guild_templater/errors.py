from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_LOAD_FAILED = "TEMPLATE_LOAD_FAILED"
    INVALID_INPUT = "INVALID_INPUT"
    SERVER_CREATION_FAILED = "SERVER_CREATION_FAILED"
    ROLE_CREATION_FAILED = "ROLE_CREATION_FAILED"
    CATEGORY_CREATION_FAILED = "CATEGORY_CREATION_FAILED"
    CHANNEL_CREATION_FAILED = "CHANNEL_CREATION_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class GuildTemplaterError(Exception):
    """Base exception for the guild templater."""

    code = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: Optional[ErrorCode] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.suggestion = suggestion


class ConfigurationError(GuildTemplaterError):
    """Raised when the provided configuration is invalid."""

    code = ErrorCode.INVALID_INPUT


class TemplateNotFoundError(GuildTemplaterError):
    """Raised when no template is registered under the requested id."""

    code = ErrorCode.TEMPLATE_NOT_FOUND


class TemplateLoadError(GuildTemplaterError):
    """Raised when a registered template cannot be read or parsed."""

    code = ErrorCode.TEMPLATE_LOAD_FAILED


class AuthenticationError(GuildTemplaterError):
    """Raised when Discord rejects the login."""


class DiscordOperationError(GuildTemplaterError):
    """Raised when an operation against Discord's API fails."""


def wrap_error(exc: BaseException, context: Optional[str] = None) -> GuildTemplaterError:
    """Normalize any exception into a :class:`GuildTemplaterError`."""
    if isinstance(exc, GuildTemplaterError):
        return exc
    message = str(exc) or exc.__class__.__name__
    if context:
        message = f"{context}: {message}"
    wrapped = GuildTemplaterError(message, code=ErrorCode.UNKNOWN_ERROR)
    wrapped.__cause__ = exc
    return wrapped
