from guild_templater.errors import (
    ConfigurationError,
    ErrorCode,
    GuildTemplaterError,
    TemplateLoadError,
    TemplateNotFoundError,
    wrap_error,
)


def test_subclasses_carry_their_codes() -> None:
    assert ConfigurationError("bad").code is ErrorCode.INVALID_INPUT
    assert TemplateNotFoundError("missing").code is ErrorCode.TEMPLATE_NOT_FOUND
    assert TemplateLoadError("broken").code is ErrorCode.TEMPLATE_LOAD_FAILED
    assert GuildTemplaterError("other").code is ErrorCode.UNKNOWN_ERROR


def test_explicit_code_overrides_class_default() -> None:
    error = GuildTemplaterError("nope", code=ErrorCode.SERVER_CREATION_FAILED, suggestion="retry")
    assert error.code is ErrorCode.SERVER_CREATION_FAILED
    assert error.suggestion == "retry"


def test_wrap_error_keeps_known_errors() -> None:
    error = ConfigurationError("bad")
    assert wrap_error(error, "ignored") is error


def test_wrap_error_prefixes_context_and_chains_cause() -> None:
    cause = KeyError("guild")
    wrapped = wrap_error(cause, "Template execution failed")

    assert wrapped.code is ErrorCode.UNKNOWN_ERROR
    assert str(wrapped) == "Template execution failed: 'guild'"
    assert wrapped.__cause__ is cause


def test_wrap_error_uses_class_name_for_empty_messages() -> None:
    assert str(wrap_error(RuntimeError())) == "RuntimeError"
