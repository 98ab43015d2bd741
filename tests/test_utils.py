import pytest

from guild_templater.config import Customization, ExecuteRequest, RetryPolicy
from guild_templater.errors import ConfigurationError, ErrorCode
from guild_templater.utils import (
    parse_color_overrides,
    parse_execute_request,
    parse_name_list,
    validate_request,
    validate_target_name,
)


def test_parse_minimal_request_applies_defaults() -> None:
    request = parse_execute_request({"templateId": "gaming", "targetName": "  Test  "})

    assert request.template_id == "gaming"
    assert request.target_name == "  Test  "
    assert request.customization is None
    assert request.retry_policy is None
    assert request.stop_on_first_error is False
    assert request.dry_run is False


def test_parse_full_request() -> None:
    request = parse_execute_request(
        {
            "templateId": "study_group",
            "targetName": "CS 101",
            "customization": {
                "skipRoles": ["Newbie"],
                "skipChannels": ["memes"],
                "roleColorOverrides": {"Admin": "#123456"},
            },
            "retryPolicy": {"maxAttempts": 5, "retryDelayMs": 250, "exponentialBackoff": False},
            "stopOnFirstError": True,
        }
    )

    assert request.customization == Customization(
        skip_roles=["Newbie"],
        skip_channels=["memes"],
        role_color_overrides={"Admin": "#123456"},
    )
    assert request.retry_policy == RetryPolicy(
        max_attempts=5, retry_delay_ms=250, exponential_backoff=False
    )
    assert request.stop_on_first_error is True


def test_retry_options_alias_is_accepted() -> None:
    request = parse_execute_request(
        {
            "templateId": "gaming",
            "targetName": "Test",
            "retryOptions": {"maxAttempts": 2, "useExponentialBackoff": False},
        }
    )

    assert request.retry_policy.max_attempts == 2
    assert request.retry_policy.retry_delay_ms == 1000
    assert request.retry_policy.exponential_backoff is False


@pytest.mark.parametrize(
    "payload",
    [
        {"templateId": "karaoke", "targetName": "Test"},
        {"templateId": "gaming", "targetName": "x"},
        {"templateId": "gaming", "targetName": "x" * 101},
        {"templateId": "gaming", "targetName": "Test", "retryPolicy": {"maxAttempts": 0}},
        {"templateId": "gaming", "targetName": "Test", "retryPolicy": {"maxAttempts": 6}},
        {"templateId": "gaming", "targetName": "Test", "retryPolicy": {"retryDelayMs": 50}},
        {"templateId": "gaming", "targetName": "Test", "retryPolicy": {"retryDelayMs": 5001}},
        {"templateId": "gaming", "targetName": "Test", "retryPolicy": {"maxAttempts": True}},
        {"templateId": "gaming", "targetName": "Test", "stopOnFirstError": "yes"},
        {"templateId": "gaming", "targetName": "Test", "customization": {"skipRoles": "Newbie"}},
        {
            "templateId": "gaming",
            "targetName": "Test",
            "customization": {"roleColorOverrides": {"Admin": "blue"}},
        },
    ],
)
def test_invalid_payloads(payload) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_execute_request(payload)
    assert excinfo.value.code is ErrorCode.INVALID_INPUT


def test_target_name_bounds() -> None:
    assert validate_target_name("ab") == "ab"
    assert validate_target_name("y" * 100) == "y" * 100
    assert validate_target_name("a ") == "a "
    with pytest.raises(ConfigurationError):
        validate_target_name("a")
    with pytest.raises(ConfigurationError):
        validate_target_name("z" * 101)


def test_validate_request_leaves_the_name_untouched() -> None:
    request = ExecuteRequest(template_id="gaming", target_name="  Guild  ")
    assert validate_request(request) is request
    assert request.target_name == "  Guild  "


def test_parse_name_list() -> None:
    assert parse_name_list(" memes, ,rules ,") == ["memes", "rules"]
    assert parse_name_list("") == []


def test_parse_color_overrides() -> None:
    assert parse_color_overrides("Admin=#FF0000, VIP = #00ff00") == {
        "Admin": "#FF0000",
        "VIP": "#00ff00",
    }
    assert parse_color_overrides("") == {}
    with pytest.raises(ConfigurationError):
        parse_color_overrides("Admin:#FF0000")
