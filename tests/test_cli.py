import pytest

from guild_templater import cli
from guild_templater.errors import ErrorCode
from guild_templater.report import (
    ExecutionFailure,
    ExecutionPhase,
    ExecutionReport,
    ExecutionSummary,
    PartialResults,
)


def _scripted_input(monkeypatch, answers):
    remaining = list(answers)

    def fake_input(prompt=""):
        return remaining.pop(0)

    monkeypatch.setattr("builtins.input", fake_input)
    return remaining


def test_collect_session_configuration(monkeypatch, capsys) -> None:
    monkeypatch.setenv("DISCORD_TOKEN", "secret-token")
    remaining = _scripted_input(
        monkeypatch,
        [
            "karaoke",  # unknown template, asked again
            "gaming",
            "x",  # too short, asked again
            "  My Guild  ",
            "y",  # customize
            "Newbie, Member",
            "memes",
            "Admin=blue",  # invalid, asked again
            "Admin=#123456",
            "",  # stop on first error: default no
            "yes",  # dry run
            "n",  # webhook
        ],
    )

    config = cli.collect_session_configuration()

    assert remaining == []
    assert config.token == "secret-token"
    assert config.webhook is None
    request = config.request
    assert request.template_id == "gaming"
    assert request.target_name == "My Guild"
    assert request.customization.skip_roles == ["Newbie", "Member"]
    assert request.customization.skip_channels == ["memes"]
    assert request.customization.role_color_overrides == {"Admin": "#123456"}
    assert request.stop_on_first_error is False
    assert request.dry_run is True
    out = capsys.readouterr().out
    assert "Please choose one of" in out
    assert "study_group" in out


def test_token_is_prompted_when_not_in_environment(monkeypatch) -> None:
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)
    tokens = iter(["", "  typed-token  "])
    monkeypatch.setattr(cli.getpass, "getpass", lambda prompt="": next(tokens))

    assert cli._resolve_token() == "typed-token"


def test_webhook_prompt(monkeypatch) -> None:
    _scripted_input(monkeypatch, ["y", "https://example.invalid/hook", ""])

    webhook = cli._prompt_webhook_configuration()

    assert webhook.enabled
    assert webhook.url == "https://example.invalid/hook"
    assert webhook.username is None


def test_display_summary_for_success(capsys) -> None:
    report = ExecutionReport(
        message="Applied template 'Gaming Community' to server 'Test' with 1 failed item(s)",
        server_name="Test",
        template_id="gaming",
        summary=ExecutionSummary(
            roles_created=["Owner"],
            roles_failed=[],
            categories_created=["GENERAL"],
            categories_failed=[],
            channels_created=["general-chat"],
            channels_failed=["memes"],
        ),
        total_duration_ms=3500,
        step_results=[],
    )

    cli.display_summary(report)

    out = capsys.readouterr().out
    assert "Channels: 1 created, 1 failed" in out
    assert "Failed items: memes" in out
    assert "Duration: 3.5s" in out


def test_display_summary_for_failure(capsys) -> None:
    failure = ExecutionFailure(
        error="Failed to create category: GENERAL",
        code=ErrorCode.CATEGORY_CREATION_FAILED,
        failed_phase=ExecutionPhase.CREATING_CATEGORIES,
        partial_results=PartialResults(roles_created=["Owner", "Admin"], categories_created=["WELCOME"]),
        suggestion="Retry category and channel creation directly.",
    )

    cli.display_summary(failure)

    out = capsys.readouterr().out
    assert "[CATEGORY_CREATION_FAILED] Failed to create category: GENERAL" in out
    assert "Phase: creating_categories" in out
    assert "2 roles, 1 categories, 0 channels" in out
    assert "Suggestion: Retry category" in out


@pytest.mark.parametrize("answer, expected", [("", True), ("n", False), ("YES", True)])
def test_yes_no_prompt(monkeypatch, answer: str, expected: bool) -> None:
    _scripted_input(monkeypatch, [answer])
    assert cli._prompt_yes_no("Continue?", default=True) is expected
