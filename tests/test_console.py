"""Tests for the sandbox console commands."""

from pathlib import Path
from unittest.mock import patch

import pytest

from keywordguard.configuration.app_configuration import AppConfig
from keywordguard.moderation.dispatcher import ModerationDispatcher
from keywordguard.ui import console
from keywordguard.util.sandbox_client import SandboxClient

CONFIG = """
blocking_rules:
  - group_id: "123456"
    mute_config:
      enable: true
      threshold: 2
      duration: 60
    blocking_words:
      "spam":
        trigger_mute: true
        recall: true
"""


@pytest.fixture
def control(tmp_path: Path, tracker):
    path = tmp_path / "app_config.yml"
    path.write_text(CONFIG, encoding="utf-8")
    app_config = AppConfig(path)
    client = SandboxClient()
    dispatcher = ModerationDispatcher(app_config.policies, client, tracker)
    return console.ConsoleControl(app_config, dispatcher, client)


@pytest.fixture
def printed():
    lines = []
    with patch.object(console, "console_print", side_effect=lambda message, style="": lines.append(message)):
        yield lines


@pytest.mark.asyncio
async def test_check_runs_message_through_pipeline(control, printed):
    await console.handle_console_command("check 123456 buy spam now", control)

    assert any("delete_message" in line for line in printed)
    assert any("send_group_message" in line for line in printed)
    assert control.dispatcher.tracker.count("123456", console.SANDBOX_USER_ID) == 1


@pytest.mark.asyncio
async def test_check_escalates_to_mute(control, printed):
    await console.handle_console_command("check 123456 --user 555 spam", control)
    await console.handle_console_command("c 123456 --user 555 spam", control)

    assert any("set_timed_mute" in line for line in printed)
    assert control.dispatcher.tracker.get("123456", "555") is None


@pytest.mark.asyncio
async def test_check_clean_message(control, printed):
    await console.handle_console_command("check 123456 hello", control)

    assert printed == ["No action."]


@pytest.mark.asyncio
async def test_check_usage(control, printed):
    await console.handle_console_command("check 123456", control)

    assert printed and printed[0].startswith("Usage:")


@pytest.mark.asyncio
async def test_violations_and_reset(control, printed):
    await console.handle_console_command("check 123456 spam", control)
    printed.clear()

    await console.handle_console_command("violations", control)
    assert any("count" not in line and ": 1 " in line for line in printed)

    await console.handle_console_command(f"reset 123456 {console.SANDBOX_USER_ID}", control)
    assert printed[-1] == "Record cleared."
    assert len(control.dispatcher.tracker) == 0


@pytest.mark.asyncio
async def test_policies_and_reload(control, printed, tmp_path: Path):
    await console.handle_console_command("policies", control)
    assert any("123456" in line for line in printed)

    control.app_config.config_path.write_text("blocking_rules: []\n", encoding="utf-8")
    await console.handle_console_command("reload", control)

    assert control.dispatcher.policies == {}
    assert printed[-1] == "Loaded 0 group policies."


@pytest.mark.asyncio
async def test_unknown_command_and_shutdown(control, printed):
    await console.handle_console_command("frobnicate", control)
    assert "Unknown command" in printed[-1]

    await console.handle_console_command("exit", control)
    assert control.shutdown_requested is True
