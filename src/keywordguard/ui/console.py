"""Interactive sandbox console for trying group policies against sample messages."""

from __future__ import annotations

import itertools
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession

from keywordguard.configuration.app_configuration import AppConfig
from keywordguard.datatypes.chat_datatypes import GroupID, MessageID, UserID
from keywordguard.datatypes.message_datatypes import IncomingMessage
from keywordguard.moderation.dispatcher import ModerationDispatcher
from keywordguard.moderation.markup import parse
from keywordguard.util.logger import get_logger
from keywordguard.util.sandbox_client import SandboxClient

# Box drawing helpers for aligned console output
BOX_WIDTH = 45

SANDBOX_BOT_ID = UserID(10000)
SANDBOX_USER_ID = UserID(20000)


def box_title(title: str) -> list[str]:
    inner_width = BOX_WIDTH - 2
    pad_left = (inner_width - len(title)) // 2
    pad_right = inner_width - len(title) - pad_left
    return [
        f"╔{'═' * inner_width}╗",
        f"║{' ' * pad_left}{title}{' ' * pad_right}║",
        f"╚{'═' * inner_width}╝"
    ]


logger = get_logger("console")

CommandHandler = Callable[["ConsoleControl", list[str]], Awaitable[None]]


@dataclass
class Command:
    """Definition of a console command."""
    name: str
    handler: CommandHandler
    aliases: list[str]
    description: str
    usage: str = ""

    def matches(self, input_cmd: str) -> bool:
        """Check if input matches this command or any alias."""
        return input_cmd == self.name or input_cmd in self.aliases


def console_print(message: str, style: str = "") -> None:
    """Render text via prompt_toolkit without breaking the active prompt."""
    formatted: FormattedText | str
    if style:
        formatted = FormattedText([(style, message)])
    else:
        formatted = message
    print_formatted_text(formatted)


class ConsoleControl:
    """State shared by console commands: configuration, dispatcher and sandbox client."""

    def __init__(self, app_config: AppConfig, dispatcher: ModerationDispatcher, client: SandboxClient) -> None:
        self.app_config = app_config
        self.dispatcher = dispatcher
        self.client = client
        self.shutdown_requested = False
        self._message_ids = itertools.count(1)

    def next_message_id(self) -> MessageID:
        return MessageID(next(self._message_ids))

    def request_shutdown(self) -> None:
        self.shutdown_requested = True


# ==================== Command Handlers ====================

async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    """Display available commands and their descriptions."""
    for line in box_title("Console Commands Reference"):
        console_print(line, "ansigreen")

    for cmd in COMMANDS:
        aliases_str = f" (aliases: {', '.join(cmd.aliases)})" if cmd.aliases else ""
        console_print(f"\n  {cmd.name}{aliases_str}", "ansicyan")
        console_print(f"    {cmd.description}")
        if cmd.usage:
            console_print(f"    Usage: {cmd.usage}", "ansibrightblack")

    console_print("")


async def cmd_policies(control: ConsoleControl, args: list[str]) -> None:
    """List the loaded group policies."""
    policies = control.dispatcher.policies
    if not policies:
        console_print("No group policies loaded.", "ansiyellow")
        return

    for line in box_title(f"Group Policies ({len(policies)})"):
        console_print(line, "ansiblue")

    for policy in policies.values():
        state = "🟢 enabled" if policy.enabled else "🔴 disabled"
        mute = policy.mute_config
        mute_text = f"mute after {mute.threshold} for {mute.duration_seconds}s" if mute.enabled else "mute off"
        console_print(f"  • {policy.group_id}: {state}, {len(policy.rules)} rules, {mute_text}")
        for rule in policy.rules:
            flags = [
                name for name, on in (
                    ("off", not rule.enabled),
                    ("mute", rule.triggers_mute),
                    ("recall", rule.recall),
                    (f"replace→{rule.replacement_text!r}", rule.replace),
                ) if on
            ]
            console_print(f"      /{rule.pattern}/ {' '.join(flags)}", "ansibrightblack")

    console_print("")


async def cmd_check(control: ConsoleControl, args: list[str]) -> None:
    """Run a sample message through the dispatcher without touching a real chat."""
    user_id = SANDBOX_USER_ID
    quote_id: MessageID | None = None
    rest = list(args)
    while len(rest) >= 2 and rest[0] in ("--user", "--reply"):
        flag, value = rest.pop(0), rest.pop(0)
        if flag == "--user":
            user_id = UserID(value)
        else:
            quote_id = MessageID(value)

    if len(rest) < 2:
        console_print("Usage: check <group_id> [--user <id>] [--reply <id>] <text...>", "ansired")
        return

    group_id = GroupID(rest[0])
    text = " ".join(rest[1:])
    control.client.set_role(group_id, SANDBOX_BOT_ID, "admin")

    message = IncomingMessage(
        group_id=group_id,
        user_id=user_id,
        self_id=SANDBOX_BOT_ID,
        message_id=control.next_message_id(),
        elements=parse(text),
        quote_id=quote_id,
    )
    control.client.drain()
    decision = await control.dispatcher.handle(message)

    if decision is None:
        console_print("No action.", "ansigreen")
    for call in control.client.drain():
        if call.name == "get_member_info":
            continue
        console_print(f"  → {call.name}{tuple(str(arg) for arg in call.args)}", "ansiyellow")


async def cmd_violations(control: ConsoleControl, args: list[str]) -> None:
    """Show the current violation records."""
    tracker = control.dispatcher.tracker
    if not tracker.records:
        console_print("No violation records.", "ansigreen")
        return
    now = tracker.scheduler.now()
    for (group_id, user_id), record in tracker.records.items():
        remaining = max(record.expires_at - now, 0.0)
        console_print(f"  • group {group_id} user {user_id}: {record.count} (expires in {remaining / 3600:.1f}h)")


async def cmd_reset(control: ConsoleControl, args: list[str]) -> None:
    """Clear one user's violations, or all of them."""
    tracker = control.dispatcher.tracker
    if len(args) == 2:
        cleared = tracker.clear(args[0], args[1])
        console_print("Record cleared." if cleared else "No such record.", "ansigreen" if cleared else "ansiyellow")
        return
    tracker.shutdown()
    console_print("All violation records cleared.", "ansigreen")


async def cmd_reload(control: ConsoleControl, args: list[str]) -> None:
    """Re-read the configuration file."""
    control.app_config.reload()
    control.dispatcher.update_policies(control.app_config.policies)
    console_print(f"Loaded {len(control.app_config.policies)} group policies.", "ansigreen")


async def cmd_clear(control: ConsoleControl, args: list[str]) -> None:
    """Clear the console screen."""
    os.system('cls' if os.name == 'nt' else 'clear')


async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    console_print("Shutdown requested.", "ansiyellow")
    control.request_shutdown()


# ==================== Command Registry ====================

COMMANDS: list[Command] = [
    Command(
        name="help",
        handler=cmd_help,
        aliases=["h", "?"],
        description="Show this help message with all available commands",
    ),
    Command(
        name="policies",
        handler=cmd_policies,
        aliases=["groups", "p"],
        description="List loaded group policies and their rules",
    ),
    Command(
        name="check",
        handler=cmd_check,
        aliases=["c"],
        description="Dry-run a message (CQ tokens allowed) through the moderation pipeline",
        usage="check <group_id> [--user <id>] [--reply <id>] <text...>",
    ),
    Command(
        name="violations",
        handler=cmd_violations,
        aliases=["v"],
        description="Show accumulated violation counts",
    ),
    Command(
        name="reset",
        handler=cmd_reset,
        aliases=[],
        description="Clear violation records (all, or one group/user pair)",
        usage="reset [<group_id> <user_id>]",
    ),
    Command(
        name="reload",
        handler=cmd_reload,
        aliases=["r"],
        description="Reload the configuration file",
    ),
    Command(
        name="clear",
        handler=cmd_clear,
        aliases=["cls"],
        description="Clear the console screen",
    ),
    Command(
        name="shutdown",
        handler=cmd_shutdown,
        aliases=["stop", "quit", "exit"],
        description="Leave the console",
    ),
]


# ==================== Command Dispatcher ====================

async def handle_console_command(command: str, control: ConsoleControl) -> None:
    """Interpret and execute a single console command line."""
    if not command.strip():
        return

    parts = command.strip().split()
    cmd_name = parts[0].lower()
    args = parts[1:]

    for cmd in COMMANDS:
        if cmd.matches(cmd_name):
            try:
                await cmd.handler(control, args)
            except Exception as exc:
                logger.exception("Error executing command '%s': %s", cmd_name, exc)
                console_print(f"Error executing command: {exc}", "ansired")
            return

    console_print(f"Unknown command '{cmd_name}'. Type 'help' for available commands.", "ansired")


async def run_console(control: ConsoleControl) -> None:
    """Run the interactive sandbox console until shutdown is requested."""
    session = PromptSession("> ")

    for line in box_title("keywordguard sandbox"):
        console_print(line, "ansigreen")
    console_print("Type 'help' for available commands or 'exit' to quit.\n", "ansibrightblack")

    with patch_stdout():
        while not control.shutdown_requested:
            try:
                line = await session.prompt_async()
                if line.strip():
                    await handle_console_command(line, control)
            except (EOFError, KeyboardInterrupt):
                console_print("\nShutdown requested by user.", "ansiyellow")
                control.request_shutdown()
                break
