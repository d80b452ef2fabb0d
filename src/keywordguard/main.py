"""
keywordguard sandbox
====================

Loads the group policies from the YAML configuration and opens an interactive
console in which sample messages can be run through the moderation pipeline
against an in-memory chat client.
"""

import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from keywordguard.configuration.app_configuration import AppConfig, resolve_config_path
from keywordguard.moderation.dispatcher import ModerationDispatcher
from keywordguard.moderation.violation_tracker import ViolationTracker
from keywordguard.scheduler.decay_scheduler import LoopScheduler
from keywordguard.ui.console import ConsoleControl, run_console
from keywordguard.util.logger import get_logger
from keywordguard.util.sandbox_client import SandboxClient

logger = get_logger("main")


def resolve_base_dir() -> Path:
    """Return ``KEYWORDGUARD_HOME`` if set, otherwise the repository root."""
    if env_home := os.getenv("KEYWORDGUARD_HOME"):
        return Path(env_home).resolve()
    return Path(__file__).resolve().parents[2]


def load_environment() -> Path:
    """Load ``.env`` from the base directory and return the configuration path."""
    base_dir = resolve_base_dir()
    load_dotenv(dotenv_path=base_dir / ".env")
    os.chdir(base_dir)
    return resolve_config_path()


def build_dispatcher(app_config: AppConfig, client: SandboxClient) -> ModerationDispatcher:
    tracker = ViolationTracker(LoopScheduler(), decay_seconds=app_config.violation_decay_seconds)
    return ModerationDispatcher(app_config.policies, client, tracker)


async def async_main() -> int:
    """Bootstrap configuration and the sandbox console, returning an exit code."""
    config_path = load_environment()
    app_config = AppConfig(config_path)
    if not app_config.policies:
        logger.warning("No group policies loaded from %s; every message will pass through.", config_path)

    client = SandboxClient()
    dispatcher = build_dispatcher(app_config, client)
    control = ConsoleControl(app_config, dispatcher, client)

    try:
        await run_console(control)
    finally:
        dispatcher.shutdown()
        logger.info("Shutdown complete.")
    return 0


def main() -> int:
    """Entrypoint that runs the async console and returns the process exit code."""
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except Exception as exc:
        logger.critical("An unexpected error occurred: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
