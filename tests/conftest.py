"""
Pytest configuration and fixtures for keywordguard tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work without an editable install
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from keywordguard.configuration.group_policy import GroupPolicy, MuteConfig, PatternRule  # noqa: E402
from keywordguard.datatypes.chat_datatypes import GroupID, MessageID, UserID  # noqa: E402
from keywordguard.datatypes.message_datatypes import IncomingMessage, MessageElement  # noqa: E402
from keywordguard.moderation.violation_tracker import ViolationTracker  # noqa: E402
from keywordguard.scheduler.decay_scheduler import ManualScheduler  # noqa: E402

GROUP = "123456"
SENDER = "20001"
BOT = "10001"


def make_message(text: str = "", *, elements=None, quote_id=None, user_id: str = SENDER, message_id: int = 900) -> IncomingMessage:
    return IncomingMessage(
        group_id=GroupID(GROUP),
        user_id=UserID(user_id),
        self_id=UserID(BOT),
        message_id=MessageID(message_id),
        elements=elements if elements is not None else [MessageElement.text(text)],
        quote_id=MessageID(quote_id) if quote_id is not None else None,
    )


def make_policy(*rules: PatternRule, mute: MuteConfig | None = None, **kwargs) -> GroupPolicy:
    return GroupPolicy(group_id=GroupID(GROUP), rules=rules, mute_config=mute or MuteConfig(), **kwargs)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def tracker(scheduler: ManualScheduler) -> ViolationTracker:
    return ViolationTracker(scheduler)
