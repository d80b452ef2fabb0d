"""
Builds the alert/correction message and the side effects for one offending message.
"""

from __future__ import annotations

import math

from keywordguard.configuration.group_policy import GroupPolicy
from keywordguard.datatypes.action_datatypes import ModerationDecision
from keywordguard.datatypes.message_datatypes import IncomingMessage
from keywordguard.moderation.content_filter import FilterResult
from keywordguard.moderation.markup import at_token, escape_text, reply_token, truncate
from keywordguard.moderation.violation_tracker import ViolationOutcome

MAX_CORRECTION_LENGTH = 2000
MAX_MESSAGE_LENGTH = 4500


def format_duration(seconds: int) -> str:
    """Render a mute duration as hours and minutes, e.g. ``1小时1分钟``.

    Leftover seconds round up to a whole minute; zero units are omitted.
    """
    hours = seconds // 3600
    minutes = math.ceil((seconds % 3600) / 60)
    text = ""
    if hours > 0:
        text += f"{hours}小时"
    if minutes > 0:
        text += f"{minutes}分钟"
    return text


def correction_block(policy: GroupPolicy, result: FilterResult) -> str:
    """Return the corrected text with its prefix, or "" when nothing was rewritten."""
    if not (result.had_replacement and result.changed):
        return ""
    corrected = truncate(escape_text(result.modified_text), MAX_CORRECTION_LENGTH)
    return f"{policy.correction_prefix}{corrected}\n"


def mute_summary(count: int, threshold: int, duration_seconds: int) -> str:
    return f"因累计违规 {count}/{threshold} 次，已被禁言 {format_duration(duration_seconds)}"


def warning_summary(count: int, threshold: int) -> str:
    return f"累计违规 {count}/{threshold} 次后禁言！"


def compose(
    policy: GroupPolicy,
    message: IncomingMessage,
    result: FilterResult,
    violation: ViolationOutcome | None = None,
) -> ModerationDecision | None:
    """
    Decide what to do about a filtered message.

    Args:
        policy: Policy of the group the message was posted in.
        message: The original incoming message.
        result: Output of the content filter for that message.
        violation: Tracker outcome when the message counted as a violation.

    Returns:
        ModerationDecision | None: The actions to take, or None when the
        message was left unchanged and neither recall nor mute applies.
    """
    mute = policy.mute_config
    header = f"{at_token(message.user_id)} {policy.alert_text}\n"

    if violation is not None and violation.should_mute:
        text = header + correction_block(policy, result) + mute_summary(
            violation.count, mute.threshold, mute.duration_seconds
        )
        return ModerationDecision(
            delete_original=result.recall_requested,
            mute_seconds=mute.duration_seconds,
            outgoing_text=truncate(text, MAX_MESSAGE_LENGTH),
            clear_violations=True,
        )

    if not (result.changed or result.recall_requested):
        return None

    text = ""
    if message.quote_id is not None:
        text += reply_token(message.quote_id)
    text += header + correction_block(policy, result)

    if result.mute_triggered and mute.enabled:
        text += warning_summary(violation.count if violation else 0, mute.threshold)
    elif policy.custom_message:
        text += policy.custom_message

    return ModerationDecision(
        delete_original=result.recall_requested,
        mute_seconds=None,
        outgoing_text=truncate(text, MAX_MESSAGE_LENGTH),
    )
