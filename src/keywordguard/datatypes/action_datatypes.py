"""
Action types and result structures for moderation decisions.

This module defines the ActionType enum, the per-message ModerationDecision
produced by the response composer, and ActionResult, the outcome of a single
call into the chat adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActionType(Enum):
    """Enumeration of side effects the dispatcher can perform."""

    DELETE = "delete"
    MUTE = "mute"
    SEND = "send"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class ModerationDecision:
    """Everything the dispatcher must do for one offending message.

    Attributes:
        delete_original: Recall the offending message.
        mute_seconds: Mute duration, or None when no mute is issued.
        outgoing_text: Alert/correction text to post in the group.
        clear_violations: The mute consumes the sender's violation record; it is
            restored if the mute fails.
    """
    delete_original: bool
    mute_seconds: int | None
    outgoing_text: str
    clear_violations: bool = False


@dataclass(slots=True)
class ActionResult:
    """Outcome of one adapter call. Failures carry the error text instead of raising."""
    action: ActionType
    ok: bool
    error: str | None = None

    @classmethod
    def success(cls, action: ActionType) -> "ActionResult":
        return cls(action=action, ok=True)

    @classmethod
    def failure(cls, action: ActionType, error: BaseException | str) -> "ActionResult":
        return cls(action=action, ok=False, error=str(error))
