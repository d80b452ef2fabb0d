"""
Best-effort wrappers around the chat adapter.

The host passes in any object implementing :class:`ChatClient` (typically a
thin layer over a OneBot connection). :class:`ChatActions` calls it and turns
every failure into a logged :class:`ActionResult`, leaving the caller to
decide whether to continue or abort.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Protocol

from keywordguard.datatypes.action_datatypes import ActionResult, ActionType
from keywordguard.datatypes.chat_datatypes import GroupID, MessageID, UserID
from keywordguard.util.logger import get_logger

logger = get_logger("chat_actions")

ELEVATED_ROLES = frozenset({"admin", "owner"})


class ChatClient(Protocol):
    """Adapter calls the moderation core depends on."""

    async def get_member_info(self, group_id: GroupID, user_id: UserID) -> Mapping[str, Any]: ...

    async def delete_message(self, message_id: MessageID) -> None: ...

    async def set_timed_mute(self, group_id: GroupID, user_id: UserID, duration_seconds: int) -> None: ...

    async def send_group_message(self, group_id: GroupID, text: str) -> None: ...


def has_elevated_role(member_info: Mapping[str, Any] | None) -> bool:
    """
    Check if a member is a group administrator or the group owner.

    Args:
        member_info: Member info mapping as returned by the adapter.

    Returns:
        bool: True for ``admin`` and ``owner`` roles, False otherwise.
    """
    if not member_info:
        return False
    return str(member_info.get("role", "")).lower() in ELEVATED_ROLES


class ChatActions:
    """Result-returning facade over a :class:`ChatClient`."""

    def __init__(self, client: ChatClient) -> None:
        self.client = client

    async def fetch_member_info(self, group_id: GroupID, user_id: UserID) -> Mapping[str, Any]:
        """Fetch member info; lookup failures propagate so the caller can abort."""
        return await self.client.get_member_info(group_id, user_id)

    async def delete_message(self, group_id: GroupID, message_id: MessageID) -> ActionResult:
        """
        Attempt to recall a message, suppressing adapter errors.

        Returns:
            ActionResult: ``ok`` is False if the recall failed.
        """
        try:
            await self.client.delete_message(message_id)
            return ActionResult.success(ActionType.DELETE)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("[%s] Failed to recall message %s: %s", group_id, message_id, exc)
            return ActionResult.failure(ActionType.DELETE, exc)

    async def mute_member(self, group_id: GroupID, user_id: UserID, duration_seconds: int) -> ActionResult:
        try:
            await self.client.set_timed_mute(group_id, user_id, duration_seconds)
            return ActionResult.success(ActionType.MUTE)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("[%s] Failed to mute %s for %ss: %s", group_id, user_id, duration_seconds, exc)
            return ActionResult.failure(ActionType.MUTE, exc)

    async def send_group_message(self, group_id: GroupID, text: str) -> ActionResult:
        try:
            await self.client.send_group_message(group_id, text)
            return ActionResult.success(ActionType.SEND)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("[%s] Failed to send moderation notice: %s", group_id, exc)
            return ActionResult.failure(ActionType.SEND, exc)
