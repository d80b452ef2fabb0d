"""
Incoming message structures handed to the moderation pipeline by the host.

The host adapter converts its own event objects into :class:`IncomingMessage`
before calling the dispatcher; nothing in keywordguard depends on the adapter's
event classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from keywordguard.datatypes.chat_datatypes import GroupID, MessageID, UserID

ONEBOT_PLATFORM = "onebot"
GROUP_MESSAGE = "group"


@dataclass(slots=True)
class MessageElement:
    """One structural element of a message.

    Attributes:
        type: Element kind (``text``, ``at``, ``image``, ``face``, ``mface``, ...).
        attrs: Element attributes as reported by the adapter. Text elements
            carry their text under ``content``.
    """
    type: str
    attrs: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def text(cls, content: str) -> "MessageElement":
        return cls("text", {"content": content})


@dataclass(slots=True)
class IncomingMessage:
    """A chat message as seen by the moderation dispatcher.

    Attributes:
        platform: Adapter name; only ``onebot`` messages are moderated.
        message_type: ``group`` for group messages, anything else is ignored.
        group_id: Group the message was posted in.
        user_id: Sender account.
        self_id: The bot's own account in that group.
        message_id: Id used to recall the message.
        elements: Message content in original order.
        quote_id: Id of the quoted message when the message is a reply.
    """
    group_id: GroupID
    user_id: UserID
    self_id: UserID
    message_id: MessageID
    elements: List[MessageElement] = field(default_factory=list)
    quote_id: MessageID | None = None
    platform: str = ONEBOT_PLATFORM
    message_type: str = GROUP_MESSAGE

    @property
    def is_onebot_group_message(self) -> bool:
        return self.platform == ONEBOT_PLATFORM and self.message_type == GROUP_MESSAGE
