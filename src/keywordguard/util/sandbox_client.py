"""In-memory :class:`ChatClient` that records calls instead of talking to a chat server."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from keywordguard.datatypes.chat_datatypes import GroupID, MessageID, UserID


@dataclass
class RecordedCall:
    name: str
    args: Tuple[Any, ...]


@dataclass
class SandboxClient:
    """
    Chat client for dry runs.

    Every member reports ``default_role`` unless overridden in ``roles``; the
    bot account is registered as ``admin`` by :meth:`set_role` in the console.
    Calls listed in ``failing`` raise ``RuntimeError``.
    """
    default_role: str = "member"
    roles: Dict[Tuple[str, str], str] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    calls: List[RecordedCall] = field(default_factory=list)

    def set_role(self, group_id: GroupID | str | int, user_id: UserID | str | int, role: str) -> None:
        self.roles[(str(group_id), str(user_id))] = role

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append(RecordedCall(name, args))
        if name in self.failing:
            raise RuntimeError(f"{name} failed (sandbox)")

    def drain(self) -> List[RecordedCall]:
        """Return and forget the calls recorded so far."""
        calls, self.calls = self.calls, []
        return calls

    async def get_member_info(self, group_id: GroupID, user_id: UserID) -> Mapping[str, Any]:
        self._record("get_member_info", group_id, user_id)
        role = self.roles.get((str(group_id), str(user_id)), self.default_role)
        return {"group_id": str(group_id), "user_id": str(user_id), "role": role}

    async def delete_message(self, message_id: MessageID) -> None:
        self._record("delete_message", message_id)

    async def set_timed_mute(self, group_id: GroupID, user_id: UserID, duration_seconds: int) -> None:
        self._record("set_timed_mute", group_id, user_id, duration_seconds)

    async def send_group_message(self, group_id: GroupID, text: str) -> None:
        self._record("send_group_message", group_id, text)
