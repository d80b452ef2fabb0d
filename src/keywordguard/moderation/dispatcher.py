"""
Per-message orchestration of the keyword moderation pipeline.

For every incoming group message the dispatcher checks that the group has an
enabled policy and that the bot can act in it, then runs
normalize -> filter -> violation tracking -> response composition and carries
out the resulting side effects: recall, mute, notice. The message is always
handed on to downstream handlers afterwards, whatever happened here.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Mapping, TypeVar

from keywordguard.configuration.group_policy import GroupPolicy
from keywordguard.datatypes.action_datatypes import ModerationDecision
from keywordguard.datatypes.chat_datatypes import GroupID
from keywordguard.datatypes.message_datatypes import IncomingMessage
from keywordguard.moderation import content_filter
from keywordguard.moderation.markup import normalize
from keywordguard.moderation.response_composer import compose
from keywordguard.moderation.violation_tracker import ViolationOutcome, ViolationRecord, ViolationTracker
from keywordguard.util.chat_actions import ChatActions, ChatClient, has_elevated_role
from keywordguard.util.logger import get_logger

logger = get_logger("dispatcher")

T = TypeVar("T")


class ModerationDispatcher:
    """
    Entry point the host calls for each message.

    Attributes:
        policies: Group policies keyed by group id.
        actions: Result-returning wrapper around the chat adapter.
        tracker: Shared violation tracker.
    """

    def __init__(
        self,
        policies: Mapping[GroupID, GroupPolicy],
        client: ChatClient,
        tracker: ViolationTracker,
    ) -> None:
        self.policies = dict(policies)
        self.actions = ChatActions(client)
        self.tracker = tracker

    def update_policies(self, policies: Mapping[GroupID, GroupPolicy]) -> None:
        """Swap in a freshly loaded policy index (existing violation counts are kept)."""
        self.policies = dict(policies)
        logger.info("[DISPATCHER] Policy index replaced (%d groups)", len(self.policies))

    def policy_for(self, message: IncomingMessage) -> GroupPolicy | None:
        """Return the enabled policy governing ``message``, or None to pass it through."""
        if not message.is_onebot_group_message:
            return None
        try:
            group_id = GroupID(message.group_id)
        except ValueError:
            logger.warning("[DISPATCHER] Ignoring message with invalid group id %r", message.group_id)
            return None
        policy = self.policies.get(group_id)
        if policy is None or not policy.enabled:
            return None
        return policy

    async def process(self, message: IncomingMessage, call_next: Callable[[], Awaitable[T]]) -> T:
        """Middleware form: moderate the message, then always continue the chain."""
        await self.handle(message)
        return await call_next()

    async def handle(self, message: IncomingMessage) -> ModerationDecision | None:
        """
        Moderate one message.

        Errors never escape: lookup, filter and composition failures abort
        moderation of this message only, and adapter call failures are logged
        where they happen.

        Returns:
            ModerationDecision | None: The decision that was carried out, or
            None when the message was left alone or moderation was abandoned.
        """
        policy = self.policy_for(message)
        if policy is None:
            return None

        group_id = policy.group_id
        try:
            decision = await self.decide(policy, message)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("[%s] Moderation of message %s aborted: %s", group_id, message.message_id, exc)
            return None

        if decision is None:
            return None

        # No await between register() in decide() and this detach.
        detached = self.tracker.detach(group_id, message.user_id) if decision.clear_violations else None
        return await self.execute(policy, message, decision, detached)

    async def decide(self, policy: GroupPolicy, message: IncomingMessage) -> ModerationDecision | None:
        """Run lookups, filtering, violation tracking and composition for one message."""
        group_id = policy.group_id
        bot_info, sender_info = await asyncio.gather(
            self.actions.fetch_member_info(group_id, message.self_id),
            self.actions.fetch_member_info(group_id, message.user_id),
        )
        if not has_elevated_role(bot_info):
            logger.debug("[%s] Bot is not an administrator; skipping moderation", group_id)
            return None

        text = normalize(message.elements)
        result = content_filter.apply(policy, text)
        if not result.matched:
            return None

        logger.info(
            "[%s] Message %s from %s (role=%s) matched %s",
            group_id, message.message_id, message.user_id,
            sender_info.get("role", "unknown") if sender_info else "unknown",
            result.matched_patterns,
        )

        violation: ViolationOutcome | None = None
        if policy.mute_config.enabled and result.mute_triggered:
            violation = self.tracker.register(
                group_id, message.user_id, True, policy.mute_config.threshold
            )

        return compose(policy, message, result, violation)

    async def execute(
        self,
        policy: GroupPolicy,
        message: IncomingMessage,
        decision: ModerationDecision,
        detached: ViolationRecord | None = None,
    ) -> ModerationDecision | None:
        """Carry out a decision: recall, then mute, then post the notice.

        A failed recall does not stop the rest. A failed mute abandons the
        message entirely so no notice claims a mute that never happened, and
        hands ``detached`` (the violation record the mute consumed) back to
        the tracker.
        """
        group_id = policy.group_id
        muted = False

        try:
            if decision.delete_original:
                await self.actions.delete_message(group_id, message.message_id)

            if decision.mute_seconds is not None:
                mute_result = await self.actions.mute_member(group_id, message.user_id, decision.mute_seconds)
                if not mute_result.ok:
                    return None
                muted = True
                logger.info("[%s] Muted %s for %ss", group_id, message.user_id, decision.mute_seconds)
        finally:
            if detached is not None and not muted:
                self.tracker.restore(group_id, message.user_id, detached)

        await self.actions.send_group_message(group_id, decision.outgoing_text)
        return decision

    def shutdown(self) -> None:
        """Drop all pending violation decays."""
        self.tracker.shutdown()
