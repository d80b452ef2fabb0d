"""
Per-user violation counting with time-boxed decay.

Every mute-eligible message bumps a counter keyed by ``(group, user)``. The
first violation schedules a decay that drops the record after a fixed window;
later violations do not move that deadline. Once the count reaches the
group's threshold the caller detaches the record before muting the user and
restores it if the mute fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, NamedTuple, Tuple

from keywordguard.datatypes.chat_datatypes import GroupID, UserID
from keywordguard.scheduler.decay_scheduler import ScheduledHandle, Scheduler
from keywordguard.util.logger import get_logger

logger = get_logger("violation_tracker")

DEFAULT_DECAY_SECONDS = 24 * 3600

RecordKey = Tuple[GroupID, UserID]


@dataclass(slots=True, eq=False)
class ViolationRecord:
    """Accumulated violations of one user in one group.

    Attributes:
        count: Violations since the first offense in the current window.
        created_at: Scheduler time of the first offense.
        expires_at: Scheduler time at which the decay fires.
        handle: Pending decay callback.
    """
    count: int
    created_at: float
    expires_at: float
    handle: ScheduledHandle | None = None


class ViolationOutcome(NamedTuple):
    """Result of :meth:`ViolationTracker.register`."""
    count: int
    should_mute: bool


class ViolationTracker:
    """
    Owner of all violation records of the process.

    Records are only touched by synchronous methods, so on a single event loop
    a register call always sees the count left by the previous one.
    """

    def __init__(self, scheduler: Scheduler, decay_seconds: float = DEFAULT_DECAY_SECONDS) -> None:
        if decay_seconds <= 0:
            raise ValueError(f"decay_seconds must be positive, got {decay_seconds}")
        self.scheduler = scheduler
        self.decay_seconds = decay_seconds
        self.records: Dict[RecordKey, ViolationRecord] = {}

    @staticmethod
    def make_key(group_id: GroupID | str | int, user_id: UserID | str | int) -> RecordKey:
        return GroupID(group_id), UserID(user_id)

    def get(self, group_id: GroupID | str | int, user_id: UserID | str | int) -> ViolationRecord | None:
        return self.records.get(self.make_key(group_id, user_id))

    def count(self, group_id: GroupID | str | int, user_id: UserID | str | int) -> int:
        record = self.get(group_id, user_id)
        return record.count if record else 0

    def __len__(self) -> int:
        return len(self.records)

    def register(
        self,
        group_id: GroupID | str | int,
        user_id: UserID | str | int,
        triggered: bool,
        threshold: int,
    ) -> ViolationOutcome:
        """
        Count one violation and report whether the mute threshold is reached.

        A message counts once no matter how many mute-triggering rules it
        matched. When ``triggered`` is False nothing is recorded.

        Args:
            group_id: Group the message was posted in.
            user_id: Sender of the message.
            triggered: Whether the message matched a mute-triggering rule.
            threshold: Violations needed for a mute (at least 1).

        Returns:
            ViolationOutcome: The updated count and the mute verdict.
        """
        if threshold < 1:
            raise ValueError(f"threshold must be at least 1, got {threshold}")

        key = self.make_key(group_id, user_id)
        if not triggered:
            record = self.records.get(key)
            return ViolationOutcome(record.count if record else 0, False)

        record = self.records.get(key)
        if record is None:
            now = self.scheduler.now()
            record = ViolationRecord(count=0, created_at=now, expires_at=now + self.decay_seconds)
            record.handle = self.scheduler.call_later(self.decay_seconds, lambda: self._expire(key, record))
            self.records[key] = record

        record.count += 1
        should_mute = record.count >= threshold
        logger.debug(
            "[VIOLATIONS] %s in group %s: %d/%d%s",
            key[1], key[0], record.count, threshold, " (mute)" if should_mute else "",
        )
        return ViolationOutcome(record.count, should_mute)

    def detach(self, group_id: GroupID | str | int, user_id: UserID | str | int) -> ViolationRecord | None:
        """Take the record out of the tracker and cancel its pending decay.

        The next violation of the same user starts a fresh record. Hand the
        detached record to :meth:`restore` to undo this.
        """
        record = self.records.pop(self.make_key(group_id, user_id), None)
        if record is not None and record.handle is not None:
            record.handle.cancel()
            record.handle = None
        return record

    def restore(
        self,
        group_id: GroupID | str | int,
        user_id: UserID | str | int,
        record: ViolationRecord,
    ) -> None:
        """Put a detached record back, keeping its original decay deadline.

        Violations registered while the record was detached are added to it.
        A record whose deadline already passed is dropped.
        """
        key = self.make_key(group_id, user_id)
        current = self.records.get(key)
        if current is not None:
            current.count += record.count
            logger.debug("[VIOLATIONS] Merged restored count into %s in group %s: %d", key[1], key[0], current.count)
            return

        remaining = record.expires_at - self.scheduler.now()
        if remaining <= 0:
            return
        record.handle = self.scheduler.call_later(remaining, lambda: self._expire(key, record))
        self.records[key] = record

    def clear(self, group_id: GroupID | str | int, user_id: UserID | str | int) -> bool:
        """Cancel the pending decay and drop the record.

        Returns:
            bool: True if a record existed, False if it was already gone.
        """
        return self.detach(group_id, user_id) is not None

    def shutdown(self) -> None:
        """Cancel every pending decay and forget all records."""
        for record in self.records.values():
            if record.handle is not None:
                record.handle.cancel()
                record.handle = None
        if self.records:
            logger.info("[VIOLATIONS] Dropped %d violation records on shutdown", len(self.records))
        self.records.clear()

    def _expire(self, key: RecordKey, record: ViolationRecord) -> None:
        # Only the record that scheduled this decay may be removed by it.
        if self.records.get(key) is record:
            del self.records[key]
            record.handle = None
            logger.debug("[VIOLATIONS] Violation count of %s in group %s expired", key[1], key[0])
