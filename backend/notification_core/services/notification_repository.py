"""
In-memory notification repository.

Owns the authoritative, ordered collection of notification records and
their lifecycle: create, read/unread, pin, archive, delete and expiry
sweep. Storage order is most-recent-first (new records are prepended);
insertion order only matters as a tiebreak for consumers.

SEMANTICS:
- Lookups by id that miss are silent no-ops, never errors. Stale ids
  are common in UI-facing stores after concurrent deletes.
- Records are immutable; every write swaps in an updated copy.
- mark_all_read() re-stamps read_at on EVERY record, including ones
  that were already read. This matches the production store and is
  relied on by consumers that sort by read_at; do not "fix" it.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from notification_core.models.base import as_utc, generate_id, utc_now
from notification_core.models.notification import Notification, NotificationDraft

logger = logging.getLogger(__name__)


class NotificationRepository:
    """
    Ordered in-memory store of notifications.

    Single-threaded by contract: every operation runs to completion
    without suspension, so readers always see a consistent snapshot.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        initial: Optional[Iterable[Notification]] = None,
    ):
        """
        Initialize repository.

        Args:
            clock: Callable returning the current timezone-aware time
            initial: Optional records to load, already in storage order
        """
        self._clock = clock
        self._notifications: list[Notification] = list(initial or [])
        self._version = 0

    @property
    def version(self) -> int:
        """Monotonic counter bumped on every effective mutation."""
        return self._version

    def _touch(self) -> None:
        self._version += 1

    def _index_of(self, notification_id: str) -> int:
        for index, notification in enumerate(self._notifications):
            if notification.id == notification_id:
                return index
        return -1

    # =========================================================================
    # Reads
    # =========================================================================

    def all(self) -> list[Notification]:
        """Snapshot of all notifications in storage order."""
        return list(self._notifications)

    def get(self, notification_id: str) -> Optional[Notification]:
        index = self._index_of(notification_id)
        return self._notifications[index] if index >= 0 else None

    def __len__(self) -> int:
        return len(self._notifications)

    # =========================================================================
    # Writes
    # =========================================================================

    def insert(self, draft: NotificationDraft) -> Notification:
        """
        Create a notification from a draft and prepend it.

        Assigns id and created_at; is_read, is_archived and is_pinned
        start False.
        """
        notification = Notification.from_draft(
            draft,
            notification_id=generate_id("notif"),
            created_at=self._clock(),
        )
        self._notifications.insert(0, notification)
        self._touch()

        logger.info(
            "notification_repository.inserted",
            extra={
                "notification_id": notification.id,
                "user_id": notification.user_id,
                "category": notification.category.value,
                "priority": notification.priority.value,
            },
        )
        return notification

    def mark_read(self, notification_id: str) -> Optional[Notification]:
        """
        Mark one notification read.

        Idempotent: an already-read notification keeps its original
        read_at.

        Returns:
            The current record, or None if the id is unknown
        """
        index = self._index_of(notification_id)
        if index < 0:
            return None

        notification = self._notifications[index]
        if notification.is_read:
            return notification

        updated = notification.as_read(self._clock())
        self._notifications[index] = updated
        self._touch()
        return updated

    def mark_all_read(self) -> int:
        """
        Mark every notification read with a fresh read_at.

        Returns:
            Number of notifications that were unread before the call
        """
        now = self._clock()
        previously_unread = sum(1 for n in self._notifications if not n.is_read)
        self._notifications = [n.as_read(now) for n in self._notifications]
        if self._notifications:
            self._touch()

        logger.info(
            "notification_repository.marked_all_read",
            extra={"count": previously_unread, "total": len(self._notifications)},
        )
        return previously_unread

    def toggle_pin(self, notification_id: str) -> Optional[Notification]:
        index = self._index_of(notification_id)
        if index < 0:
            return None
        updated = self._notifications[index].with_pin_toggled()
        self._notifications[index] = updated
        self._touch()
        return updated

    def toggle_archive(self, notification_id: str) -> Optional[Notification]:
        index = self._index_of(notification_id)
        if index < 0:
            return None
        updated = self._notifications[index].with_archive_toggled()
        self._notifications[index] = updated
        self._touch()
        return updated

    def delete(self, notification_id: str) -> bool:
        """Remove a notification; returns False when the id is unknown."""
        index = self._index_of(notification_id)
        if index < 0:
            return False
        del self._notifications[index]
        self._touch()
        return True

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """
        Remove every notification whose expires_at is set and <= now.

        Returns:
            Number of notifications removed
        """
        compare_at = as_utc(now or self._clock())
        kept = [n for n in self._notifications if not n.is_expired(compare_at)]
        removed = len(self._notifications) - len(kept)
        if removed:
            self._notifications = kept
            self._touch()
            logger.info(
                "notification_repository.expired_swept",
                extra={"removed": removed},
            )
        return removed
