"""
Filter/sort query layer over the notification repository.

Stateless: every call pulls a fresh snapshot from the repository, there
is no caching or memoization.

Sort contract for filtered(): pinned notifications always come before
unpinned ones regardless of age; within each pin group the newest
notification is first. The sort runs on the full working copy before
any filter is applied.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from notification_core.models.notification import (
    Notification,
    NotificationCategory,
    NotificationPriority,
)
from notification_core.services.notification_repository import NotificationRepository

CategoryFilter = Optional[Union[NotificationCategory, str]]
PriorityFilter = Optional[Union[NotificationPriority, str]]


@dataclass
class NotificationStats:
    """Aggregate counts over the repository."""

    total: int = 0
    unread: int = 0
    by_category: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "unread": self.unread,
            "by_category": dict(self.by_category),
            "by_priority": dict(self.by_priority),
        }


def _value(item: Union[NotificationCategory, NotificationPriority, str]) -> str:
    return item.value if hasattr(item, "value") else str(item)


def pinned_then_newest(notifications: list[Notification]) -> list[Notification]:
    """Stable sort: pinned first, then created_at descending."""
    by_recency = sorted(notifications, key=lambda n: n.created_at, reverse=True)
    return sorted(by_recency, key=lambda n: not n.is_pinned)


class NotificationQueryService:
    """Derived, read-only views over a NotificationRepository."""

    def __init__(self, repository: NotificationRepository):
        self.repository = repository

    def unread_count(self) -> int:
        return sum(1 for n in self.repository.all() if not n.is_read)

    def unread_count_by_category(self, category: Union[NotificationCategory, str]) -> int:
        wanted = _value(category)
        return sum(
            1 for n in self.repository.all()
            if not n.is_read and n.category.value == wanted
        )

    def filtered(
        self,
        selected_category: CategoryFilter = None,
        search_query: Optional[str] = None,
        unread_only: bool = False,
        priority: PriorityFilter = None,
    ) -> list[Notification]:
        """
        Sorted and filtered notification list.

        Filters are ANDed and applied in order: category equality,
        case-insensitive search over title OR message, unread, priority
        equality. A None/empty filter passes everything through.

        Args:
            selected_category: Category to keep
            search_query: Substring to look for in title or message
            unread_only: Keep only unread notifications
            priority: Priority to keep

        Returns:
            Notifications, pinned first then newest first
        """
        result = pinned_then_newest(self.repository.all())

        if selected_category:
            wanted_category = _value(selected_category)
            result = [n for n in result if n.category.value == wanted_category]

        if search_query:
            query = search_query.lower()
            result = [
                n for n in result
                if query in n.title.lower() or query in n.message.lower()
            ]

        if unread_only:
            result = [n for n in result if not n.is_read]

        if priority:
            wanted_priority = _value(priority)
            result = [n for n in result if n.priority.value == wanted_priority]

        return result

    def by_category(self, category: Union[NotificationCategory, str]) -> list[Notification]:
        wanted = _value(category)
        return [n for n in self.repository.all() if n.category.value == wanted]

    def by_priority(self, priority: Union[NotificationPriority, str]) -> list[Notification]:
        wanted = _value(priority)
        return [n for n in self.repository.all() if n.priority.value == wanted]

    def recent(self, limit: int) -> list[Notification]:
        """Newest ``limit`` notifications by created_at."""
        if limit <= 0:
            return []
        ordered = sorted(self.repository.all(), key=lambda n: n.created_at, reverse=True)
        return ordered[:limit]

    def stats(self) -> NotificationStats:
        """Total, unread and per-category/per-priority counts in one pass."""
        stats = NotificationStats()
        for notification in self.repository.all():
            stats.total += 1
            if not notification.is_read:
                stats.unread += 1
            category = notification.category.value
            priority = notification.priority.value
            stats.by_category[category] = stats.by_category.get(category, 0) + 1
            stats.by_priority[priority] = stats.by_priority.get(priority, 0) + 1
        return stats
