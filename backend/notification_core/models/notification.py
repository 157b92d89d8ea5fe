"""
Notification record model.

A Notification is one deliverable item owned by exactly one user.
Records are immutable value objects: the repository replaces a record
with an updated copy instead of mutating it in place.

INVARIANTS:
- read_at is set if and only if is_read is True
- is_pinned and is_archived are independent flags
- id and created_at never change after creation
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from notification_core.models.base import as_utc


# =============================================================================
# Enums
# =============================================================================

class NotificationType(str, Enum):
    """Informational type, drives the icon/colour shown by consumers."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    CHAT = "chat"
    PROJECT = "project"
    TASK = "task"
    SYSTEM = "system"


class NotificationCategory(str, Enum):
    """Coarse bucket used for preference lookup and filtering."""
    CHAT = "chat"
    PROJECT = "project"
    TASK = "task"
    SYSTEM = "system"
    USER = "user"
    SECURITY = "security"
    BILLING = "billing"


class NotificationPriority(str, Enum):
    """Urgency tier used for sorting and routing."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class RelatedEntityType(str, Enum):
    """Kind of entity a notification links to (navigation only)."""
    PROJECT = "project"
    TASK = "task"
    CHAT = "chat"
    USER = "user"
    DOCUMENT = "document"


# =============================================================================
# Records
# =============================================================================

@dataclass(frozen=True)
class NotificationDraft:
    """
    Caller-supplied fields for a new notification.

    The repository assigns id, created_at and the three state flags.
    """

    title: str
    message: str
    user_id: str
    type: NotificationType = NotificationType.INFO
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[RelatedEntityType] = None
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class Notification:
    """A classified, prioritized notification owned by one user."""

    id: str
    title: str
    message: str
    user_id: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    created_at: datetime
    is_read: bool = False
    is_archived: bool = False
    is_pinned: bool = False
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[RelatedEntityType] = None
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    @classmethod
    def from_draft(cls, draft: NotificationDraft, notification_id: str, created_at: datetime) -> "Notification":
        return cls(
            id=notification_id,
            title=draft.title,
            message=draft.message,
            user_id=draft.user_id,
            type=draft.type,
            category=draft.category,
            priority=draft.priority,
            created_at=created_at,
            related_entity_id=draft.related_entity_id,
            related_entity_type=draft.related_entity_type,
            action_url=draft.action_url,
            action_text=draft.action_text,
            metadata=dict(draft.metadata),
            expires_at=as_utc(draft.expires_at),
        )

    def as_read(self, read_at: datetime) -> "Notification":
        """Copy of this notification marked read at the given instant."""
        return replace(self, is_read=True, read_at=read_at)

    def with_pin_toggled(self) -> "Notification":
        return replace(self, is_pinned=not self.is_pinned)

    def with_archive_toggled(self) -> "Notification":
        return replace(self, is_archived=not self.is_archived)

    def is_expired(self, now: datetime) -> bool:
        """True once expires_at is set and not after ``now``."""
        return self.expires_at is not None and self.expires_at <= now

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "user_id": self.user_id,
            "type": self.type.value,
            "category": self.category.value,
            "priority": self.priority.value,
            "is_read": self.is_read,
            "is_archived": self.is_archived,
            "is_pinned": self.is_pinned,
            "related_entity_id": self.related_entity_id,
            "related_entity_type": self.related_entity_type.value if self.related_entity_type else None,
            "action_url": self.action_url,
            "action_text": self.action_text,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "read_at": self.read_at.isoformat() if self.read_at else None,
        }
