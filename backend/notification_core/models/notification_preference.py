"""
Notification preference model for per-user, per-category settings.

Allows users to control which notifications they receive, through
which channels, how often, and when they must stay quiet.

One record exists per (user_id, category) pair. Records are created
lazily on first write; reads never fabricate a record, callers use
default_preference() when nothing is stored.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from notification_core.models.base import generate_id, utc_now


class DeliveryFrequency(str, Enum):
    """How often notifications for a category are delivered."""
    IMMEDIATE = "immediate"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    NEVER = "never"


class DeliveryChannel(str, Enum):
    """Delivery surfaces a notification can be routed to."""
    IN_APP = "in_app"
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"


@dataclass(frozen=True)
class DeliveryChannels:
    """Independent on/off switch per delivery channel."""

    in_app: bool = True
    email: bool = False
    push: bool = False
    sms: bool = False

    def is_enabled(self, channel: DeliveryChannel) -> bool:
        return bool(getattr(self, channel.value))

    def enabled_channels(self) -> list[DeliveryChannel]:
        return [c for c in DeliveryChannel if self.is_enabled(c)]

    def to_dict(self) -> dict:
        return {
            "in_app": self.in_app,
            "email": self.email,
            "push": self.push,
            "sms": self.sms,
        }


@dataclass(frozen=True)
class QuietHours:
    """
    Daily window during which immediate delivery is held back.

    start/end are local "HH:MM" strings in ``timezone``. When end <= start
    the window wraps across midnight.
    """

    enabled: bool = False
    start: str = "22:00"
    end: str = "08:00"
    timezone: str = "UTC"

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "start": self.start,
            "end": self.end,
            "timezone": self.timezone,
        }


@dataclass(frozen=True)
class NotificationPreference:
    """
    User notification preferences for one category.

    Unique on (user_id, category).
    """

    id: str
    user_id: str
    category: str
    created_at: datetime
    updated_at: datetime
    enabled: bool = True
    channels: DeliveryChannels = field(default_factory=DeliveryChannels)
    frequency: DeliveryFrequency = DeliveryFrequency.IMMEDIATE
    quiet_hours: QuietHours = field(default_factory=QuietHours)
    keywords: tuple[str, ...] = ()
    exclude_keywords: tuple[str, ...] = ()

    def with_changes(self, updated_at: datetime, **changes) -> "NotificationPreference":
        return replace(self, updated_at=updated_at, **changes)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "category": self.category,
            "enabled": self.enabled,
            "channels": self.channels.to_dict(),
            "frequency": self.frequency.value,
            "quiet_hours": self.quiet_hours.to_dict(),
            "keywords": list(self.keywords),
            "exclude_keywords": list(self.exclude_keywords),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"<NotificationPreference(user_id={self.user_id}, "
            f"category={self.category}, enabled={self.enabled})>"
        )


def default_preference(
    user_id: str,
    category: str,
    now: Optional[datetime] = None,
    timezone: str = "UTC",
) -> NotificationPreference:
    """
    Build the documented default settings for a (user, category) pair.

    Defaults: enabled, in-app only, immediate, quiet hours disabled
    (22:00-08:00 in ``timezone``), no keyword filters.
    """
    stamp = now or utc_now()
    return NotificationPreference(
        id=generate_id("settings"),
        user_id=user_id,
        category=category,
        created_at=stamp,
        updated_at=stamp,
        quiet_hours=QuietHours(timezone=timezone),
    )
