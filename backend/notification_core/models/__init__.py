"""
In-memory record models for the notification engine.

All records are frozen dataclasses; stores replace records on write.
"""

from notification_core.models.base import generate_id, utc_now
from notification_core.models.classification import (
    ClassificationResult,
    MessageCategory,
    MessagePriority,
    MessageSource,
    RawMessage,
)
from notification_core.models.notification import (
    Notification,
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
)
from notification_core.models.notification_permission import (
    ALL_CATEGORIES,
    NotificationPermission,
)
from notification_core.models.notification_preference import (
    DeliveryChannel,
    DeliveryChannels,
    DeliveryFrequency,
    NotificationPreference,
    QuietHours,
    default_preference,
)
from notification_core.models.notification_template import NotificationTemplate

__all__ = [
    "generate_id",
    "utc_now",
    "ClassificationResult",
    "MessageCategory",
    "MessagePriority",
    "MessageSource",
    "RawMessage",
    "Notification",
    "NotificationCategory",
    "NotificationDraft",
    "NotificationPriority",
    "NotificationType",
    "RelatedEntityType",
    "ALL_CATEGORIES",
    "NotificationPermission",
    "DeliveryChannel",
    "DeliveryChannels",
    "DeliveryFrequency",
    "NotificationPreference",
    "QuietHours",
    "default_preference",
    "NotificationTemplate",
]
