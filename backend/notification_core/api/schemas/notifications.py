"""
Pydantic schemas for the Notifications API.

Request and response models for notification endpoints.
"""

from typing import Any, List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from notification_core.models.classification import MessageSource
from notification_core.models.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    RelatedEntityType,
)


class NotificationResponse(BaseModel):
    """Response model for a single notification."""

    id: str = Field(..., description="Unique notification identifier")
    title: str = Field(..., description="Notification title")
    message: str = Field(..., description="Notification body message")
    user_id: str = Field(..., description="Owner of the notification")
    type: str = Field(..., description="Presentation type")
    category: str = Field(..., description="Preference category")
    priority: str = Field(..., description="low, medium, high or urgent")

    is_read: bool = Field(..., description="Whether the notification has been read")
    is_archived: bool = Field(..., description="Whether the notification is archived")
    is_pinned: bool = Field(..., description="Whether the notification is pinned")

    related_entity_id: Optional[str] = Field(None, description="ID of related entity")
    related_entity_type: Optional[str] = Field(None, description="Type of related entity")
    action_url: Optional[str] = Field(None, description="Deep link URL to relevant page")
    action_text: Optional[str] = Field(None, description="Label for the action link")
    metadata: dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(..., description="When notification was created")
    expires_at: Optional[datetime] = Field(None, description="When notification expires")
    read_at: Optional[datetime] = Field(None, description="When notification was read")


class NotificationListResponse(BaseModel):
    """Response model for notification list."""

    notifications: List[NotificationResponse] = Field(..., description="List of notifications")
    total: int = Field(..., description="Total count of matching notifications")
    unread_count: int = Field(..., description="Count of unread notifications")


class UnreadCountResponse(BaseModel):
    """Response model for unread count."""

    count: int = Field(..., description="Number of unread notifications")
    category: Optional[str] = Field(None, description="Category the count is limited to")


class NotificationStatsResponse(BaseModel):
    total: int
    unread: int
    by_category: dict[str, int]
    by_priority: dict[str, int]


class CreateNotificationRequest(BaseModel):
    """Request model for creating a notification directly."""

    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., max_length=2000)
    user_id: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.INFO
    category: NotificationCategory = NotificationCategory.SYSTEM
    priority: NotificationPriority = NotificationPriority.MEDIUM
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[RelatedEntityType] = None
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: Optional[datetime] = None


class RawMessageRequest(BaseModel):
    """
    Raw inbound message for classification.

    Every text field is optional; missing text classifies as general/low.
    """

    subject: Optional[str] = None
    content: Optional[str] = None
    sender: Optional[str] = None
    sender_email: Optional[str] = None
    timestamp: Optional[datetime] = None
    source: MessageSource = MessageSource.SYSTEM
    source_id: Optional[str] = None


class IngestRequest(RawMessageRequest):
    """Raw message plus the user who should be notified."""

    user_id: str = Field(..., min_length=1)


class ClassificationResponse(BaseModel):
    category: str = Field(..., description="Message category")
    priority: str = Field(..., description="low, medium, high or critical")
    score: int = Field(..., description="Additive priority score")
    auto_response: str = Field(..., description="Suggested reply text")


class IngestResponse(BaseModel):
    notification: NotificationResponse
    classification: ClassificationResponse


class MarkReadResponse(BaseModel):
    """Response model for marking notification as read."""

    success: bool = Field(..., description="Whether the id was found")
    notification: Optional[NotificationResponse] = None


class MarkAllReadResponse(BaseModel):
    """Response model for marking all notifications as read."""

    marked_count: int = Field(..., description="Number of notifications that were unread")


class ToggleResponse(BaseModel):
    """Response model for pin/archive toggles."""

    success: bool = Field(..., description="Whether the id was found")
    notification: Optional[NotificationResponse] = None


class DeleteResponse(BaseModel):
    success: bool = Field(..., description="Whether a notification was removed")


class ClearExpiredResponse(BaseModel):
    removed_count: int = Field(..., description="Number of expired notifications removed")


class ChannelRouteResponse(BaseModel):
    channel: str
    action: str


class DeliveryDecisionResponse(BaseModel):
    """Per-channel routing outcome."""

    notification_id: str
    delivered: bool
    channels: List[ChannelRouteResponse]
    reason: Optional[str] = None
    quiet_hours_active: bool = False
