"""
Notifications API routes.

Provides endpoints for:
- Listing, filtering and counting notifications
- Creating notifications directly or from classified raw messages
- Read, pin, archive, delete and expiry lifecycle
- Per-channel delivery decisions

Write endpoints on unknown ids are no-ops: they return 200 with
success=false. Only malformed input is rejected (400).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from notification_core.api.dependencies import get_notification_service
from notification_core.api.schemas.notifications import (
    ClassificationResponse,
    ClearExpiredResponse,
    CreateNotificationRequest,
    DeleteResponse,
    DeliveryDecisionResponse,
    IngestRequest,
    IngestResponse,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatsResponse,
    RawMessageRequest,
    ToggleResponse,
    UnreadCountResponse,
)
from notification_core.models.classification import RawMessage
from notification_core.models.notification import (
    Notification,
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
)
from notification_core.platform.errors import NotFoundError
from notification_core.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _notification_to_response(notification: Notification) -> NotificationResponse:
    """Convert Notification record to response model."""
    return NotificationResponse(**notification.to_dict())


def _optional_response(notification: Optional[Notification]) -> Optional[NotificationResponse]:
    return _notification_to_response(notification) if notification is not None else None


def _raw_message(body: RawMessageRequest) -> RawMessage:
    return RawMessage(
        subject=body.subject,
        content=body.content,
        sender=body.sender,
        sender_email=body.sender_email,
        timestamp=body.timestamp,
        source=body.source,
        source_id=body.source_id,
    )


@router.get(
    "",
    response_model=NotificationListResponse,
)
async def list_notifications(
    category: Optional[NotificationCategory] = Query(None, description="Filter by category"),
    q: Optional[str] = Query(None, description="Search title and message"),
    unread_only: bool = Query(False, description="Only unread notifications"),
    priority: Optional[NotificationPriority] = Query(None, description="Filter by priority"),
    service: NotificationService = Depends(get_notification_service),
):
    """
    List notifications, pinned first then newest first.
    """
    notifications = service.filtered(
        selected_category=category,
        search_query=q,
        unread_only=unread_only,
        priority=priority,
    )

    return NotificationListResponse(
        notifications=[_notification_to_response(n) for n in notifications],
        total=len(notifications),
        unread_count=service.unread_count(),
    )


@router.get(
    "/unread/count",
    response_model=UnreadCountResponse,
)
async def get_unread_count(
    category: Optional[NotificationCategory] = Query(None, description="Limit to one category"),
    service: NotificationService = Depends(get_notification_service),
):
    """Get count of unread notifications, optionally for one category."""
    if category is not None:
        return UnreadCountResponse(
            count=service.unread_count_by_category(category),
            category=category.value,
        )
    return UnreadCountResponse(count=service.unread_count())


@router.get(
    "/stats",
    response_model=NotificationStatsResponse,
)
async def get_stats(service: NotificationService = Depends(get_notification_service)):
    return NotificationStatsResponse(**service.stats().to_dict())


@router.get(
    "/recent",
    response_model=NotificationListResponse,
)
async def get_recent(
    limit: int = Query(5, le=100, description="Maximum notifications to return"),
    service: NotificationService = Depends(get_notification_service),
):
    """Newest notifications by creation time; limit <= 0 returns none."""
    notifications = service.recent(limit)
    return NotificationListResponse(
        notifications=[_notification_to_response(n) for n in notifications],
        total=len(notifications),
        unread_count=service.unread_count(),
    )


@router.post(
    "",
    response_model=NotificationResponse,
)
async def create_notification(
    body: CreateNotificationRequest,
    service: NotificationService = Depends(get_notification_service),
):
    draft = NotificationDraft(**body.model_dump())
    notification = service.add_notification(draft)
    return _notification_to_response(notification)


@router.post(
    "/classify",
    response_model=ClassificationResponse,
)
async def classify_message(
    body: RawMessageRequest,
    service: NotificationService = Depends(get_notification_service),
):
    """Classify a raw message without storing anything."""
    result = service.classify(_raw_message(body))
    return ClassificationResponse(**result.to_dict())


@router.post(
    "/ingest",
    response_model=IngestResponse,
)
async def ingest_message(
    body: IngestRequest,
    service: NotificationService = Depends(get_notification_service),
):
    """Classify a raw message and store the resulting notification."""
    notification, result = service.ingest(_raw_message(body), body.user_id)
    return IngestResponse(
        notification=_notification_to_response(notification),
        classification=ClassificationResponse(**result.to_dict()),
    )


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
)
async def mark_all_as_read(service: NotificationService = Depends(get_notification_service)):
    """Mark all notifications as read."""
    count = service.mark_all_read()

    logger.info(
        "All notifications marked as read",
        extra={"count": count},
    )

    return MarkAllReadResponse(marked_count=count)


@router.post(
    "/clear-expired",
    response_model=ClearExpiredResponse,
)
async def clear_expired(service: NotificationService = Depends(get_notification_service)):
    return ClearExpiredResponse(removed_count=service.clear_expired())


@router.get(
    "/{notification_id}",
    response_model=NotificationResponse,
)
async def get_notification(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    """Get a single notification by ID."""
    notification = service.get(notification_id)
    if notification is None:
        raise NotFoundError("Notification", notification_id)
    return _notification_to_response(notification)


@router.get(
    "/{notification_id}/delivery",
    response_model=DeliveryDecisionResponse,
)
async def get_delivery_decision(
    notification_id: str,
    role: Optional[str] = Query(None, description="Recipient role for permission checks"),
    service: NotificationService = Depends(get_notification_service),
):
    """Per-channel delivery decision for a stored notification."""
    decision = service.route(notification_id, recipient_role=role)
    if decision is None:
        raise NotFoundError("Notification", notification_id)
    return DeliveryDecisionResponse(**decision.to_dict())


@router.patch(
    "/{notification_id}/read",
    response_model=MarkReadResponse,
)
async def mark_as_read(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    """Mark a notification as read."""
    notification = service.mark_read(notification_id)
    return MarkReadResponse(
        success=notification is not None,
        notification=_optional_response(notification),
    )


@router.patch(
    "/{notification_id}/pin",
    response_model=ToggleResponse,
)
async def toggle_pin(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    notification = service.toggle_pin(notification_id)
    return ToggleResponse(
        success=notification is not None,
        notification=_optional_response(notification),
    )


@router.patch(
    "/{notification_id}/archive",
    response_model=ToggleResponse,
)
async def toggle_archive(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    notification = service.toggle_archive(notification_id)
    return ToggleResponse(
        success=notification is not None,
        notification=_optional_response(notification),
    )


@router.delete(
    "/{notification_id}",
    response_model=DeleteResponse,
)
async def delete_notification(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    return DeleteResponse(success=service.delete(notification_id))
