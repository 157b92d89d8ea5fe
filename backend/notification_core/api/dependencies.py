"""Request-scoped access to the composed notification service."""

from fastapi import Request

from notification_core.platform.errors import AppError
from notification_core.services.notification_service import NotificationService


def get_notification_service(request: Request) -> NotificationService:
    """Return the service built by the composition root."""
    service = getattr(request.app.state, "notification_service", None)
    if service is None:
        raise AppError(
            code="SERVICE_NOT_CONFIGURED",
            message="Notification service is not available",
            status_code=503,
        )
    return service
