"""
Notification settings and permission routes.

Settings are keyed by (user_id, category); permissions by (role,
category). Reads of missing settings return the documented defaults
without storing them.
"""

import logging

from fastapi import APIRouter, Depends, Path

from notification_core.api.dependencies import get_notification_service
from notification_core.api.schemas.settings import (
    NotificationSettingsListResponse,
    NotificationSettingsResponse,
    PermissionResponse,
    PermissionUpdateRequest,
    ResetSettingsResponse,
    SettingsUpdateRequest,
)
from notification_core.models.notification import NotificationCategory
from notification_core.models.notification_permission import ALL_CATEGORIES
from notification_core.platform.errors import NotFoundError, ValidationError
from notification_core.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

settings_router = APIRouter(prefix="/api/notification-settings", tags=["notification-settings"])
permissions_router = APIRouter(prefix="/api/notification-permissions", tags=["notification-permissions"])

_PERMISSION_CATEGORIES = frozenset(c.value for c in NotificationCategory) | {ALL_CATEGORIES}


def _permission_category(category: str) -> str:
    if category not in _PERMISSION_CATEGORIES:
        raise ValidationError(
            f"Invalid category: {category}",
            details={"allowed": sorted(_PERMISSION_CATEGORIES)},
        )
    return category


# =============================================================================
# Settings
# =============================================================================

@settings_router.get(
    "/{user_id}",
    response_model=NotificationSettingsListResponse,
)
async def list_settings(
    user_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    """Stored settings records for a user."""
    return NotificationSettingsListResponse(
        user_id=user_id,
        settings=[NotificationSettingsResponse(**s.to_dict()) for s in service.list_settings(user_id)],
    )


@settings_router.get(
    "/{user_id}/{category}",
    response_model=NotificationSettingsResponse,
)
async def get_settings(
    user_id: str,
    category: NotificationCategory = Path(..., description="Notification category"),
    service: NotificationService = Depends(get_notification_service),
):
    """Settings for one category, falling back to unsaved defaults."""
    settings = service.settings_or_default(user_id, category.value)
    return NotificationSettingsResponse(**settings.to_dict())


@settings_router.put(
    "/{user_id}/{category}",
    response_model=NotificationSettingsResponse,
)
async def update_settings(
    user_id: str,
    body: SettingsUpdateRequest,
    category: NotificationCategory = Path(..., description="Notification category"),
    service: NotificationService = Depends(get_notification_service),
):
    """Create or partially update settings for one category."""
    patch = body.model_dump(exclude_unset=True)
    try:
        settings = service.update_settings(user_id, category.value, patch)
    except ValueError as e:
        raise ValidationError(str(e))
    return NotificationSettingsResponse(**settings.to_dict())


@settings_router.delete(
    "/{user_id}",
    response_model=ResetSettingsResponse,
)
async def reset_settings(
    user_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    """Remove every settings record for a user."""
    return ResetSettingsResponse(removed_count=service.reset_settings(user_id))


# =============================================================================
# Permissions
# =============================================================================

@permissions_router.get(
    "/{role}/{category}",
    response_model=PermissionResponse,
)
async def get_permission(
    role: str,
    category: str,
    service: NotificationService = Depends(get_notification_service),
):
    permission = service.get_permission(role, _permission_category(category))
    if permission is None:
        raise NotFoundError("Permission", f"{role}/{category}")
    return PermissionResponse(**permission.to_dict())


@permissions_router.put(
    "/{role}/{category}",
    response_model=PermissionResponse,
)
async def update_permission(
    role: str,
    category: str,
    body: PermissionUpdateRequest,
    service: NotificationService = Depends(get_notification_service),
):
    """Create or update the permission record for (role, category)."""
    patch = body.model_dump(exclude_unset=True, exclude_none=True)
    permission = service.update_permission(role, _permission_category(category), patch)
    return PermissionResponse(**permission.to_dict())
