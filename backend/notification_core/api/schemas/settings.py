"""
Pydantic schemas for notification settings and permissions.

Update requests are partial: only fields present in the request body
are applied.
"""

from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from notification_core.models.notification_preference import DeliveryFrequency

HHMM_PATTERN = r"^\s*\d{1,2}:\d{2}\s*$"


class DeliveryChannelsModel(BaseModel):
    in_app: bool = True
    email: bool = False
    push: bool = False
    sms: bool = False


class QuietHoursModel(BaseModel):
    enabled: bool = False
    start: str = Field("22:00", pattern=HHMM_PATTERN, description="Local start time, HH:MM")
    end: str = Field("08:00", pattern=HHMM_PATTERN, description="Local end time, HH:MM")
    timezone: Optional[str] = Field(None, description="IANA timezone name; the configured default when omitted")


class NotificationSettingsResponse(BaseModel):
    """Settings for one (user, category) pair."""

    id: str
    user_id: str
    category: str
    enabled: bool
    channels: DeliveryChannelsModel
    frequency: DeliveryFrequency
    quiet_hours: QuietHoursModel
    keywords: List[str]
    exclude_keywords: List[str]
    created_at: datetime
    updated_at: datetime


class NotificationSettingsListResponse(BaseModel):
    user_id: str
    settings: List[NotificationSettingsResponse]


class SettingsUpdateRequest(BaseModel):
    """
    Partial settings update.

    channels and quiet_hours replace the stored sub-record; keys left out
    of them take their defaults.
    """

    enabled: Optional[bool] = None
    channels: Optional[DeliveryChannelsModel] = None
    frequency: Optional[DeliveryFrequency] = None
    quiet_hours: Optional[QuietHoursModel] = None
    keywords: Optional[List[str]] = None
    exclude_keywords: Optional[List[str]] = None


class ResetSettingsResponse(BaseModel):
    removed_count: int = Field(..., description="Number of settings records removed")


class PermissionResponse(BaseModel):
    id: str
    role: str
    category: str
    can_receive: bool
    can_configure: bool
    can_send: bool
    can_manage: bool
    restrictions: List[str]


class PermissionUpdateRequest(BaseModel):
    can_receive: Optional[bool] = None
    can_configure: Optional[bool] = None
    can_send: Optional[bool] = None
    can_manage: Optional[bool] = None
    restrictions: Optional[List[str]] = None
