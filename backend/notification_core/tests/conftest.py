"""Shared fixtures for notification engine tests."""

from datetime import datetime, timedelta, timezone

import pytest

from notification_core.models.notification import (
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    NotificationType,
)


class FakeClock:
    """Deterministic clock; every call returns the current instant."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Clock starting at 2024-01-15 12:00 UTC."""
    return FakeClock(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def user_id():
    """Test user ID."""
    return "user-1"


@pytest.fixture
def make_draft(user_id):
    """Factory for notification drafts."""
    def _make(
        title="Test notification",
        message="This is a test message",
        category=NotificationCategory.SYSTEM,
        priority=NotificationPriority.MEDIUM,
        **kwargs,
    ):
        kwargs.setdefault("type", NotificationType.INFO)
        kwargs.setdefault("user_id", user_id)
        return NotificationDraft(
            title=title,
            message=message,
            category=category,
            priority=priority,
            **kwargs,
        )
    return _make
