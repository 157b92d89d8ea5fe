"""
Per-user, per-category notification preference store.

Handles:
- Lookup by (user_id, category); never fabricates a record on read
- Upsert with shallow merge and lazy default creation
- Bulk reset of every record for a user

Callers substitute default_preference() when get() returns None.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from notification_core.models.base import utc_now
from notification_core.models.notification import NotificationCategory
from notification_core.models.notification_preference import (
    DeliveryChannels,
    DeliveryFrequency,
    NotificationPreference,
    QuietHours,
    default_preference,
)
from notification_core.services.delivery_rules import is_known_timezone

logger = logging.getLogger(__name__)

# Fields a patch may change; identity and timestamps are owned by the store
PATCHABLE_FIELDS = frozenset({
    "enabled",
    "channels",
    "frequency",
    "quiet_hours",
    "keywords",
    "exclude_keywords",
})

CategoryKey = Union[NotificationCategory, str]


def _category_key(category: CategoryKey) -> str:
    return category.value if isinstance(category, NotificationCategory) else str(category)


def _coerce_channels(value: Any) -> DeliveryChannels:
    if isinstance(value, DeliveryChannels):
        return value
    allowed = DeliveryChannels().to_dict()
    return DeliveryChannels(**{k: bool(v) for k, v in dict(value).items() if k in allowed})


def _coerce_quiet_hours(value: Any, default_timezone: str) -> QuietHours:
    if isinstance(value, QuietHours):
        return value
    allowed = QuietHours().to_dict()
    fields = {k: v for k, v in dict(value).items() if k in allowed}
    if fields.get("timezone") is None:
        fields["timezone"] = default_timezone
    if not is_known_timezone(fields["timezone"]):
        raise ValueError(f"Unknown timezone: {fields['timezone']}")
    if "enabled" in fields:
        fields["enabled"] = bool(fields["enabled"])
    return QuietHours(**fields)


def _normalize_patch(patch: Mapping[str, Any], default_timezone: str = "UTC") -> dict:
    """
    Convert a raw patch into dataclass field values.

    The merge is shallow: a channels or quiet_hours value replaces the
    whole sub-record, and keys missing from a nested mapping take the
    documented defaults rather than the stored values.

    Raises:
        ValueError: If frequency is not a known DeliveryFrequency, or the
            quiet_hours timezone is not a known IANA zone
    """
    changes: dict[str, Any] = {}
    for key, value in patch.items():
        if key not in PATCHABLE_FIELDS:
            continue
        if key == "channels" and value is not None:
            changes[key] = _coerce_channels(value)
        elif key == "quiet_hours" and value is not None:
            changes[key] = _coerce_quiet_hours(value, default_timezone)
        elif key == "frequency" and value is not None:
            changes[key] = DeliveryFrequency(value)
        elif key in ("keywords", "exclude_keywords"):
            changes[key] = tuple(str(k) for k in (value or ()))
        elif key == "enabled" and value is not None:
            changes[key] = bool(value)
    return changes


class PreferenceResolver:
    """
    In-memory store of NotificationPreference records.

    Unique on (user_id, category).
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        default_timezone: str = "UTC",
    ):
        self._clock = clock
        self.default_timezone = default_timezone
        self._settings: dict[tuple[str, str], NotificationPreference] = {}

    def get(self, user_id: str, category: CategoryKey) -> Optional[NotificationPreference]:
        """Stored record for the pair, or None."""
        return self._settings.get((user_id, _category_key(category)))

    def get_or_default(self, user_id: str, category: CategoryKey) -> NotificationPreference:
        """Stored record, or an unsaved default record."""
        stored = self.get(user_id, category)
        if stored is not None:
            return stored
        return default_preference(
            user_id,
            _category_key(category),
            now=self._clock(),
            timezone=self.default_timezone,
        )

    def list_for_user(self, user_id: str) -> list[NotificationPreference]:
        return [p for (uid, _), p in self._settings.items() if uid == user_id]

    def upsert(
        self,
        user_id: str,
        category: CategoryKey,
        patch: Mapping[str, Any],
    ) -> NotificationPreference:
        """
        Create or update settings for a (user, category) pair.

        Existing record: shallow-merge the patch and stamp updated_at.
        Missing record: start from the documented defaults, apply the
        patch and stamp created_at and updated_at.

        Args:
            user_id: Owner of the settings
            category: Notification category
            patch: Field values to change (unknown keys are ignored)

        Returns:
            The stored record after the write
        """
        key = (user_id, _category_key(category))
        now = self._clock()
        existing = self._settings.get(key)

        if existing is not None:
            updated = existing.with_changes(updated_at=now, **_normalize_patch(patch, self.default_timezone))
            action = "updated"
        else:
            base = default_preference(user_id, key[1], now=now, timezone=self.default_timezone)
            updated = replace(base, **_normalize_patch(patch, self.default_timezone))
            action = "created"

        self._settings[key] = updated

        logger.info(
            f"preference_resolver.{action}",
            extra={
                "user_id": user_id,
                "category": key[1],
                "fields": sorted(k for k in patch if k in PATCHABLE_FIELDS),
            },
        )
        return updated

    def reset_all(self, user_id: str) -> int:
        """
        Remove every settings record for a user.

        Returns:
            Number of records removed
        """
        keys = [key for key in self._settings if key[0] == user_id]
        for key in keys:
            del self._settings[key]

        logger.info(
            "preference_resolver.reset",
            extra={"user_id": user_id, "removed": len(keys)},
        )
        return len(keys)
