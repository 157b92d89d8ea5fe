"""
Notification permission model.

Read-mostly reference data: one record per (role, category) pair
describing what a role may do with a category of notifications.
The special category "all" applies to every category for that role.
"""

from dataclasses import dataclass, replace

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class NotificationPermission:
    """Capabilities of a role for one notification category."""

    id: str
    role: str
    category: str
    can_receive: bool = True
    can_configure: bool = False
    can_send: bool = False
    can_manage: bool = False
    restrictions: tuple[str, ...] = ()

    def with_changes(self, **changes) -> "NotificationPermission":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "category": self.category,
            "can_receive": self.can_receive,
            "can_configure": self.can_configure,
            "can_send": self.can_send,
            "can_manage": self.can_manage,
            "restrictions": list(self.restrictions),
        }
