"""
Role-based notification permissions.

Read-mostly reference data keyed by (role, category). Not on the hot
path: the delivery router consults it only when a recipient role is
known.
"""

import logging
from typing import Any, Mapping, Optional

from notification_core.models.base import generate_id
from notification_core.models.notification_permission import (
    ALL_CATEGORIES,
    NotificationPermission,
)

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset({
    "can_receive",
    "can_configure",
    "can_send",
    "can_manage",
    "restrictions",
})


def seed_permissions() -> list[NotificationPermission]:
    """Default reference rows: admins manage everything, users configure chat."""
    return [
        NotificationPermission(
            id=generate_id("perm"),
            role="admin",
            category=ALL_CATEGORIES,
            can_receive=True,
            can_configure=True,
            can_send=True,
            can_manage=True,
        ),
        NotificationPermission(
            id=generate_id("perm"),
            role="user",
            category="chat",
            can_receive=True,
            can_configure=True,
        ),
    ]


class PermissionService:
    """In-memory (role, category) permission table."""

    def __init__(self, initial: Optional[list[NotificationPermission]] = None):
        self._permissions: dict[tuple[str, str], NotificationPermission] = {}
        for permission in initial or []:
            self._permissions[(permission.role, permission.category)] = permission

    def get(self, role: str, category: str) -> Optional[NotificationPermission]:
        """Exact (role, category) record, or None."""
        return self._permissions.get((role, category))

    def resolve(self, role: str, category: str) -> Optional[NotificationPermission]:
        """Exact record, falling back to the role's "all" record."""
        return self.get(role, category) or self.get(role, ALL_CATEGORIES)

    def list(self) -> list[NotificationPermission]:
        return list(self._permissions.values())

    def update(
        self,
        role: str,
        category: str,
        patch: Mapping[str, Any],
    ) -> NotificationPermission:
        """
        Create or update a permission record.

        New records default to receive-only before the patch is applied.
        """
        changes = {k: v for k, v in patch.items() if k in PATCHABLE_FIELDS}
        if "restrictions" in changes:
            changes["restrictions"] = tuple(changes["restrictions"] or ())

        existing = self._permissions.get((role, category))
        if existing is not None:
            updated = existing.with_changes(**changes)
        else:
            updated = NotificationPermission(
                id=generate_id("perm"),
                role=role,
                category=category,
            ).with_changes(**changes)

        self._permissions[(role, category)] = updated
        logger.info(
            "permission_service.updated",
            extra={"role": role, "category": category, "created": existing is None},
        )
        return updated

    def can_receive(self, role: Optional[str], category: str) -> bool:
        """
        Whether a role may receive a category.

        Unknown roles and roles without a record are allowed.
        """
        if not role:
            return True
        permission = self.resolve(role, category)
        return permission is None or permission.can_receive
