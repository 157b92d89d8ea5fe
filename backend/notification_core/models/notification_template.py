"""
Notification template model.

Templates hold a title and message with ``{{placeholder}}`` tokens that
are filled in when a notification is produced from them.
"""

import re
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass(frozen=True)
class NotificationTemplate:
    """Reusable title/message pair for a notification category."""

    id: str
    name: str
    category: str
    type: str
    title: str
    message: str
    created_by: str
    created_at: datetime
    updated_at: datetime
    is_active: bool = True
    is_system: bool = False

    def with_changes(self, updated_at: datetime, **changes) -> "NotificationTemplate":
        return replace(self, updated_at=updated_at, **changes)

    def placeholders(self) -> set[str]:
        """Names of all tokens used in title and message."""
        return set(PLACEHOLDER_PATTERN.findall(self.title)) | set(
            PLACEHOLDER_PATTERN.findall(self.message)
        )

    def render(self, context: Mapping[str, object]) -> tuple[str, str]:
        """
        Fill placeholders from ``context``.

        Tokens with no value in ``context`` are left untouched.
        """
        def _substitute(match: re.Match) -> str:
            key = match.group(1)
            if key in context:
                return str(context[key])
            return match.group(0)

        return (
            PLACEHOLDER_PATTERN.sub(_substitute, self.title),
            PLACEHOLDER_PATTERN.sub(_substitute, self.message),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "is_active": self.is_active,
            "is_system": self.is_system,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
