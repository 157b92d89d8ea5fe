"""
Notification template management.

Handles:
- CRUD for templates (system templates included)
- Rendering a template into a title/message pair
"""

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from notification_core.models.base import generate_id, utc_now
from notification_core.models.notification_template import NotificationTemplate

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset({
    "name",
    "category",
    "type",
    "title",
    "message",
    "is_active",
    "is_system",
})


def seed_templates(now: datetime) -> list[NotificationTemplate]:
    return [
        NotificationTemplate(
            id=generate_id("template"),
            name="Project Update",
            category="project",
            type="info",
            title="Project {{projectName}} Update",
            message="{{projectName}} has been updated: {{updateMessage}}",
            created_by="system",
            created_at=now,
            updated_at=now,
            is_active=True,
            is_system=True,
        ),
    ]


class TemplateService:
    """In-memory template store."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        initial: Optional[list[NotificationTemplate]] = None,
    ):
        self._clock = clock
        self._templates: list[NotificationTemplate] = list(initial or [])

    def list(self, category: Optional[str] = None) -> list[NotificationTemplate]:
        if category:
            return [t for t in self._templates if t.category == category]
        return list(self._templates)

    def get(self, template_id: str) -> Optional[NotificationTemplate]:
        return next((t for t in self._templates if t.id == template_id), None)

    def create(
        self,
        name: str,
        category: str,
        type: str,
        title: str,
        message: str,
        created_by: str,
        is_active: bool = True,
        is_system: bool = False,
    ) -> NotificationTemplate:
        now = self._clock()
        template = NotificationTemplate(
            id=generate_id("template"),
            name=name,
            category=category,
            type=type,
            title=title,
            message=message,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            is_active=is_active,
            is_system=is_system,
        )
        self._templates.append(template)
        logger.info(
            "template_service.created",
            extra={"template_id": template.id, "category": category},
        )
        return template

    def update(self, template_id: str, patch: Mapping[str, Any]) -> Optional[NotificationTemplate]:
        """Apply a patch; unknown ids are ignored and return None."""
        for index, template in enumerate(self._templates):
            if template.id == template_id:
                changes = {k: v for k, v in patch.items() if k in PATCHABLE_FIELDS}
                updated = template.with_changes(updated_at=self._clock(), **changes)
                self._templates[index] = updated
                return updated
        return None

    def delete(self, template_id: str) -> bool:
        before = len(self._templates)
        self._templates = [t for t in self._templates if t.id != template_id]
        return len(self._templates) < before

    def render(
        self,
        template_id: str,
        context: Mapping[str, Any],
    ) -> Optional[tuple[str, str]]:
        """
        Render an active template.

        Returns:
            (title, message), or None for unknown or inactive templates
        """
        template = self.get(template_id)
        if template is None or not template.is_active:
            return None
        return template.render(context)
