"""
Notification engine facade.

Composes the repository, query service, preference resolver, permission
and template stores, classifier, delivery router and change bridge into
the single read/write surface used by the HTTP layer and by callers
embedding the engine.

USAGE:
    service = NotificationService.from_config(get_engine_config())
    service.ingest(RawMessage(subject="URGENT: budget", content="project"), "user-1")
    service.filtered(unread_only=True)

Write operations on unknown ids are silent no-ops; they return None or
False instead of raising.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional, Union

from notification_core.config.engine_config import EngineConfig
from notification_core.models.base import utc_now
from notification_core.models.classification import (
    ClassificationResult,
    MessageSource,
    RawMessage,
)
from notification_core.models.notification import (
    Notification,
    NotificationCategory,
    NotificationDraft,
    NotificationPriority,
    NotificationType,
)
from notification_core.models.notification_permission import NotificationPermission
from notification_core.models.notification_preference import NotificationPreference
from notification_core.models.notification_template import NotificationTemplate
from notification_core.services.change_bridge import ChangePropagationBridge
from notification_core.services.delivery_router import DeliveryDecision, DeliveryRouter
from notification_core.services.message_classifier import (
    MessageClassifier,
    notification_draft_for,
)
from notification_core.services.notification_query_service import (
    NotificationQueryService,
    NotificationStats,
)
from notification_core.services.notification_repository import NotificationRepository
from notification_core.services.permission_service import PermissionService, seed_permissions
from notification_core.services.preference_resolver import PreferenceResolver
from notification_core.services.source_stores import ChatStore, MailStore
from notification_core.services.template_service import TemplateService, seed_templates

logger = logging.getLogger(__name__)

CategoryFilter = Optional[Union[NotificationCategory, str]]
PriorityFilter = Optional[Union[NotificationPriority, str]]

_CATEGORY_VALUES = frozenset(c.value for c in NotificationCategory)
_TYPE_VALUES = frozenset(t.value for t in NotificationType)
_TEMPLATE_OWNED_FIELDS = frozenset({"title", "message"})


class NotificationService:
    """
    Read/write surface of the notification engine.

    The service owns its stores. The bridge is created here but only
    starts observing when the composition root calls start().
    """

    def __init__(
        self,
        repository: Optional[NotificationRepository] = None,
        preferences: Optional[PreferenceResolver] = None,
        permissions: Optional[PermissionService] = None,
        templates: Optional[TemplateService] = None,
        classifier: Optional[MessageClassifier] = None,
        chat_store: Optional[ChatStore] = None,
        mail_store: Optional[MailStore] = None,
        current_user_id: str = "user-1",
        poll_interval_seconds: float = 2.0,
        notification_ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._clock = clock
        self.repository = repository if repository is not None else NotificationRepository(clock=clock)
        self.query = NotificationQueryService(self.repository)
        self.preferences = preferences if preferences is not None else PreferenceResolver(clock=clock)
        self.permissions = permissions if permissions is not None else PermissionService()
        self.templates = templates if templates is not None else TemplateService(clock=clock)
        self.classifier = classifier if classifier is not None else MessageClassifier()
        self.chat_store = chat_store if chat_store is not None else ChatStore(clock=clock)
        self.mail_store = mail_store if mail_store is not None else MailStore(clock=clock)
        self.router = DeliveryRouter(self.preferences, self.permissions, clock=clock)
        self.current_user_id = current_user_id
        self.notification_ttl = notification_ttl

        self.bridge = ChangePropagationBridge(
            repository=self.repository,
            query=self.query,
            classifier=self.classifier,
            current_user_id=current_user_id,
            chat_store=self.chat_store,
            mail_store=self.mail_store,
            router=self.router,
            poll_interval_seconds=poll_interval_seconds,
            notification_ttl=notification_ttl,
            clock=clock,
        )

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> "NotificationService":
        """
        Build a service from engine configuration.

        Seeds the reference permission rows and the system template when
        config.seed_reference_data is set.
        """
        seed = config.seed_reference_data
        ttl = None
        if config.bridged_notification_ttl_days is not None:
            ttl = timedelta(days=config.bridged_notification_ttl_days)

        service = cls(
            preferences=PreferenceResolver(clock=clock, default_timezone=config.default_timezone),
            permissions=PermissionService(seed_permissions() if seed else None),
            templates=TemplateService(clock=clock, initial=seed_templates(clock()) if seed else None),
            classifier=MessageClassifier(
                scoring=config.scoring,
                internal_domain=config.internal_email_domain,
            ),
            current_user_id=config.current_user_id,
            poll_interval_seconds=config.poll_interval_seconds,
            notification_ttl=ttl,
            clock=clock,
        )

        logger.info(
            "notification_service.configured",
            extra={
                "current_user_id": config.current_user_id,
                "poll_interval_seconds": config.poll_interval_seconds,
                "seeded": seed,
            },
        )
        return service

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, notification_id: str) -> Optional[Notification]:
        return self.repository.get(notification_id)

    def unread_count(self) -> int:
        return self.query.unread_count()

    def unread_count_by_category(self, category: Union[NotificationCategory, str]) -> int:
        return self.query.unread_count_by_category(category)

    def filtered(
        self,
        selected_category: CategoryFilter = None,
        search_query: Optional[str] = None,
        unread_only: bool = False,
        priority: PriorityFilter = None,
    ) -> list[Notification]:
        return self.query.filtered(
            selected_category=selected_category,
            search_query=search_query,
            unread_only=unread_only,
            priority=priority,
        )

    def by_category(self, category: Union[NotificationCategory, str]) -> list[Notification]:
        return self.query.by_category(category)

    def by_priority(self, priority: Union[NotificationPriority, str]) -> list[Notification]:
        return self.query.by_priority(priority)

    def recent(self, limit: int) -> list[Notification]:
        return self.query.recent(limit)

    def stats(self) -> NotificationStats:
        return self.query.stats()

    def get_settings(self, user_id: str, category: str) -> Optional[NotificationPreference]:
        return self.preferences.get(user_id, category)

    def settings_or_default(self, user_id: str, category: str) -> NotificationPreference:
        """Stored settings, or unsaved defaults for the pair."""
        return self.preferences.get_or_default(user_id, category)

    def list_settings(self, user_id: str) -> list[NotificationPreference]:
        return self.preferences.list_for_user(user_id)

    def get_permission(self, role: str, category: str) -> Optional[NotificationPermission]:
        return self.permissions.get(role, category)

    # =========================================================================
    # Writes
    # =========================================================================

    def add_notification(self, draft: NotificationDraft) -> Notification:
        return self.repository.insert(draft)

    def mark_read(self, notification_id: str) -> Optional[Notification]:
        return self.repository.mark_read(notification_id)

    def mark_all_read(self) -> int:
        return self.repository.mark_all_read()

    def toggle_pin(self, notification_id: str) -> Optional[Notification]:
        return self.repository.toggle_pin(notification_id)

    def toggle_archive(self, notification_id: str) -> Optional[Notification]:
        return self.repository.toggle_archive(notification_id)

    def delete(self, notification_id: str) -> bool:
        return self.repository.delete(notification_id)

    def clear_expired(self, now: Optional[datetime] = None) -> int:
        return self.repository.sweep_expired(now)

    def update_settings(
        self,
        user_id: str,
        category: str,
        patch: Mapping[str, Any],
    ) -> NotificationPreference:
        return self.preferences.upsert(user_id, category, patch)

    def reset_settings(self, user_id: str) -> int:
        return self.preferences.reset_all(user_id)

    def update_permission(
        self,
        role: str,
        category: str,
        patch: Mapping[str, Any],
    ) -> NotificationPermission:
        return self.permissions.update(role, category, patch)

    # =========================================================================
    # Classification and routing
    # =========================================================================

    def classify(self, message: RawMessage) -> ClassificationResult:
        return self.classifier.classify(message)

    def ingest(
        self,
        message: RawMessage,
        user_id: str,
        source: Optional[MessageSource] = None,
    ) -> tuple[Notification, ClassificationResult]:
        """
        Classify a raw message and store the resulting notification.

        Args:
            message: Raw inbound message
            user_id: Recipient of the notification
            source: Overrides message.source when given

        Returns:
            (stored notification, classification result)
        """
        if source is not None and source != message.source:
            message = RawMessage(
                subject=message.subject,
                content=message.content,
                sender=message.sender,
                sender_email=message.sender_email,
                timestamp=message.timestamp,
                source=source,
                source_id=message.source_id,
            )

        result = self.classifier.classify(message)
        draft = notification_draft_for(message, result, user_id=user_id)
        notification = self.repository.insert(draft)

        logger.info(
            "notification_service.ingested",
            extra={
                "notification_id": notification.id,
                "source": message.source.value,
                "classification": result.category.value,
                "priority": notification.priority.value,
            },
        )
        return notification, result

    def route(
        self,
        notification_id: str,
        recipient_role: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[DeliveryDecision]:
        """Delivery decision for a stored notification; None for unknown ids."""
        notification = self.repository.get(notification_id)
        if notification is None:
            return None
        return self.router.route(notification, recipient_role=recipient_role, now=now)

    # =========================================================================
    # Templates
    # =========================================================================

    def list_templates(self, category: Optional[str] = None) -> list[NotificationTemplate]:
        return self.templates.list(category)

    def get_template(self, template_id: str) -> Optional[NotificationTemplate]:
        return self.templates.get(template_id)

    def create_template(self, **fields: Any) -> NotificationTemplate:
        return self.templates.create(**fields)

    def update_template(self, template_id: str, patch: Mapping[str, Any]) -> Optional[NotificationTemplate]:
        return self.templates.update(template_id, patch)

    def delete_template(self, template_id: str) -> bool:
        return self.templates.delete(template_id)

    def notify_from_template(
        self,
        template_id: str,
        user_id: str,
        context: Mapping[str, Any],
        **draft_fields: Any,
    ) -> Optional[Notification]:
        """
        Render a template and store the result as a notification.

        title and message always come from the rendered template;
        the same keys in draft_fields are ignored.

        Returns None for unknown or inactive templates.
        """
        template = self.templates.get(template_id)
        rendered = self.templates.render(template_id, context)
        if template is None or rendered is None:
            return None

        ignored = sorted(_TEMPLATE_OWNED_FIELDS.intersection(draft_fields))
        if ignored:
            logger.warning(
                "notification_service.template_fields_ignored",
                extra={"template_id": template_id, "fields": ignored},
            )
        fields = {k: v for k, v in draft_fields.items() if k not in _TEMPLATE_OWNED_FIELDS}

        title, message = rendered
        if template.category in _CATEGORY_VALUES:
            fields.setdefault("category", NotificationCategory(template.category))
        if template.type in _TYPE_VALUES:
            fields.setdefault("type", NotificationType(template.type))
        return self.repository.insert(
            NotificationDraft(title=title, message=message, user_id=user_id, **fields)
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Start the change bridge. Requires a running event loop."""
        self.bridge.start()

    def shutdown(self) -> None:
        self.bridge.destroy()
