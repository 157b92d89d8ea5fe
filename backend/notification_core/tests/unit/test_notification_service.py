"""
Unit tests for the NotificationService facade.

Tests cover:
- Construction from configuration (seeding, TTL)
- ingest() classification and storage
- route() for stored and unknown notifications
- Template-driven notifications
"""

from datetime import timedelta

import pytest

from notification_core.config.engine_config import EngineConfig
from notification_core.models.classification import MessageCategory, MessageSource, RawMessage
from notification_core.models.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)
from notification_core.models.notification_preference import DeliveryChannel
from notification_core.services.delivery_router import RouteAction
from notification_core.services.notification_repository import NotificationRepository
from notification_core.services.notification_service import NotificationService
from notification_core.services.permission_service import PermissionService
from notification_core.services.preference_resolver import PreferenceResolver
from notification_core.services.template_service import TemplateService


@pytest.fixture
def service(clock):
    return NotificationService.from_config(EngineConfig(), clock=clock)


class TestFromConfig:
    """Tests for NotificationService.from_config."""

    def test_seeds_reference_data(self, service):
        assert service.get_permission("admin", "all") is not None
        assert len(service.list_templates()) == 1

    def test_seeding_can_be_disabled(self, clock):
        service = NotificationService.from_config(EngineConfig(seed_reference_data=False), clock=clock)

        assert service.get_permission("admin", "all") is None
        assert service.list_templates() == []

    def test_bridge_uses_config(self, clock):
        config = EngineConfig(poll_interval_seconds=0.25, current_user_id="user-7", bridged_notification_ttl_days=3)

        service = NotificationService.from_config(config, clock=clock)

        assert service.bridge.poll_interval_seconds == 0.25
        assert service.bridge.current_user_id == "user-7"
        assert service.bridge.notification_ttl == timedelta(days=3)

    def test_default_timezone_from_config(self, clock, user_id):
        service = NotificationService.from_config(EngineConfig(default_timezone="Europe/London"), clock=clock)

        assert service.settings_or_default(user_id, "chat").quiet_hours.timezone == "Europe/London"
        updated = service.update_settings(user_id, "chat", {"quiet_hours": {"enabled": True}})
        assert updated.quiet_hours.timezone == "Europe/London"

    def test_internal_domain_from_config(self, clock):
        service = NotificationService.from_config(EngineConfig(internal_email_domain="example.org"), clock=clock)
        result = service.classify(RawMessage(subject="Lunch", sender_email="amy@example.org"))
        assert result.category == MessageCategory.INTERNAL_TEAM


class TestConstruction:
    """Injected collaborators are used as given, even when empty."""

    def test_empty_repository_is_kept(self, clock, make_draft):
        repository = NotificationRepository(clock=clock)

        service = NotificationService(repository=repository, clock=clock)
        service.add_notification(make_draft())

        assert service.repository is repository
        assert len(repository) == 1
        assert service.bridge.repository is repository

    def test_empty_stores_are_kept(self, clock):
        preferences = PreferenceResolver(clock=clock)
        permissions = PermissionService()
        templates = TemplateService(clock=clock)

        service = NotificationService(
            preferences=preferences,
            permissions=permissions,
            templates=templates,
            clock=clock,
        )

        assert service.preferences is preferences
        assert service.permissions is permissions
        assert service.templates is templates


class TestIngest:
    """Tests for ingest()."""

    def test_ingest_urgent_project_mail(self, service, user_id):
        notification, result = service.ingest(
            RawMessage(subject="URGENT: budget", content="project overrun", sender="Dana"),
            user_id,
            source=MessageSource.MAIL,
        )

        assert result.score == 6
        assert notification.priority == NotificationPriority.URGENT
        assert notification.category == NotificationCategory.PROJECT
        assert notification.metadata["source"] == "mail"
        assert service.unread_count() == 1

    def test_ingest_system_event(self, service, user_id):
        notification, _ = service.ingest(
            RawMessage(subject="Backup finished", content="Nightly backup completed"),
            user_id,
        )

        assert notification.title == "Backup finished"
        assert notification.type == NotificationType.SYSTEM
        assert notification.category == NotificationCategory.SYSTEM


class TestRouting:

    def test_route_stored_notification(self, service, make_draft):
        notification = service.add_notification(make_draft(category=NotificationCategory.CHAT))

        decision = service.route(notification.id)

        assert decision.delivered is True
        assert decision.action_for(DeliveryChannel.IN_APP) == RouteAction.DELIVER

    def test_route_respects_settings(self, service, make_draft, user_id):
        notification = service.add_notification(make_draft(category=NotificationCategory.CHAT))
        service.update_settings(user_id, "chat", {"enabled": False})

        assert service.route(notification.id).delivered is False

    def test_route_unknown_id(self, service):
        assert service.route("notif-missing") is None


class TestWrites:
    """Facade write operations delegate to the stores."""

    def test_lifecycle(self, service, make_draft, clock):
        notification = service.add_notification(make_draft(expires_at=clock.now + timedelta(minutes=5)))

        assert service.toggle_pin(notification.id).is_pinned is True
        assert service.toggle_archive(notification.id).is_archived is True
        assert service.mark_read(notification.id).is_read is True

        clock.advance(minutes=10)
        assert service.clear_expired() == 1
        assert service.delete(notification.id) is False

    def test_settings_and_permissions(self, service, user_id):
        service.update_settings(user_id, "chat", {"keywords": ["site"]})
        assert service.get_settings(user_id, "chat").keywords == ("site",)
        assert service.reset_settings(user_id) == 1
        assert service.get_settings(user_id, "chat") is None

        permission = service.update_permission("user", "billing", {"can_receive": False})
        assert service.get_permission("user", "billing") == permission


class TestTemplates:

    def test_notify_from_template(self, service, user_id):
        (template,) = service.list_templates()

        notification = service.notify_from_template(
            template.id,
            user_id,
            {"projectName": "Depot", "updateMessage": "roof done"},
        )

        assert notification.title == "Project Depot Update"
        assert notification.category == NotificationCategory.PROJECT
        assert notification.type == NotificationType.INFO

    def test_notify_from_unknown_template(self, service, user_id):
        assert service.notify_from_template("template-missing", user_id, {}) is None

    def test_template_crud(self, service):
        created = service.create_template(
            name="Task Assigned",
            category="task",
            type="task",
            title="{{task}} assigned",
            message="You were assigned {{task}}",
            created_by="user-1",
        )

        assert service.get_template(created.id) == created
        assert service.update_template(created.id, {"is_active": False}).is_active is False
        assert service.delete_template(created.id) is True

    def test_notify_from_inactive_template(self, service, user_id):
        (template,) = service.list_templates()
        service.update_template(template.id, {"is_active": False})

        assert service.notify_from_template(template.id, user_id, {"projectName": "Depot"}) is None
        assert service.unread_count() == 0

    def test_template_category_and_type_carried_over(self, service, user_id):
        template = service.create_template(
            name="Invoice Due",
            category="billing",
            type="warning",
            title="Invoice {{number}} due",
            message="Invoice {{number}} is due on {{date}}",
            created_by="user-1",
        )

        notification = service.notify_from_template(
            template.id,
            user_id,
            {"number": "INV-7", "date": "Friday"},
            priority=NotificationPriority.HIGH,
        )

        assert notification.message == "Invoice INV-7 is due on Friday"
        assert notification.category == NotificationCategory.BILLING
        assert notification.type == NotificationType.WARNING
        assert notification.priority == NotificationPriority.HIGH
        assert service.list_templates("billing") == [template]

    def test_unknown_template_vocabulary_uses_defaults(self, service, user_id):
        template = service.create_template(
            name="Custom",
            category="marketing",
            type="banner",
            title="Hi",
            message="Hello",
            created_by="user-1",
        )

        notification = service.notify_from_template(template.id, user_id, {})

        assert notification.category == NotificationCategory.SYSTEM
        assert notification.type == NotificationType.INFO

    def test_rendered_text_wins_over_draft_fields(self, service, user_id):
        (template,) = service.list_templates()

        notification = service.notify_from_template(
            template.id,
            user_id,
            {"projectName": "Depot", "updateMessage": "roof done"},
            title="Overridden",
            message="Overridden",
            category=NotificationCategory.TASK,
        )

        assert notification.title == "Project Depot Update"
        assert notification.message != "Overridden"
        assert notification.category == NotificationCategory.TASK
