"""
Integration tests for the notification settings and permissions APIs.

Tests cover:
- GET/PUT/DELETE /api/notification-settings/{user_id}[/{category}]
- GET/PUT /api/notification-permissions/{role}/{category}
"""

import pytest
from fastapi.testclient import TestClient

from notification_core.config.engine_config import EngineConfig
from notification_core.main import create_app
from notification_core.services.notification_service import NotificationService


@pytest.fixture
def service(clock):
    return NotificationService.from_config(EngineConfig(), clock=clock)


@pytest.fixture
def client(service):
    return TestClient(create_app(service=service))


class TestSettingsApi:
    """Tests for notification settings endpoints."""

    def test_get_missing_returns_defaults_without_storing(self, client, service):
        response = client.get("/api/notification-settings/user-1/chat")

        assert response.status_code == 200
        data = response.json()
        assert data["enabled"] is True
        assert data["channels"] == {"in_app": True, "email": False, "push": False, "sms": False}
        assert data["frequency"] == "immediate"
        assert service.get_settings("user-1", "chat") is None

    def test_put_round_trip(self, client):
        response = client.put("/api/notification-settings/user-1/chat", json={"enabled": False})

        assert response.status_code == 200
        data = client.get("/api/notification-settings/user-1/chat").json()
        assert data["enabled"] is False
        assert data["user_id"] == "user-1"
        assert data["category"] == "chat"

    def test_put_partial_keeps_other_fields(self, client):
        client.put("/api/notification-settings/user-1/chat", json={"enabled": False})
        data = client.put(
            "/api/notification-settings/user-1/chat",
            json={
                "channels": {"email": True},
                "quiet_hours": {"enabled": True, "start": "21:30", "end": "07:00"},
                "exclude_keywords": ["spam"],
            },
        ).json()

        assert data["enabled"] is False
        assert data["channels"] == {"in_app": True, "email": True, "push": False, "sms": False}
        assert data["quiet_hours"]["start"] == "21:30"
        assert data["quiet_hours"]["timezone"] == "UTC"
        assert data["exclude_keywords"] == ["spam"]

    def test_quiet_hours_timezone_defaults_to_config(self, clock):
        service = NotificationService.from_config(EngineConfig(default_timezone="Europe/London"), clock=clock)
        client = TestClient(create_app(service=service))

        data = client.put(
            "/api/notification-settings/user-1/chat",
            json={"quiet_hours": {"enabled": True, "start": "21:30", "end": "07:00"}},
        ).json()

        assert data["quiet_hours"]["timezone"] == "Europe/London"

    def test_list_and_reset(self, client):
        client.put("/api/notification-settings/user-1/chat", json={})
        client.put("/api/notification-settings/user-1/project", json={})

        listed = client.get("/api/notification-settings/user-1").json()
        assert {s["category"] for s in listed["settings"]} == {"chat", "project"}

        assert client.delete("/api/notification-settings/user-1").json() == {"removed_count": 2}
        assert client.get("/api/notification-settings/user-1").json()["settings"] == []

    @pytest.mark.parametrize(
        "path,body",
        [
            ("/api/notification-settings/user-1/chat", {"frequency": "fortnightly"}),
            ("/api/notification-settings/user-1/chat", {"quiet_hours": {"start": "late"}}),
            ("/api/notification-settings/user-1/chat", {"quiet_hours": {"enabled": True, "timezone": "America"}}),
            ("/api/notification-settings/user-1/chat", {"enabled": "maybe"}),
            ("/api/notification-settings/user-1/nonsense", {}),
        ],
    )
    def test_malformed_input_is_400(self, client, path, body):
        response = client.put(path, json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestPermissionsApi:
    """Tests for notification permission endpoints."""

    def test_get_seeded(self, client):
        data = client.get("/api/notification-permissions/user/chat").json()

        assert data["can_receive"] is True
        assert data["can_configure"] is True
        assert data["can_manage"] is False

    def test_get_missing_is_404(self, client):
        assert client.get("/api/notification-permissions/user/billing").status_code == 404

    def test_put_creates_and_updates(self, client):
        created = client.put("/api/notification-permissions/guest/chat", json={"can_receive": False}).json()
        assert created["can_receive"] is False

        updated = client.put(
            "/api/notification-permissions/guest/chat",
            json={"can_send": True, "restrictions": ["business-hours"]},
        ).json()

        assert updated["id"] == created["id"]
        assert updated["can_receive"] is False
        assert updated["can_send"] is True
        assert updated["restrictions"] == ["business-hours"]

    def test_all_category_accepted(self, client):
        assert client.get("/api/notification-permissions/admin/all").status_code == 200

    def test_invalid_category_is_400(self, client):
        response = client.put("/api/notification-permissions/guest/weather", json={})
        assert response.status_code == 400

    def test_permission_applies_to_routing(self, client, service):
        client.put("/api/notification-permissions/guest/chat", json={"can_receive": False})
        created = client.post(
            "/api/notifications",
            json={"title": "hi", "message": "there", "user_id": "user-1", "category": "chat"},
        ).json()

        data = client.get(
            f"/api/notifications/{created['id']}/delivery",
            params={"role": "guest"},
        ).json()

        assert data["delivered"] is False
        assert data["reason"] == "permission_denied"
