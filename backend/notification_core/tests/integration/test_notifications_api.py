"""
Integration tests for the Notifications API.

Tests cover:
- GET /api/notifications (filters, ordering)
- GET /api/notifications/unread/count, /stats, /recent
- POST /api/notifications, /classify, /ingest
- PATCH /api/notifications/{id}/read, /pin, /archive
- POST /api/notifications/read-all, /clear-expired
- DELETE /api/notifications/{id}
- No-op semantics for unknown ids and 400s for malformed input
- Bridge lifecycle under the app lifespan
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from notification_core.config.engine_config import EngineConfig
from notification_core.main import create_app
from notification_core.services.notification_service import NotificationService


@pytest.fixture
def service(clock):
    return NotificationService.from_config(EngineConfig(poll_interval_seconds=0.05), clock=clock)


@pytest.fixture
def client(service):
    """Test client with the app lifespan running."""
    with TestClient(create_app(service=service)) as client:
        yield client


def create(client, **overrides):
    body = {
        "title": "Site inspection",
        "message": "Inspection booked for Monday",
        "user_id": "user-1",
        "category": "project",
        "priority": "medium",
    }
    body.update(overrides)
    response = client.post("/api/notifications", json=body)
    assert response.status_code == 200
    return response.json()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_readiness_reports_bridge(self, client):
        data = client.get("/api/health/readiness").json()

        assert data["status"] == "ready"
        assert data["checks"]["bridge"]["attached"] is True
        assert data["checks"]["bridge"]["polling"] is True


class TestListNotifications:
    """Tests for GET /api/notifications."""

    def test_empty(self, client):
        response = client.get("/api/notifications")

        assert response.status_code == 200
        assert response.json() == {"notifications": [], "total": 0, "unread_count": 0}

    def test_pinned_then_newest(self, client, clock):
        first = create(client, title="first")
        clock.advance(minutes=1)
        second = create(client, title="second")
        client.patch(f"/api/notifications/{first['id']}/pin")

        ids = [n["id"] for n in client.get("/api/notifications").json()["notifications"]]

        assert ids == [first["id"], second["id"]]

    def test_filters(self, client):
        create(client, title="Chat ping", category="chat")
        create(client, title="Invoice overdue", category="billing", priority="urgent")

        by_category = client.get("/api/notifications", params={"category": "chat"}).json()
        by_query = client.get("/api/notifications", params={"q": "INVOICE"}).json()
        by_priority = client.get("/api/notifications", params={"priority": "urgent"}).json()

        assert [n["title"] for n in by_category["notifications"]] == ["Chat ping"]
        assert [n["title"] for n in by_query["notifications"]] == ["Invoice overdue"]
        assert by_priority["total"] == 1

    def test_unread_only(self, client):
        read = create(client)
        create(client)
        client.patch(f"/api/notifications/{read['id']}/read")

        data = client.get("/api/notifications", params={"unread_only": "true"}).json()

        assert data["total"] == 1
        assert data["unread_count"] == 1

    def test_invalid_category_is_400(self, client):
        response = client.get("/api/notifications", params={"category": "nonsense"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestCountsAndStats:

    def test_unread_count(self, client):
        create(client, category="chat")
        create(client, category="project")

        assert client.get("/api/notifications/unread/count").json()["count"] == 2
        scoped = client.get("/api/notifications/unread/count", params={"category": "chat"}).json()
        assert scoped == {"count": 1, "category": "chat"}

    def test_stats(self, client):
        create(client, category="chat", priority="high")

        data = client.get("/api/notifications/stats").json()

        assert data == {
            "total": 1,
            "unread": 1,
            "by_category": {"chat": 1},
            "by_priority": {"high": 1},
        }

    def test_recent(self, client, clock):
        for title in ("a", "b", "c"):
            create(client, title=title)
            clock.advance(minutes=1)

        data = client.get("/api/notifications/recent", params={"limit": 2}).json()
        assert [n["title"] for n in data["notifications"]] == ["c", "b"]

        assert client.get("/api/notifications/recent", params={"limit": 0}).json()["total"] == 0


class TestCreateAndClassify:
    """Tests for creation, classification and ingest."""

    def test_create_defaults(self, client):
        data = create(client, category="system")

        assert data["id"].startswith("notif-")
        assert data["is_read"] is False
        assert data["read_at"] is None
        assert data["type"] == "info"

    def test_create_missing_title_is_400(self, client):
        response = client.post("/api/notifications", json={"message": "x", "user_id": "user-1"})
        assert response.status_code == 400

    def test_create_invalid_priority_is_400(self, client):
        response = client.post(
            "/api/notifications",
            json={"title": "x", "message": "y", "user_id": "user-1", "priority": "critical"},
        )
        assert response.status_code == 400

    def test_classify(self, client):
        response = client.post(
            "/api/notifications/classify",
            json={"subject": "URGENT: budget", "content": "project overrun"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["category"] == "project-related"
        assert data["score"] == 6
        assert data["priority"] == "critical"
        assert client.get("/api/notifications").json()["total"] == 0

    def test_classify_empty_body(self, client):
        data = client.post("/api/notifications/classify", json={}).json()
        assert data["category"] == "general"
        assert data["priority"] == "low"

    def test_ingest(self, client):
        response = client.post(
            "/api/notifications/ingest",
            json={
                "subject": "URGENT: budget",
                "content": "project overrun",
                "sender": "Dana",
                "source": "mail",
                "user_id": "user-1",
            },
        )

        data = response.json()
        assert data["classification"]["priority"] == "critical"
        assert data["notification"]["priority"] == "urgent"
        assert data["notification"]["title"] == "Urgent Email Requires Attention"


class TestLifecycleEndpoints:
    """Tests for read/pin/archive/delete/expiry endpoints."""

    def test_mark_read(self, client):
        created = create(client)

        data = client.patch(f"/api/notifications/{created['id']}/read").json()

        assert data["success"] is True
        assert data["notification"]["is_read"] is True
        assert data["notification"]["read_at"] is not None

    def test_unknown_id_is_noop(self, client):
        for path in ("read", "pin", "archive"):
            response = client.patch(f"/api/notifications/notif-missing/{path}")
            assert response.status_code == 200
            assert response.json() == {"success": False, "notification": None}

        response = client.delete("/api/notifications/notif-missing")
        assert response.status_code == 200
        assert response.json() == {"success": False}

    def test_get_unknown_is_404(self, client):
        response = client.get("/api/notifications/notif-missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_pin_twice_restores(self, client):
        created = create(client)

        client.patch(f"/api/notifications/{created['id']}/pin")
        data = client.patch(f"/api/notifications/{created['id']}/pin").json()

        assert data["notification"]["is_pinned"] is False

    def test_archive(self, client):
        created = create(client)
        data = client.patch(f"/api/notifications/{created['id']}/archive").json()
        assert data["notification"]["is_archived"] is True

    def test_read_all_end_to_end(self, client):
        created = create(client, category="chat", priority="medium")

        listed = client.get("/api/notifications", params={"category": "chat"}).json()
        assert [n["id"] for n in listed["notifications"]] == [created["id"]]

        assert client.post("/api/notifications/read-all").json() == {"marked_count": 1}
        assert client.get("/api/notifications/unread/count").json()["count"] == 0
        assert client.get(f"/api/notifications/{created['id']}").json()["read_at"] is not None

    def test_delete(self, client):
        created = create(client)
        assert client.delete(f"/api/notifications/{created['id']}").json() == {"success": True}
        assert client.get("/api/notifications").json()["total"] == 0

    def test_clear_expired(self, client, clock):
        create(client, expires_at=(clock.now + timedelta(minutes=1)).isoformat())
        create(client)
        clock.advance(minutes=5)

        assert client.post("/api/notifications/clear-expired").json() == {"removed_count": 1}

    def test_clear_expired_with_naive_expiry(self, client):
        create(client, expires_at="2020-01-01T00:00:00")
        create(client)

        response = client.post("/api/notifications/clear-expired")

        assert response.status_code == 200
        assert response.json() == {"removed_count": 1}

    def test_delivery_decision(self, client):
        created = create(client, category="chat")

        data = client.get(f"/api/notifications/{created['id']}/delivery").json()

        assert data["delivered"] is True
        assert {"channel": "in_app", "action": "deliver"} in data["channels"]

    def test_delivery_decision_unknown_is_404(self, client):
        assert client.get("/api/notifications/notif-missing/delivery").status_code == 404


class TestBridgeUnderApp:
    """The bridge runs for the lifetime of the app."""

    def test_chat_message_becomes_notification(self, client, service):
        service.chat_store.send_message("conv-9", "user-2", "Are we still on for tomorrow?")

        data = client.get("/api/notifications", params={"category": "chat"}).json()

        assert data["total"] == 1
        assert data["notifications"][0]["action_url"] == "/chat/conv-9"

    def test_bridge_destroyed_on_shutdown(self, service):
        with TestClient(create_app(service=service)):
            assert service.bridge.is_attached

        assert service.bridge.is_attached is False
        assert service.bridge.is_polling is False
