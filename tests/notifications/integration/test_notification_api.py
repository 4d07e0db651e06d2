"""Integration tests for Notifications API endpoints via TestClient."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from notifications.api import preference_router, router, routes, template_router
from notifications.notification import maintenance
from notifications.notification.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
)
from notifications.preference.store import PreferenceStore
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers

TENANT = "t1"


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(preference_router)
    app.include_router(template_router)
    app.include_router(router)
    register_exception_handlers(app)
    return TestClient(app)


def _delivered(user_id="u1", **overrides) -> str:
    defaults = {
        "tenant_id": TENANT,
        "user_id": user_id,
        "notification_type": NotificationType.TASK_ASSIGNED.value,
        "channel": NotificationChannel.IN_APP.value,
        "title": "New Task: Calibrate press",
        "message": "You have been assigned a new task",
    }
    defaults.update(overrides)
    n = Notification.create(**defaults)
    n.mark_delivered()
    current_domain.repository_for(Notification).add(n)
    return str(n.id)


def _stored(notification_id) -> Notification:
    return current_domain.repository_for(Notification).get(notification_id)


# ---------------------------------------------------------------
# Sending
# ---------------------------------------------------------------
class TestSendAPI:
    def test_send_returns_batch(self, client):
        PreferenceStore().set_defaults("u1", TENANT)

        response = client.post(
            "/notifications/send",
            json={
                "tenant_id": TENANT,
                "user_ids": ["u1"],
                "notification_type": "order.created",
                "channels": ["in_app"],
                "title": "New Order #ORD-001",
                "message": "A new order has been created",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total_count"] == 1
        assert body["success_count"] == 1
        assert body["results"][0]["status"] == "delivered"

    def test_send_without_content_is_rejected(self, client):
        response = client.post(
            "/notifications/send",
            json={"tenant_id": TENANT, "user_ids": ["u1"], "notification_type": "order.created"},
        )
        assert response.status_code == 422

    def test_send_with_unknown_template_returns_404(self, client):
        response = client.post(
            "/notifications/send",
            json={
                "tenant_id": TENANT,
                "user_ids": ["u1"],
                "notification_type": "order.created",
                "template_id": "missing",
            },
        )
        assert response.status_code == 404


class TestDispatchRunsOffTheEventLoop:
    @staticmethod
    def _spy(func, seen):
        def wrapper(*args, **kwargs):
            try:
                asyncio.get_running_loop()
                seen["on_event_loop"] = True
            except RuntimeError:
                seen["on_event_loop"] = False
            seen["domain"] = current_domain.name
            return func(*args, **kwargs)

        return wrapper

    def test_send(self, client, monkeypatch):
        seen = {}
        monkeypatch.setattr(routes, "send_notification", self._spy(routes.send_notification, seen))
        PreferenceStore().set_defaults("u1", TENANT)

        response = client.post(
            "/notifications/send",
            json={
                "tenant_id": TENANT,
                "user_ids": ["u1"],
                "notification_type": "order.created",
                "channels": ["in_app"],
                "title": "New Order #ORD-001",
                "message": "A new order has been created",
            },
        )

        assert response.status_code == 200
        assert response.json()["success_count"] == 1
        assert seen == {"on_event_loop": False, "domain": current_domain.name}

    def test_retry_sweep(self, client, monkeypatch):
        seen = {}
        monkeypatch.setattr(maintenance, "retry_failed", self._spy(maintenance.retry_failed, seen))

        response = client.post("/notifications/maintenance/retry", params={"tenant_id": TENANT})

        assert response.status_code == 200
        assert seen["on_event_loop"] is False


# ---------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------
class TestInboxAPI:
    def test_list_and_unread_count(self, client):
        _delivered()
        _delivered()
        _delivered(user_id="u2")

        listed = client.get("/notifications", params={"tenant_id": TENANT, "user_id": "u1"})
        assert listed.status_code == 200
        assert listed.json()["count"] == 2
        assert listed.json()["notifications"][0]["userId"] == "u1"

        count = client.get("/notifications/unread/count", params={"tenant_id": TENANT, "user_id": "u1"})
        assert count.json() == {"count": 2}

        unread = client.get("/notifications/unread", params={"tenant_id": TENANT, "user_id": "u1"})
        assert unread.json()["count"] == 2

    def test_limit_is_bounded(self, client):
        response = client.get("/notifications", params={"tenant_id": TENANT, "limit": 5000})
        assert response.status_code == 422

    def test_stats(self, client):
        _delivered()
        response = client.get("/notifications/stats", params={"tenant_id": TENANT})
        assert response.status_code == 200
        assert response.json()["delivered"] == 1


class TestLifecycleAPI:
    def test_mark_read(self, client):
        nid = _delivered()
        response = client.put(f"/notifications/{nid}/read", params={"user_id": "u1"})
        assert response.status_code == 200
        assert response.json()["status"] == NotificationStatus.READ.value
        assert response.json()["readAt"] is not None

    def test_mark_read_of_foreign_notification_returns_404(self, client):
        nid = _delivered(user_id="u2")
        response = client.put(f"/notifications/{nid}/read", params={"user_id": "u1"})
        assert response.status_code == 404

    def test_acknowledge(self, client):
        nid = _delivered()
        response = client.put(f"/notifications/{nid}/acknowledge", params={"user_id": "u1"})
        assert response.json()["status"] == NotificationStatus.ACKNOWLEDGED.value

    def test_read_all(self, client):
        _delivered()
        _delivered()
        response = client.put("/notifications/read-all", params={"tenant_id": TENANT, "user_id": "u1"})
        assert response.json() == {"count": 2}

    def test_delete(self, client):
        nid = _delivered()
        response = client.delete(f"/notifications/{nid}", params={"user_id": "u1"})
        assert response.status_code == 200
        assert current_domain.repository_for(Notification).find_owned(nid, "u1") is None

    def test_cancel_delivered_returns_400(self, client):
        nid = _delivered()
        response = client.post(f"/notifications/{nid}/cancel", json={"reason": "Too late"})
        assert response.status_code == 400
        assert _stored(nid).status == NotificationStatus.DELIVERED.value


class TestMaintenanceAPI:
    def test_expire(self, client):
        n = Notification.create(
            tenant_id=TENANT,
            user_id="u1",
            notification_type="system.alert",
            channel="in_app",
            title="Shift change",
            message="Shift change at 14:00",
            expires_at=datetime.now(UTC) - timedelta(minutes=1),
        )
        current_domain.repository_for(Notification).add(n)

        response = client.post("/notifications/maintenance/expire", params={"tenant_id": TENANT})

        assert response.json() == {"count": 1}
        assert _stored(n.id).status == NotificationStatus.EXPIRED.value

    def test_retry_with_nothing_failed(self, client):
        response = client.post("/notifications/maintenance/retry", params={"tenant_id": TENANT})
        assert response.status_code == 200
        assert response.json()["total_count"] == 0

    def test_failed_listing(self, client):
        n = Notification.create(
            tenant_id=TENANT,
            user_id="u1",
            notification_type="order.created",
            channel="email",
            title="New Order",
            message="Created",
        )
        n.mark_failed("Email service not configured")
        current_domain.repository_for(Notification).add(n)

        response = client.get("/notifications/failed", params={"tenant_id": TENANT})

        assert response.json()["count"] == 1
        assert response.json()["notifications"][0]["last_error"] == "Email service not configured"


# ---------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------
class TestPreferencesAPI:
    def test_defaults_then_get(self, client):
        seeded = client.post("/notifications/preferences/u1/defaults", params={"tenant_id": TENANT})
        assert seeded.json()["count"] > 0

        response = client.get("/notifications/preferences/u1", params={"tenant_id": TENANT})
        assert response.status_code == 200
        assert len(response.json()["preferences"]) == seeded.json()["count"]

    def test_bulk_update(self, client):
        response = client.put(
            "/notifications/preferences/u1",
            json={
                "tenant_id": TENANT,
                "preferences": [{"notification_type": "order.created", "channel": "email", "enabled": False}],
            },
        )
        assert response.status_code == 200
        [pref] = response.json()["preferences"]
        assert pref["enabled"] is False

    def test_bad_quiet_hours_returns_400(self, client):
        client.post("/notifications/preferences/u1/defaults", params={"tenant_id": TENANT})
        response = client.put(
            "/notifications/preferences/u1/channels/email",
            json={"tenant_id": TENANT, "settings": {"quiet_hours": {"start_time": "99:00", "end_time": "07:00"}}},
        )
        assert response.status_code == 400

    def test_unsubscribe_flow(self, client):
        client.post("/notifications/preferences/u1/defaults", params={"tenant_id": TENANT})
        token = client.post("/notifications/preferences/u1/unsubscribe-token", json={"channel": "email"}).json()[
            "token"
        ]

        response = client.post("/notifications/preferences/unsubscribe", json={"token": token})

        assert response.json() == {"unsubscribed": True}
        assert PreferenceStore().get_preference("u1", TENANT, "order.created", "email").enabled is False

    def test_in_app_unsubscribe_token_returns_400(self, client):
        response = client.post("/notifications/preferences/u1/unsubscribe-token", json={"channel": "in_app"})
        assert response.status_code == 400

    def test_quiet_hours(self, client):
        response = client.get("/notifications/preferences/u1/quiet-hours", params={"tenant_id": TENANT})
        assert response.json() == {"quiet_hours": None, "in_quiet_hours": False}


# ---------------------------------------------------------------
# Templates
# ---------------------------------------------------------------
class TestTemplatesAPI:
    def _create(self, client, **overrides):
        body = {
            "tenant_id": TENANT,
            "code": "order.summary",
            "name": "Order Summary",
            "notification_type": "order.created",
            "channel": "in_app",
            "subject": "Order {{ orderNumber }}",
            "body": "Priority {{ level }}",
            "variables": [{"name": "level", "default_value": "Medium"}],
        }
        body.update(overrides)
        return client.post("/notifications/templates", json=body)

    def test_create_get_render(self, client):
        created = self._create(client)
        assert created.status_code == 201
        template_id = created.json()["id"]

        fetched = client.get(f"/notifications/templates/{template_id}")
        assert fetched.json()["code"] == "order.summary"

        rendered = client.post(
            f"/notifications/templates/{template_id}/render", json={"data": {"orderNumber": "ORD-001"}}
        )
        assert rendered.json() == {"subject": "Order ORD-001", "body": "Priority Medium"}

    def test_duplicate_code_returns_400(self, client):
        self._create(client)
        assert self._create(client).status_code == 400

    def test_update_and_delete(self, client):
        template_id = self._create(client).json()["id"]

        updated = client.put(f"/notifications/templates/{template_id}", json={"subject": "Changed"})
        assert updated.json()["subject"] == "Changed"

        assert client.delete(f"/notifications/templates/{template_id}").status_code == 200
        assert client.get(f"/notifications/templates/{template_id}").status_code == 404

    def test_validate_and_seed(self, client):
        assert client.post("/notifications/templates/validate", json={"source": "{{ a "}).json() == {"valid": False}

        seeded = client.post("/notifications/templates/seed", params={"tenant_id": TENANT})
        assert seeded.json() == {"count": 5}

        listed = client.get("/notifications/templates", params={"tenant_id": TENANT})
        assert listed.json()["count"] == 5
