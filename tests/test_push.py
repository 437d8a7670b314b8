"""Tests for web push subscriptions, preferences and delivery."""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from src.config import get_settings
from src.models import PushDeliveryLog, PushPreference, PushSubscription
from src.models.enums import NotificationType, PushSubscriptionStatus
from src.services import push_service
from src.services.errors import ConflictError, ValidationError
from src.services.push_service import (
    PushDeliveryService,
    build_push_message,
    classify_status,
    is_quiet_hours,
)
from src.tasks.push import deliver_push

ENDPOINT = "https://push.example.com/send/abc123"


def subscribe(db, user_id, endpoint=ENDPOINT):
    return push_service.register_subscription(db, user_id, endpoint, "p256dh-key", "auth-key")


def make_message(user_id, dedupe_key="like:1", **overrides):
    message = {
        "message_id": str(uuid.uuid4()),
        "user_id": user_id,
        "type": NotificationType.LIKE_RECEIVED.value,
        "title": "New like",
        "body": "someone liked your day",
        "dedupe_key": dedupe_key,
        "tag": dedupe_key,
        "deep_link": "/",
        "data": {},
        "ttl_seconds": 3600,
    }
    message.update(overrides)
    return message


class FakeNotification:
    def __init__(self, body="body", payload=None):
        self.id = 42
        self.user_id = 1
        self.type = NotificationType.LIKE_RECEIVED.value
        self.title = "New like"
        self.body = body
        self.payload = payload


class TestClassifyStatus:
    @pytest.mark.parametrize(
        "status_code,expected",
        [
            (201, ("success", False)),
            (404, ("subscription_gone", False)),
            (410, ("subscription_gone", False)),
            (429, ("rate_limited", True)),
            (503, ("server_error_503", True)),
            (400, ("client_error_400", False)),
        ],
    )
    def test_classification(self, status_code, expected):
        assert classify_status(status_code) == expected


class TestQuietHours:
    def prefs(self, start, end, enabled=True):
        return PushPreference(
            quiet_hours_enabled=enabled, quiet_start=start, quiet_end=end, timezone="UTC"
        )

    def test_same_day_window(self):
        prefs = self.prefs("13:00", "15:00")
        assert is_quiet_hours(prefs, datetime(2024, 1, 1, 14, 0, tzinfo=UTC))
        assert not is_quiet_hours(prefs, datetime(2024, 1, 1, 15, 0, tzinfo=UTC))

    def test_overnight_window(self):
        prefs = self.prefs("23:00", "07:00")
        assert is_quiet_hours(prefs, datetime(2024, 1, 1, 23, 30, tzinfo=UTC))
        assert is_quiet_hours(prefs, datetime(2024, 1, 1, 6, 59, tzinfo=UTC))
        assert not is_quiet_hours(prefs, datetime(2024, 1, 1, 12, 0, tzinfo=UTC))

    def test_uses_user_timezone(self):
        prefs = self.prefs("23:00", "07:00")
        prefs.timezone = "Asia/Kolkata"
        # 18:00 UTC is 23:30 in Kolkata
        assert is_quiet_hours(prefs, datetime(2024, 1, 1, 18, 0, tzinfo=UTC))

    def test_disabled(self):
        prefs = self.prefs("00:00", "23:59", enabled=False)
        assert not is_quiet_hours(prefs, datetime(2024, 1, 1, 12, 0, tzinfo=UTC))


class TestSubscriptions:
    def test_register_via_api(self, client, auth_headers):
        response = client.post(
            "/api/v1/push/subscriptions",
            headers=auth_headers,
            json={
                "endpoint": ENDPOINT,
                "keys": {"p256dh": "p256dh-key", "auth": "auth-key"},
                "browser": "firefox",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "active"
        assert data["browser"] == "firefox"

    def test_reregister_refreshes(self, db, auth_headers):
        first = subscribe(db, auth_headers.user_id)
        first.status = PushSubscriptionStatus.EXPIRED
        first.failure_count = 3
        db.commit()

        second = subscribe(db, auth_headers.user_id)

        assert second.id == first.id
        assert second.status == PushSubscriptionStatus.ACTIVE
        assert second.failure_count == 0

    def test_endpoint_owned_by_other_user(self, db, auth_headers, other_headers):
        subscribe(db, auth_headers.user_id)
        with pytest.raises(ConflictError):
            subscribe(db, other_headers.user_id)

    def test_rejects_plain_http(self, db, auth_headers):
        with pytest.raises(ValidationError):
            subscribe(db, auth_headers.user_id, endpoint="http://push.example.com/abc")

    def test_unregister(self, client, db, auth_headers):
        subscribe(db, auth_headers.user_id)

        response = client.request(
            "DELETE", "/api/v1/push/subscriptions", headers=auth_headers, json={"endpoint": ENDPOINT}
        )
        assert response.status_code == 204

        subscription = db.query(PushSubscription).one()
        db.refresh(subscription)
        assert subscription.status == PushSubscriptionStatus.EXPIRED

    def test_unregister_unknown(self, client, auth_headers):
        response = client.request(
            "DELETE", "/api/v1/push/subscriptions", headers=auth_headers, json={"endpoint": ENDPOINT}
        )
        assert response.status_code == 404


class TestPreferences:
    def test_defaults(self, client, auth_headers):
        response = client.get("/api/v1/push/preferences", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["push_enabled"] is True
        assert data["types"] == {}
        assert data["quiet_hours_enabled"] is False

    def test_partial_update_merges_types(self, client, auth_headers):
        client.put(
            "/api/v1/push/preferences",
            headers=auth_headers,
            json={"types": {"like_received": False}},
        )
        response = client.put(
            "/api/v1/push/preferences",
            headers=auth_headers,
            json={"types": {"new_follower": False}},
        )
        assert response.status_code == 200
        assert response.json()["types"] == {"like_received": False, "new_follower": False}

    def test_unknown_type(self, client, auth_headers):
        response = client.put(
            "/api/v1/push/preferences", headers=auth_headers, json={"types": {"bogus": True}}
        )
        assert response.status_code == 400

    def test_bad_time_format(self, client, auth_headers):
        response = client.put(
            "/api/v1/push/preferences", headers=auth_headers, json={"quiet_start": "25:00"}
        )
        assert response.status_code == 400

    def test_quiet_hours_need_both_ends(self, client, auth_headers):
        response = client.put(
            "/api/v1/push/preferences",
            headers=auth_headers,
            json={"quiet_hours_enabled": True, "quiet_start": "22:00"},
        )
        assert response.status_code == 400

    def test_unknown_timezone(self, client, auth_headers):
        response = client.put(
            "/api/v1/push/preferences", headers=auth_headers, json={"timezone": "Mars/Base"}
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("field", ["timezone", "push_enabled", "quiet_hours_enabled"])
    def test_null_for_required_field(self, client, auth_headers, field):
        response = client.put(
            "/api/v1/push/preferences", headers=auth_headers, json={field: None}
        )
        assert response.status_code == 400

        # Stored preferences are untouched
        response = client.get("/api/v1/push/preferences", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["push_enabled"] is True

    def test_vapid_public_key(self, client):
        response = client.get("/api/v1/push/vapid-public-key")
        assert response.status_code == 200
        assert response.json()["key_id"] == "v1"


class TestBuildMessage:
    def test_truncates_long_body(self):
        message = build_push_message(FakeNotification(body="x" * 250), "k")
        assert len(message["body"]) == 200
        assert message["body"].endswith("...")

    def test_relative_deep_link_only(self):
        assert build_push_message(FakeNotification(), "k", "/stories")["deep_link"] == "/stories"
        assert build_push_message(FakeNotification(), "k", "https://evil.test")["deep_link"] == "/"
        assert build_push_message(FakeNotification(), "k")["deep_link"] == "/"

    def test_oversized_payload_drops_data(self):
        message = build_push_message(FakeNotification(payload={"blob": "y" * 5000}), "k")
        assert message["data"] == {}

    def test_data_carries_notification_id(self):
        message = build_push_message(FakeNotification(payload={"date": "2024-01-01"}), "k")
        assert message["data"] == {"notification_id": 42, "date": "2024-01-01"}
        assert message["tag"] == "k"

    def test_publish_disabled_without_vapid(self):
        assert push_service.publish_push(FakeNotification(), "k") is None


class TestDeliver:
    def deliver(self, db, message, status_code=201, attempt=0):
        with patch.object(PushDeliveryService, "send", return_value=status_code) as mock_send:
            result = PushDeliveryService(db).deliver(message, attempt=attempt)
        return result, mock_send

    def test_success(self, db, auth_headers):
        subscription = subscribe(db, auth_headers.user_id)

        result, mock_send = self.deliver(db, make_message(auth_headers.user_id))

        assert result == {"status": "delivered", "sent": 1, "total": 1}
        mock_send.assert_called_once()
        db.refresh(subscription)
        assert subscription.last_success_at is not None
        log = db.query(PushDeliveryLog).one()
        assert log.status == "success"
        assert log.error is None

    def test_no_subscriptions(self, db, auth_headers):
        result, mock_send = self.deliver(db, make_message(auth_headers.user_id))
        assert result == {"status": "no_subscriptions"}
        mock_send.assert_not_called()

    def test_gone_marks_subscription(self, db, auth_headers):
        subscription = subscribe(db, auth_headers.user_id)

        result, _ = self.deliver(db, make_message(auth_headers.user_id), status_code=410)

        assert result["sent"] == 0
        assert "retry" not in result
        db.refresh(subscription)
        assert subscription.status == PushSubscriptionStatus.GONE

    def test_rate_limited_retries(self, db, auth_headers):
        subscribe(db, auth_headers.user_id)

        result, _ = self.deliver(db, make_message(auth_headers.user_id), status_code=429)

        assert result["retry"] is True
        assert db.query(PushDeliveryLog).one().status == "rate_limited"

    def test_client_errors_expire_subscription(self, db, auth_headers):
        subscription = subscribe(db, auth_headers.user_id)

        for _ in range(5):
            self.deliver(db, make_message(auth_headers.user_id, dedupe_key=None), status_code=400)

        db.refresh(subscription)
        assert subscription.failure_count == 5
        assert subscription.status == PushSubscriptionStatus.EXPIRED

    def test_retry_skips_already_delivered_subscription(self, db, auth_headers):
        subscribe(db, auth_headers.user_id)
        message = make_message(auth_headers.user_id)

        self.deliver(db, message)
        result, mock_send = self.deliver(db, message, attempt=1)

        mock_send.assert_not_called()
        assert result["sent"] == 0

    def test_dedupe_window(self, db, auth_headers):
        subscribe(db, auth_headers.user_id)

        self.deliver(db, make_message(auth_headers.user_id, dedupe_key="like:7"))
        result, mock_send = self.deliver(db, make_message(auth_headers.user_id, dedupe_key="like:7"))

        assert result == {"status": "duplicate"}
        mock_send.assert_not_called()

    def test_disabled_type(self, db, auth_headers):
        subscribe(db, auth_headers.user_id)
        push_service.update_preferences(db, auth_headers.user_id, {"types": {"like_received": False}})

        result, mock_send = self.deliver(db, make_message(auth_headers.user_id))

        assert result == {"status": "disabled"}
        mock_send.assert_not_called()

    def test_quiet_hours_defers(self, db, auth_headers):
        subscribe(db, auth_headers.user_id)
        push_service.get_or_create_preferences(db, auth_headers.user_id)

        with patch("src.services.push_service.is_quiet_hours", return_value=True):
            deferred, _ = self.deliver(db, make_message(auth_headers.user_id))
            abandoned, mock_send = self.deliver(db, make_message(auth_headers.user_id), attempt=4)

        assert deferred["status"] == "quiet_hours"
        assert deferred["retry"] is True
        assert abandoned == {"status": "abandoned"}
        mock_send.assert_not_called()

    def test_network_error_is_logged(self, db, auth_headers):
        subscription = subscribe(db, auth_headers.user_id)

        with patch.object(PushDeliveryService, "send", side_effect=ConnectionError("boom")):
            result = PushDeliveryService(db).deliver(make_message(auth_headers.user_id))

        assert result["retry"] is True
        log = db.query(PushDeliveryLog).one()
        assert log.status == "network_error"
        assert log.error == "boom"
        db.refresh(subscription)
        assert subscription.failure_count == 1

    def test_worker_retry_bound_matches_quiet_hours(self, db, auth_headers):
        subscribe(db, auth_headers.user_id)
        push_service.get_or_create_preferences(db, auth_headers.user_id)
        last_attempt = deliver_push.max_retries

        with patch("src.services.push_service.is_quiet_hours", return_value=True):
            before_last, _ = self.deliver(
                db, make_message(auth_headers.user_id), attempt=last_attempt - 1
            )
            last, _ = self.deliver(db, make_message(auth_headers.user_id), attempt=last_attempt)

        assert last_attempt + 1 == get_settings().push_max_deliveries
        assert before_last["retry"] is True
        assert last == {"status": "abandoned"}


class TestCleanup:
    def test_cleanup(self, db, auth_headers):
        now = datetime.now(UTC)
        stale = subscribe(db, auth_headers.user_id, endpoint="https://push.example.com/stale")
        fresh = subscribe(db, auth_headers.user_id, endpoint="https://push.example.com/fresh")
        gone = subscribe(db, auth_headers.user_id, endpoint="https://push.example.com/gone")

        stale.created_at = now - timedelta(days=120)
        gone.status = PushSubscriptionStatus.GONE
        gone.updated_at = now - timedelta(days=10)
        db.add(
            PushDeliveryLog(
                message_id="old",
                subscription_id=fresh.id,
                user_id=auth_headers.user_id,
                type="like_received",
                status="success",
                created_at=now - timedelta(days=40),
            )
        )
        db.commit()

        stats = push_service.cleanup(db)

        assert stats == {"stale_expired": 1, "gone_deleted": 1, "logs_deleted": 1}
        db.expire_all()
        statuses = dict(db.query(PushSubscription.endpoint, PushSubscription.status).all())
        assert statuses == {
            "https://push.example.com/stale": PushSubscriptionStatus.EXPIRED,
            "https://push.example.com/fresh": PushSubscriptionStatus.ACTIVE,
        }
