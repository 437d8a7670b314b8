"""Tests for in-app notifications."""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from src.models import Notification, NotificationDedupe
from src.models.enums import NotificationType
from src.services.notification_service import NotificationService


def create(db, user_id, title="Hello", **kwargs):
    return NotificationService(db).create(
        user_id=user_id,
        notification_type=kwargs.pop("notification_type", NotificationType.SYSTEM_ANNOUNCEMENT),
        title=title,
        body=f"{title} body",
        **kwargs,
    )


class TestCreate:
    """Tests for NotificationService.create."""

    def test_creates_and_publishes(self, db, auth_headers, mock_redis):
        notification = create(db, auth_headers.user_id, metadata={"key": "value"})

        assert notification.id is not None
        assert notification.payload == {"key": "value"}

        channel, message = mock_redis.publish.call_args.args
        assert channel == f"notif:channel:{auth_headers.user_id}"
        assert json.loads(message)["title"] == "Hello"
        mock_redis.delete.assert_any_call(f"notif:unread:{auth_headers.user_id}")

    def test_queues_when_nobody_listening(self, db, auth_headers, mock_redis):
        mock_redis.publish.return_value = 0

        create(db, auth_headers.user_id)

        pending_key = f"notif:pending:{auth_headers.user_id}"
        assert mock_redis.rpush.call_args.args[0] == pending_key
        mock_redis.expire.assert_called_with(pending_key, 24 * 60 * 60)

    def test_dedupe_skips_second_notification(self, db, auth_headers, other_headers):
        first = create(
            db, auth_headers.user_id, actor_id=other_headers.user_id, dedupe=("thing", "1")
        )
        second = create(
            db, auth_headers.user_id, actor_id=other_headers.user_id, dedupe=("thing", "1")
        )

        assert first is not None
        assert second is None
        assert db.query(Notification).count() == 1
        assert db.query(NotificationDedupe).count() == 1

    def test_dedupe_is_per_actor(self, db, auth_headers, other_headers, make_user):
        third = make_user("third")

        create(db, auth_headers.user_id, actor_id=other_headers.user_id, dedupe=("thing", "1"))
        create(db, auth_headers.user_id, actor_id=third.user_id, dedupe=("thing", "1"))

        assert db.query(Notification).count() == 2

    def test_system_notifications_dedupe(self, db, auth_headers):
        create(db, auth_headers.user_id, dedupe=("announcement", "launch"))
        create(db, auth_headers.user_id, dedupe=("announcement", "launch"))

        assert db.query(Notification).count() == 1

    def test_hands_off_to_push(self, db, auth_headers):
        with patch("src.services.push_service.publish_push") as mock_publish:
            notification = create(db, auth_headers.user_id, deep_link="/badges")

        mock_publish.assert_called_once()
        assert mock_publish.call_args.args[0].id == notification.id
        assert mock_publish.call_args.kwargs["deep_link"] == "/badges"

    def test_day_completed_fan_out(self, db, auth_headers, other_headers, make_user):
        third = make_user("third")

        sent = NotificationService(db).notify_day_completed(
            auth_headers.user_id,
            auth_headers.username,
            None,
            datetime(2026, 10, 18).date(),
            [other_headers.user_id, third.user_id],
        )

        assert sent == 2
        assert {n.user_id for n in db.query(Notification).all()} == {
            other_headers.user_id,
            third.user_id,
        }


class TestEndpoints:
    """Tests for the notification endpoints."""

    def test_list_newest_first(self, client, db, auth_headers):
        for title in ("first", "second", "third"):
            create(db, auth_headers.user_id, title=title)

        response = client.get(
            "/api/v1/notifications", headers=auth_headers, params={"page_size": 2}
        )
        assert response.status_code == 200
        data = response.json()
        assert [n["title"] for n in data["notifications"]] == ["third", "second"]
        assert data["total"] == 3
        assert data["has_more"] is True

        response = client.get(
            "/api/v1/notifications", headers=auth_headers, params={"page": 2, "page_size": 2}
        )
        data = response.json()
        assert [n["title"] for n in data["notifications"]] == ["first"]
        assert data["has_more"] is False

    def test_list_includes_metadata(self, client, db, auth_headers):
        create(db, auth_headers.user_id, metadata={"badge_key": "titan"})

        response = client.get("/api/v1/notifications", headers=auth_headers)
        assert response.json()["notifications"][0]["metadata"] == {"badge_key": "titan"}

    def test_page_size_limit(self, client, auth_headers):
        response = client.get(
            "/api/v1/notifications", headers=auth_headers, params={"page_size": 51}
        )
        assert response.status_code == 422

    def test_unread_count_and_mark_read(self, client, db, auth_headers):
        first = create(db, auth_headers.user_id)
        create(db, auth_headers.user_id)

        response = client.get("/api/v1/notifications/unread-count", headers=auth_headers)
        assert response.json() == {"unread_count": 2}

        response = client.patch(f"/api/v1/notifications/{first.id}/read", headers=auth_headers)
        assert response.status_code == 204

        response = client.get("/api/v1/notifications/unread-count", headers=auth_headers)
        assert response.json() == {"unread_count": 1}

    def test_unread_count_cached(self, client, auth_headers, mock_redis):
        mock_redis.get.return_value = "7"

        response = client.get("/api/v1/notifications/unread-count", headers=auth_headers)
        assert response.json() == {"unread_count": 7}

    def test_mark_all_read(self, client, db, auth_headers):
        create(db, auth_headers.user_id)
        create(db, auth_headers.user_id)

        response = client.patch("/api/v1/notifications/read-all", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"updated": 2}

        db.expire_all()
        assert all(n.is_read and n.read_at for n in db.query(Notification).all())

    def test_cannot_touch_other_users_notification(
        self, client, db, auth_headers, other_headers
    ):
        notification = create(db, other_headers.user_id)

        response = client.patch(
            f"/api/v1/notifications/{notification.id}/read", headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["code"] == "NOTIFICATION_NOT_FOUND"

        response = client.delete(f"/api/v1/notifications/{notification.id}", headers=auth_headers)
        assert response.status_code == 404

    def test_delete(self, client, db, auth_headers):
        notification = create(db, auth_headers.user_id)

        response = client.delete(f"/api/v1/notifications/{notification.id}", headers=auth_headers)
        assert response.status_code == 204
        assert db.query(Notification).count() == 0


class TestCleanup:
    def test_retention(self, db, auth_headers):
        now = datetime.now(UTC)
        rows = [
            Notification(is_read=True, created_at=now - timedelta(days=31)),
            Notification(is_read=True, created_at=now - timedelta(days=10)),
            Notification(is_read=False, created_at=now - timedelta(days=60)),
            Notification(is_read=False, created_at=now - timedelta(days=91)),
        ]
        for row in rows:
            row.user_id = auth_headers.user_id
            row.type = NotificationType.SYSTEM_ANNOUNCEMENT.value
            row.title = "t"
            row.body = "b"
            row.payload = {}
            db.add(row)
        db.commit()

        assert NotificationService(db).cleanup_old() == 2
        assert db.query(Notification).count() == 2
