"""Tests for liking a user's day."""

import json

from src.models import Notification
from src.services.dates import today


def like(client, headers, username, day=None):
    return client.post(
        "/api/v1/likes",
        headers=headers,
        json={"username": username, "date": (day or today().isoformat())},
    )


class TestLikes:
    def test_like_day(self, client, db, auth_headers, other_headers):
        response = like(client, auth_headers, other_headers.username)
        assert response.status_code == 200
        assert response.json() == {"success": True, "liked": True, "new_count": 1}

        notification = db.query(Notification).filter(Notification.type == "like_received").one()
        assert notification.user_id == other_headers.user_id
        assert notification.body.startswith(f"{auth_headers.username} liked your ")

    def test_like_is_idempotent(self, client, db, auth_headers, other_headers):
        like(client, auth_headers, other_headers.username)
        response = like(client, auth_headers, other_headers.username)

        assert response.status_code == 200
        assert response.json()["new_count"] == 1
        assert db.query(Notification).count() == 1

    def test_like_notification_deduplicated_after_unlike(
        self, client, db, auth_headers, other_headers
    ):
        like(client, auth_headers, other_headers.username)
        client.request(
            "DELETE",
            "/api/v1/likes",
            headers=auth_headers,
            json={"username": other_headers.username, "date": today().isoformat()},
        )
        like(client, auth_headers, other_headers.username)

        assert db.query(Notification).filter(Notification.type == "like_received").count() == 1

    def test_self_like_does_not_notify(self, client, db, auth_headers):
        response = like(client, auth_headers, auth_headers.username)

        assert response.json()["liked"] is True
        assert db.query(Notification).count() == 0

    def test_like_notification_body_uses_display_date(self, client, db, auth_headers, other_headers):
        like(client, auth_headers, other_headers.username, "2026-01-02")

        notification = db.query(Notification).one()
        assert notification.body == f"{auth_headers.username} liked your 2 Jan, 2026 activities"

    def test_like_missing_user(self, client, auth_headers):
        response = like(client, auth_headers, "ghost")
        assert response.status_code == 404

    def test_like_private_user(self, client, auth_headers, other_headers, make_private):
        make_private(other_headers)

        response = like(client, auth_headers, other_headers.username)
        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_PRIVATE"

    def test_follower_can_like_private_user(
        self, client, auth_headers, other_headers, make_private, follow
    ):
        make_private(other_headers)
        follow(auth_headers, other_headers)
        client.post(
            f"/api/v1/me/follow-requests/{auth_headers.user_id}/accept", headers=other_headers
        )

        response = like(client, auth_headers, other_headers.username)
        assert response.status_code == 200

    def test_unlike(self, client, auth_headers, other_headers):
        like(client, auth_headers, other_headers.username)

        response = client.request(
            "DELETE",
            "/api/v1/likes",
            headers=auth_headers,
            json={"username": other_headers.username, "date": today().isoformat()},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "liked": False, "new_count": 0}

    def test_unlike_without_like(self, client, auth_headers, other_headers):
        response = client.request(
            "DELETE",
            "/api/v1/likes",
            headers=auth_headers,
            json={"username": other_headers.username, "date": today().isoformat()},
        )
        assert response.status_code == 200
        assert response.json()["liked"] is False

    def test_get_likes(self, client, auth_headers, other_headers, make_user):
        third = make_user("third")
        like(client, auth_headers, other_headers.username)
        like(client, third, other_headers.username)

        response = client.get(
            f"/api/v1/likes/{other_headers.username}/{today().isoformat()}",
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["user_has_liked"] is True
        assert {liker["username"] for liker in data["likes"]} == {"testuser", "third"}

    def test_get_likes_served_from_cache(self, client, auth_headers, other_headers, mock_redis):
        cached = [{"id": 999, "username": "cached", "profile_pic": None, "liked_at": None}]
        mock_redis.get.return_value = json.dumps(cached)

        response = client.get(
            f"/api/v1/likes/{other_headers.username}/{today().isoformat()}",
            headers=auth_headers,
        )
        assert response.json()["likes"] == cached
        assert response.json()["user_has_liked"] is False

    def test_like_invalidates_cache(self, client, auth_headers, other_headers, mock_redis):
        like(client, auth_headers, other_headers.username)

        key = f"likes:{other_headers.user_id}:{today().isoformat()}"
        deleted_keys = [call.args for call in mock_redis.delete.call_args_list]
        assert (key,) in deleted_keys
