"""Tests for activity logging, totals and weekly analytics."""

import uuid
from datetime import date, timedelta
from unittest.mock import patch

import pytest

from src.models import Notification
from src.services.activity_service import ActivityService, is_valid_activity_name
from src.services.dates import today
from src.services.errors import ValidationError


def log(client, headers, name, hours, day=None, note=None):
    return client.post(
        "/api/v1/activities",
        headers=headers,
        json={
            "name": name,
            "hours": hours,
            "date": (day or today()).isoformat(),
            "note": note,
        },
    )


class TestActivityNames:
    """Tests for activity name validation."""

    @pytest.mark.parametrize("name", ["sleep", "book_reading", "office", "entertainment"])
    def test_predefined_names(self, name):
        assert is_valid_activity_name(name)

    def test_custom_uuid_name(self):
        assert is_valid_activity_name(f"custom:{uuid.uuid4()}")

    @pytest.mark.parametrize(
        "name",
        [
            "Sleep",
            "gaming",
            "custom:",
            "custom:not-a-uuid",
            "custom:12345678123456781234567812345678",
        ],
    )
    def test_invalid_names(self, name):
        assert not is_valid_activity_name(name)


class TestCreateActivity:
    """Tests for POST /activities."""

    def test_create_activity(self, client, auth_headers):
        response = log(client, auth_headers, "sleep", 8, note="slept well")
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "sleep"
        assert data["hours"] == 8
        assert data["note"] == "slept well"

    def test_update_replaces_hours(self, client, auth_headers):
        log(client, auth_headers, "sleep", 8)
        response = log(client, auth_headers, "sleep", 6)
        assert response.status_code == 201

        response = client.get(
            f"/api/v1/activities/{auth_headers.username}",
            headers=auth_headers,
            params={"start_date": today().isoformat(), "end_date": today().isoformat()},
        )
        activities = response.json()
        assert len(activities) == 1
        assert activities[0]["hours"] == 6

    def test_invalid_activity_name(self, client, auth_headers):
        response = log(client, auth_headers, "gaming", 2)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ACTIVITY"

    def test_invalid_date(self, client, auth_headers):
        response = client.post(
            "/api/v1/activities",
            headers=auth_headers,
            json={"name": "sleep", "hours": 2, "date": "18-10-2026"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATE"

    def test_hours_out_of_range(self, client, auth_headers):
        response = log(client, auth_headers, "sleep", 25)
        assert response.status_code == 422

    def test_day_total_cannot_exceed_24(self, client, auth_headers):
        log(client, auth_headers, "sleep", 10)
        log(client, auth_headers, "office", 10)

        response = log(client, auth_headers, "workout", 5)
        assert response.status_code == 400
        assert response.json()["code"] == "HOURS_EXCEEDED"
        assert response.json()["detail"] == "total hours cannot be more than 24"

        # Nothing was written
        response = client.get(
            f"/api/v1/activities/{auth_headers.username}/daily-totals",
            headers=auth_headers,
            params={"start_date": today().isoformat(), "end_date": today().isoformat()},
        )
        assert response.json()[0]["total_hours"] == 20

    def test_updating_within_limit_counts_existing_row_once(self, client, auth_headers):
        log(client, auth_headers, "sleep", 12)
        log(client, auth_headers, "office", 12)

        response = log(client, auth_headers, "sleep", 10)
        assert response.status_code == 201

    def test_custom_tile_activity(self, client, auth_headers):
        response = log(client, auth_headers, f"custom:{uuid.uuid4()}", 1.5)
        assert response.status_code == 201


class TestDayCompletion:
    """Tests for the day completion fan-out."""

    def test_followers_notified_when_day_reaches_24(
        self, client, db, auth_headers, other_headers, follow
    ):
        follow(other_headers, auth_headers)

        log(client, auth_headers, "sleep", 12)
        log(client, auth_headers, "office", 12)

        notifications = (
            db.query(Notification)
            .filter(
                Notification.user_id == other_headers.user_id,
                Notification.type == "day_completed",
            )
            .all()
        )
        assert len(notifications) == 1
        assert notifications[0].payload["username"] == auth_headers.username

    def test_no_repeat_notification_when_already_complete(
        self, client, db, auth_headers, other_headers, follow
    ):
        follow(other_headers, auth_headers)

        log(client, auth_headers, "sleep", 12)
        log(client, auth_headers, "office", 12)
        log(client, auth_headers, "office", 11)
        log(client, auth_headers, "office", 12)

        count = db.query(Notification).filter(Notification.type == "day_completed").count()
        assert count == 1

    def test_no_followers_no_notification(self, db, auth_headers, client):
        with patch(
            "src.services.notification_service.NotificationService.notify_day_completed"
        ) as mock_notify:
            log(client, auth_headers, "sleep", 24)
        mock_notify.assert_not_called()


class TestReadActivities:
    """Tests for reading activities and totals."""

    def test_notes_hidden_from_other_users(self, client, auth_headers, other_headers):
        log(client, auth_headers, "sleep", 8, note="private thoughts")

        response = client.get(
            f"/api/v1/activities/{auth_headers.username}",
            headers=other_headers,
            params={"start_date": today().isoformat(), "end_date": today().isoformat()},
        )
        assert response.status_code == 200
        assert response.json()[0]["note"] is None

    def test_private_user_activities_forbidden(
        self, client, auth_headers, other_headers, make_private
    ):
        make_private(auth_headers)

        response = client.get(
            f"/api/v1/activities/{auth_headers.username}",
            headers=other_headers,
            params={"start_date": today().isoformat(), "end_date": today().isoformat()},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_PRIVATE"

    def test_unknown_user(self, client, auth_headers):
        response = client.get(
            "/api/v1/activities/nobody",
            headers=auth_headers,
            params={"start_date": "2026-01-01", "end_date": "2026-01-02"},
        )
        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_invalid_range(self, client, auth_headers):
        response = client.get(
            f"/api/v1/activities/{auth_headers.username}",
            headers=auth_headers,
            params={"start_date": "2026-01-10", "end_date": "2026-01-01"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATE_RANGE"

    def test_daily_totals_range_limit(self, client, auth_headers):
        response = client.get(
            f"/api/v1/activities/{auth_headers.username}/daily-totals",
            headers=auth_headers,
            params={"start_date": "2026-01-01", "end_date": "2026-04-30"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATE_RANGE"

    def test_daily_totals(self, client, auth_headers):
        log(client, auth_headers, "sleep", 8)
        log(client, auth_headers, "study", 3.5)

        response = client.get(
            f"/api/v1/activities/{auth_headers.username}/daily-totals",
            headers=auth_headers,
            params={"start_date": today().isoformat(), "end_date": today().isoformat()},
        )
        assert response.status_code == 200
        assert response.json() == [{"date": today().isoformat(), "total_hours": 11.5}]


class TestWeekAnalytics:
    """Tests for weekly analytics, exercised on the service with fixed dates."""

    @pytest.fixture
    def user(self, db, auth_headers):
        from src.models import User

        return db.query(User).filter(User.id == auth_headers.user_id).first()

    def _seed(self, db, user_id, day, name, hours):
        from src.models import Activity

        db.add(Activity(user_id=user_id, name=name, duration_hours=hours, activity_date=day))
        db.commit()

    def test_week_must_start_on_monday(self, db, user):
        with pytest.raises(ValidationError):
            ActivityService(db).week_analytics(user, date(2026, 10, 14), date(2026, 10, 18))

    def test_breakdown_and_summary(self, db, user):
        monday = date(2026, 10, 5)
        self._seed(db, user.id, monday, "sleep", 8)
        self._seed(db, user.id, monday, "study", 2)
        self._seed(db, user.id, monday + timedelta(days=2), "study", 4)
        self._seed(db, user.id, monday - timedelta(days=7), "sleep", 7)

        result = ActivityService(db).week_analytics(user, monday, date(2026, 10, 18))

        assert result["total_hours_this_week"] == 14
        assert result["total_hours_prev_week"] == 7
        assert result["percentage_change"] == 100.0
        assert result["is_current_week"] is False
        assert len(result["daily_breakdown"]) == 7
        assert result["daily_breakdown"][0]["day_name"] == "Mon"
        assert [a["name"] for a in result["daily_breakdown"][0]["activities"]] == [
            "sleep",
            "study",
        ]
        assert result["daily_breakdown"][1]["activities"] == []
        assert result["activity_summary"] == [
            {"name": "sleep", "total_hours": 8},
            {"name": "study", "total_hours": 6},
        ]

    def test_empty_previous_week_counts_as_full_increase(self, db, user):
        monday = date(2026, 10, 12)
        self._seed(db, user.id, monday, "sleep", 8)

        result = ActivityService(db).week_analytics(user, monday, date(2026, 10, 18))

        assert result["percentage_change"] == 100.0
        assert result["is_current_week"] is True
        assert result["percentage_vs_current"] == 0.0

    def test_no_hours_at_all(self, db, user):
        result = ActivityService(db).week_analytics(
            user, date(2026, 10, 12), date(2026, 10, 18)
        )
        assert result["percentage_change"] == 0.0
        assert result["streak"] == {"current": 0, "longest": 0}

    def test_week_analytics_endpoint(self, client, auth_headers):
        monday = today() - timedelta(days=today().weekday())
        log(client, auth_headers, "sleep", 8)

        response = client.get(
            "/api/v1/activities/me/week-analytics",
            headers=auth_headers,
            params={"week_start": monday.isoformat()},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_hours_this_week"] == 8
        assert data["is_current_week"] is True
        assert data["streak"]["current"] == 1
