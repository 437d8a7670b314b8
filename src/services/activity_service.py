"""Activity logging, day totals and weekly analytics."""

import logging
import re
from collections import defaultdict
from datetime import date, timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.models import Activity, User
from src.models.enums import ActivityName
from src.services.auth import get_user_by_username
from src.services.errors import NotFoundError, PrivateAccountError, ValidationError
from src.services.follow_service import FollowService
from src.services.notification_service import NotificationService
from src.services.privacy import can_view_profile
from src.services.streak_service import StreakService

logger = logging.getLogger(__name__)

MAX_DAILY_HOURS = 24.0
MAX_NOTE_LENGTH = 500
MAX_RANGE_DAYS = 93
CUSTOM_TILE_PREFIX = "custom:"

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
PREDEFINED_NAMES = {name.value for name in ActivityName}
DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def is_valid_activity_name(name: str) -> bool:
    """A predefined tile name, or custom:<uuid>."""
    if name in PREDEFINED_NAMES:
        return True
    if name.startswith(CUSTOM_TILE_PREFIX):
        return bool(UUID_PATTERN.match(name[len(CUSTOM_TILE_PREFIX) :]))
    return False


def _percentage_change(current: float, baseline: float) -> float:
    if baseline > 0:
        return round((current - baseline) / baseline * 100, 2)
    return 100.0 if current > 0 else 0.0


class ActivityService:
    """Service for activity hours."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _resolve_visible_user(self, viewer_id: int, username: str) -> User:
        user = get_user_by_username(self.db, username)
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        if not can_view_profile(self.db, user, viewer_id):
            raise PrivateAccountError()
        return user

    def create_or_update(
        self, user: User, name: str, hours: float, day: date, note: str | None = None
    ) -> Activity:
        """Set the hours for one activity on one day.

        The day's total across activities may not exceed 24 hours. Crossing the
        24 hour mark notifies followers, and every update feeds the streak.
        """
        if not is_valid_activity_name(name):
            raise ValidationError("Invalid activity name", code="INVALID_ACTIVITY")
        if hours < 0 or hours > MAX_DAILY_HOURS:
            raise ValidationError("Hours must be between 0 and 24", code="INVALID_ACTIVITY")
        if note is not None and len(note) > MAX_NOTE_LENGTH:
            raise ValidationError("Note must be at most 500 characters", code="INVALID_ACTIVITY")

        day_activities = (
            self.db.query(Activity)
            .filter(Activity.user_id == user.id, Activity.activity_date == day)
            .all()
        )
        previous_total = sum(a.duration_hours for a in day_activities)
        existing = next((a for a in day_activities if a.name == name), None)

        new_total = previous_total - (existing.duration_hours if existing else 0) + hours
        if new_total > MAX_DAILY_HOURS:
            raise ValidationError(
                "total hours cannot be more than 24", code="HOURS_EXCEEDED"
            )

        if existing is None:
            existing = Activity(user_id=user.id, name=name, activity_date=day)
            self.db.add(existing)
        existing.duration_hours = hours
        existing.note = note
        self.db.commit()
        self.db.refresh(existing)

        logger.debug(
            f"Activity hours for user {user.id} on {day}: {previous_total} -> {new_total}"
        )

        if previous_total < MAX_DAILY_HOURS <= new_total:
            self._notify_day_completed(user, day)

        StreakService(self.db).add_streak(user.id, day)
        return existing

    def _notify_day_completed(self, user: User, day: date) -> None:
        follower_ids = FollowService(self.db).get_active_follower_ids(user.id)
        if not follower_ids:
            logger.debug(f"No followers to notify for day completion of user {user.id}")
            return
        NotificationService(self.db).notify_day_completed(
            user.id, user.username, user.profile_pic, day, follower_ids
        )

    def get_activities(
        self, viewer_id: int, username: str, start: date, end: date
    ) -> list[dict[str, Any]]:
        """Activities of a visible user in a date range. Notes are shown to the owner only."""
        if start > end:
            raise ValidationError("Start date must be before end date", code="INVALID_DATE_RANGE")
        user = self._resolve_visible_user(viewer_id, username)

        activities = (
            self.db.query(Activity)
            .filter(
                Activity.user_id == user.id,
                Activity.activity_date >= start,
                Activity.activity_date <= end,
            )
            .order_by(Activity.activity_date, Activity.name)
            .all()
        )
        is_owner = user.id == viewer_id
        return [
            {
                "id": a.id,
                "name": a.name,
                "hours": a.duration_hours,
                "date": a.activity_date,
                "note": a.note if is_owner else None,
            }
            for a in activities
        ]

    def daily_totals(
        self, viewer_id: int, username: str, start: date, end: date
    ) -> list[dict[str, Any]]:
        """Total hours per day for a visible user, for ranges of at most 93 days."""
        if start > end:
            raise ValidationError("Start date must be before end date", code="INVALID_DATE_RANGE")
        if (end - start).days + 1 > MAX_RANGE_DAYS:
            raise ValidationError(
                f"Date range cannot exceed {MAX_RANGE_DAYS} days", code="INVALID_DATE_RANGE"
            )
        user = self._resolve_visible_user(viewer_id, username)

        rows = (
            self.db.query(Activity.activity_date, func.sum(Activity.duration_hours))
            .filter(
                Activity.user_id == user.id,
                Activity.activity_date >= start,
                Activity.activity_date <= end,
            )
            .group_by(Activity.activity_date)
            .order_by(Activity.activity_date)
            .all()
        )
        return [{"date": day, "total_hours": float(total or 0)} for day, total in rows]

    def _week_activities(self, user_id: int, start: date) -> list[Activity]:
        return (
            self.db.query(Activity)
            .filter(
                Activity.user_id == user_id,
                Activity.activity_date >= start,
                Activity.activity_date <= start + timedelta(days=6),
            )
            .all()
        )

    def week_analytics(self, user: User, week_start: date, current_day: date) -> dict[str, Any]:
        """Totals, per-day breakdown and per-activity summary for a Monday-based week."""
        if week_start.weekday() != 0:
            raise ValidationError("Week must start on a Monday", code="INVALID_DATE")

        this_week = self._week_activities(user.id, week_start)
        prev_week = self._week_activities(user.id, week_start - timedelta(days=7))

        current_week_start = current_day - timedelta(days=current_day.weekday())
        is_current_week = week_start == current_week_start

        total_this_week = sum(a.duration_hours for a in this_week)
        total_prev_week = sum(a.duration_hours for a in prev_week)
        total_current_week = 0.0
        if not is_current_week:
            total_current_week = sum(
                a.duration_hours for a in self._week_activities(user.id, current_week_start)
            )

        by_date: dict[date, list[Activity]] = defaultdict(list)
        for activity in this_week:
            by_date[activity.activity_date].append(activity)

        daily_breakdown = []
        for offset, day_name in enumerate(DAY_NAMES):
            day = week_start + timedelta(days=offset)
            day_activities = sorted(
                (a for a in by_date.get(day, []) if a.duration_hours > 0),
                key=lambda a: a.duration_hours,
                reverse=True,
            )
            daily_breakdown.append(
                {
                    "date": day,
                    "day_name": day_name,
                    "total_hours": sum(a.duration_hours for a in day_activities),
                    "activities": [
                        {"name": a.name, "hours": a.duration_hours} for a in day_activities
                    ],
                }
            )

        totals: dict[str, float] = defaultdict(float)
        for activity in this_week:
            totals[activity.name] += activity.duration_hours
        activity_summary = sorted(
            ({"name": name, "total_hours": hours} for name, hours in totals.items() if hours > 0),
            key=lambda item: item["total_hours"],
            reverse=True,
        )

        latest = StreakService(self.db).get_latest(user.id)
        return {
            "total_hours_this_week": total_this_week,
            "total_hours_prev_week": total_prev_week,
            "total_hours_current_week": total_current_week,
            "percentage_change": _percentage_change(total_this_week, total_prev_week),
            "percentage_vs_current": (
                0.0
                if is_current_week
                else _percentage_change(total_this_week, total_current_week)
            ),
            "is_current_week": is_current_week,
            "streak": {
                "current": latest.current if latest else 0,
                "longest": latest.longest if latest else 0,
            },
            "daily_breakdown": daily_breakdown,
            "activity_summary": activity_summary,
        }
