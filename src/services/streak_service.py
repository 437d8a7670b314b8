"""Daily streaks and the badges they unlock."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.orm import Session

from src.database import insert_ignore
from src.models import Streak, User, UserBadge
from src.services.dates import today

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Badge:
    """A streak badge definition."""

    key: str
    name: str
    icon: str
    color: str
    threshold: int


# Ordered by threshold (ascending)
BADGES = [
    Badge("first_step", "First Step", "Footprints", "#22c55e", 1),
    Badge("spark_starter", "Spark Starter", "Zap", "#3b82f6", 7),
    Badge("flame_keeper", "Flame Keeper", "Flame", "#f97316", 15),
    Badge("iron_will", "Iron Will", "Shield", "#64748b", 30),
    Badge("diamond_mind", "Diamond Mind", "Gem", "#06b6d4", 90),
    Badge("titan", "Titan", "Crown", "#a855f7", 120),
    Badge("legendary", "Legendary", "Star", "#eab308", 360),
]
BADGES_BY_KEY = {badge.key: badge for badge in BADGES}


def eligible_badges(longest_streak: int) -> list[Badge]:
    return [badge for badge in BADGES if longest_streak >= badge.threshold]


def next_badge(longest_streak: int) -> Badge | None:
    """The next badge to earn, or None once all are earned."""
    for badge in BADGES:
        if longest_streak < badge.threshold:
            return badge
    return None


class StreakService:
    """Service for streak bookkeeping."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_for_date(self, user_id: int, day: date) -> Streak | None:
        return (
            self.db.query(Streak)
            .filter(Streak.user_id == user_id, Streak.activity_date == day)
            .first()
        )

    def get_latest(self, user_id: int) -> Streak | None:
        return (
            self.db.query(Streak)
            .filter(Streak.user_id == user_id)
            .order_by(Streak.activity_date.desc())
            .first()
        )

    def add_streak(self, user_id: int, day: date, is_cron: bool = False) -> Streak | None:
        """Record activity (or, from the daily job, the start of a new day) for a user.

        The daily job seeds each day with current=0, carrying the longest streak
        forward. Logging activity for today then turns that row into
        yesterday's current + 1. Past dates are ignored outside the daily job.

        Returns:
            The row written, or None if nothing changed
        """
        if day < today() and not is_cron:
            return None

        latest = self.get_latest(user_id)

        if is_cron:
            inserted = insert_ignore(
                self.db,
                Streak,
                {
                    "user_id": user_id,
                    "current": 0,
                    "longest": latest.longest if latest else 0,
                    "activity_date": day,
                },
                index_elements=["user_id", "activity_date"],
            )
            self.db.commit()
            return self.get_for_date(user_id, day) if inserted else None

        row = self.get_for_date(user_id, day)
        if row is not None and row.current > 0:
            return None  # Already counted today

        previous = self.get_for_date(user_id, day - timedelta(days=1))
        current = (previous.current if previous else 0) + 1
        longest = max(latest.longest if latest else 0, current)

        if row is None:
            row = Streak(user_id=user_id, activity_date=day)
            self.db.add(row)
        row.current = current
        row.longest = longest
        self.db.commit()
        self.db.refresh(row)

        logger.info(f"Streak for user {user_id} on {day}: current={current} longest={longest}")
        self._award_badges(user_id, longest)
        return row

    def _award_badges(self, user_id: int, longest: int) -> list[Badge]:
        from src.services.notification_service import NotificationService

        awarded = BadgeService(self.db).check_and_award(user_id, longest)
        if awarded:
            notifications = NotificationService(self.db)
            for badge in awarded:
                notifications.notify_streak_milestone(user_id, badge.threshold)
                notifications.notify_badge_unlocked(
                    user_id, badge.key, badge.name, badge.icon, badge.threshold
                )
        return awarded

    def find_users_missed(self, day: date) -> list[User]:
        """Users whose streak row for day shows no activity."""
        return (
            self.db.query(User)
            .join(Streak, Streak.user_id == User.id)
            .filter(Streak.activity_date == day, Streak.current == 0)
            .all()
        )


class BadgeService:
    """Service for awarding and listing badges."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def check_and_award(self, user_id: int, longest_streak: int) -> list[Badge]:
        """Award every badge the longest streak qualifies for. Returns the new ones."""
        awarded = []
        for badge in eligible_badges(longest_streak):
            inserted = insert_ignore(
                self.db,
                UserBadge,
                {"user_id": user_id, "badge_key": badge.key},
                index_elements=["user_id", "badge_key"],
            )
            if inserted:
                awarded.append(badge)
        self.db.commit()

        if awarded:
            logger.info(f"User {user_id} earned badges {[b.key for b in awarded]}")
        return awarded

    def list_for_user(self, user_id: int) -> list[dict]:
        """Earned badges with their definitions, in threshold order."""
        earned = {
            row.badge_key: row.earned_at
            for row in self.db.query(UserBadge).filter(UserBadge.user_id == user_id).all()
        }
        return [
            {
                "key": badge.key,
                "name": badge.name,
                "icon": badge.icon,
                "color": badge.color,
                "threshold": badge.threshold,
                "earned_at": earned[badge.key].date().isoformat(),
            }
            for badge in BADGES
            if badge.key in earned
        ]
