"""Streak and badge models."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from src.database import Base
from src.models.mixins import TimestampMixin


class Streak(Base, TimestampMixin):
    """Per-day streak snapshot. current=0 marks a day the streak was broken."""

    __tablename__ = "streaks"
    __table_args__ = (UniqueConstraint("user_id", "activity_date", name="uq_streak_user_date"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    current = Column(Integer, nullable=False, default=0)
    longest = Column(Integer, nullable=False, default=0)
    activity_date = Column(Date, nullable=False, index=True)


class UserBadge(Base):
    """A streak badge earned by a user."""

    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_key", name="uq_user_badge"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    badge_key = Column(String(50), nullable=False)
    earned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
