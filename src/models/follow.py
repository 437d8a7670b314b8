"""Follow graph models.

Every edge is written twice, once keyed by follower and once keyed by followee,
so both "who does X follow" and "who follows X" are primary-key range scans.
"""

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer

from src.database import Base
from src.models.enums import FollowState


def _state_column() -> Column:
    return Column(
        Enum(
            FollowState,
            name="followstate",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )


class FollowEdgeByFollower(Base):
    """Follow edge indexed by the user doing the following."""

    __tablename__ = "follow_edges_by_follower"
    __table_args__ = (
        Index("ix_follow_by_follower_list", "follower_id", "state", "created_at", "followee_id"),
    )

    follower_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    followee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    state = _state_column()
    created_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class FollowEdgeByFollowee(Base):
    """Follow edge indexed by the user being followed."""

    __tablename__ = "follow_edges_by_followee"
    __table_args__ = (
        Index("ix_follow_by_followee_list", "followee_id", "state", "created_at", "follower_id"),
    )

    followee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    follower_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    state = _state_column()
    created_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class FollowCounter(Base):
    """Aggregate follow counts for a user."""

    __tablename__ = "follow_counters"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    followers_count = Column(Integer, nullable=False, default=0)
    following_count = Column(Integer, nullable=False, default=0)
    pending_requests_count = Column(Integer, nullable=False, default=0)
