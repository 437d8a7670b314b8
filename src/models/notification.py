"""Notification models."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from src.database import Base, JSONType


class Notification(Base):
    """An in-app notification delivered to a user."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_created", "user_id", "created_at"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    payload = Column("metadata", JSONType, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class NotificationDedupe(Base):
    """Marker row that makes a (user, actor, type, entity) notification deliver at most once."""

    __tablename__ = "notification_dedupes"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "actor_id",
            "type",
            "entity_type",
            "entity_key",
            name="uq_notification_dedupe",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False)
    actor_id = Column(Integer, nullable=False)
    type = Column(String(50), nullable=False)
    entity_type = Column(String(50), nullable=False)
    entity_key = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
