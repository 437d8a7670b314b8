"""Story photo models."""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class ActivityPhoto(Base, TimestampMixin):
    """A story photo attached to one activity on one day."""

    __tablename__ = "activity_photos"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_name", "photo_date", name="uq_photo_user_activity_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    activity_name = Column(String(50), nullable=False)
    photo_date = Column(Date, nullable=False, index=True)
    photo_url = Column(String(1024), nullable=False)
    thumbnail_url = Column(String(1024), nullable=False)
    # Custom tile metadata, so stories render without the owner's tile config
    activity_icon = Column(String(50), nullable=True)
    activity_color = Column(String(9), nullable=True)
    activity_label = Column(String(20), nullable=True)

    # Relationships
    user = relationship("User", backref="activity_photos")


class StoryView(Base):
    """A viewer having seen a story photo."""

    __tablename__ = "story_views"
    __table_args__ = (UniqueConstraint("viewer_id", "photo_id", name="uq_story_view"),)

    id = Column(Integer, primary_key=True, index=True)
    viewer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    photo_id = Column(
        Integer, ForeignKey("activity_photos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    viewed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class StoryLike(Base):
    """A like on a story photo."""

    __tablename__ = "story_likes"
    __table_args__ = (UniqueConstraint("liker_id", "photo_id", name="uq_story_like"),)

    id = Column(Integer, primary_key=True, index=True)
    liker_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    photo_id = Column(
        Integer, ForeignKey("activity_photos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
