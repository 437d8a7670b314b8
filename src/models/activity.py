"""Activity model."""

from sqlalchemy import Column, Date, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class Activity(Base, TimestampMixin):
    """Hours a user spent on one activity tile on one day."""

    __tablename__ = "activities"
    __table_args__ = (
        UniqueConstraint("user_id", "name", "activity_date", name="uq_activity_user_name_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)  # predefined name or custom:<uuid>
    duration_hours = Column(Float, nullable=False, default=0)
    note = Column(String(500), nullable=True)
    activity_date = Column(Date, nullable=False, index=True)

    # Relationships
    user = relationship("User", backref="activities")
