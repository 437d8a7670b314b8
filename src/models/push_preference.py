"""Per-user push notification preferences."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String

from src.database import Base, JSONType
from src.models.mixins import TimestampMixin


class PushPreference(Base, TimestampMixin):
    """Push switches, per-type opt-outs and quiet hours for a user."""

    __tablename__ = "push_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    push_enabled = Column(Boolean, default=True, nullable=False)
    # {"like_received": false, ...}; a missing type means enabled
    types = Column(JSONType, nullable=False, default=dict)
    quiet_hours_enabled = Column(Boolean, default=False, nullable=False)
    quiet_start = Column(String(5), nullable=True)  # HH:MM, e.g. 23:00
    quiet_end = Column(String(5), nullable=True)  # HH:MM, e.g. 07:00
    timezone = Column(String(50), nullable=False, default="Asia/Kolkata")
