"""Day like model."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, UniqueConstraint, func

from src.database import Base


class Like(Base):
    """A like on another user's day of activities."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("liker_id", "liked_user_id", "activity_date", name="uq_like_liker_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    liker_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    liked_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    activity_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
