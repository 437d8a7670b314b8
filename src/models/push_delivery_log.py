"""Audit trail of web push delivery attempts."""

from sqlalchemy import Column, DateTime, Index, Integer, String, UniqueConstraint, func

from src.database import Base


class PushDeliveryLog(Base):
    """One delivery attempt of a push message to one subscription."""

    __tablename__ = "push_delivery_logs"
    __table_args__ = (
        UniqueConstraint("message_id", "subscription_id", name="uq_push_message_subscription"),
        Index("ix_push_logs_dedupe", "user_id", "dedupe_key", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(String(64), nullable=False)
    subscription_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(String(50), nullable=False)
    dedupe_key = Column(String(255), nullable=True)
    status = Column(String(50), nullable=False)  # success, subscription_gone, rate_limited, ...
    status_code = Column(Integer, nullable=False, default=0)
    error = Column(String(500), nullable=True)
    duration_ms = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
