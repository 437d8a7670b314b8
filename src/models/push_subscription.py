"""Push subscription model for web push notifications."""

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import PushSubscriptionStatus
from src.models.mixins import TimestampMixin


class PushSubscription(Base, TimestampMixin):
    """Stores web push notification subscriptions, one row per browser endpoint."""

    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    endpoint = Column(String(2048), unique=True, nullable=False)
    p256dh = Column(String(200), nullable=False)
    auth = Column(String(100), nullable=False)
    vapid_key_id = Column(String(50), nullable=True)
    status = Column(
        Enum(
            PushSubscriptionStatus,
            name="pushsubscriptionstatus",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PushSubscriptionStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    failure_count = Column(Integer, default=0, nullable=False)
    user_agent = Column(String(500), nullable=True)
    platform = Column(String(50), nullable=True)
    browser = Column(String(50), nullable=True)
    last_success_at = Column(DateTime(timezone=True), nullable=True)
    last_failure_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", backref="push_subscriptions")
