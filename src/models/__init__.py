"""SQLAlchemy models."""

from src.models.activity import Activity
from src.models.activity_photo import ActivityPhoto, StoryLike, StoryView
from src.models.cron_job_log import CronJobLog
from src.models.follow import FollowCounter, FollowEdgeByFollowee, FollowEdgeByFollower
from src.models.like import Like
from src.models.notification import Notification, NotificationDedupe
from src.models.push_delivery_log import PushDeliveryLog
from src.models.push_preference import PushPreference
from src.models.push_subscription import PushSubscription
from src.models.streak import Streak, UserBadge
from src.models.tile_config import TileConfig
from src.models.user import User

__all__ = [
    "User",
    "Activity",
    "Streak",
    "UserBadge",
    "TileConfig",
    "FollowEdgeByFollower",
    "FollowEdgeByFollowee",
    "FollowCounter",
    "Like",
    "Notification",
    "NotificationDedupe",
    "PushSubscription",
    "PushPreference",
    "PushDeliveryLog",
    "CronJobLog",
    "ActivityPhoto",
    "StoryView",
    "StoryLike",
]
