"""Enums for model fields."""

from enum import Enum


class ActivityName(str, Enum):
    """Predefined activity tiles. Custom tiles use the "custom:<uuid>" form."""

    SLEEP = "sleep"
    STUDY = "study"
    BOOK_READING = "book_reading"
    EATING = "eating"
    FRIENDS = "friends"
    GROOMING = "grooming"
    WORKOUT = "workout"
    REELS = "reels"
    FAMILY = "family"
    IDLE = "idle"
    CREATIVE = "creative"
    TRAVELLING = "travelling"
    ERRAND = "errand"
    REST = "rest"
    ENTERTAINMENT = "entertainment"
    OFFICE = "office"


class FollowState(str, Enum):
    """State of a directed follow edge."""

    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    REMOVED = "REMOVED"


class RelationshipState(str, Enum):
    """Relationship of a viewer to another user."""

    NONE = "NONE"
    FOLLOWING = "FOLLOWING"
    REQUESTED = "REQUESTED"
    INCOMING_PENDING = "INCOMING_PENDING"
    SELF = "SELF"


class NotificationType(str, Enum):
    """Kinds of in-app notifications."""

    LIKE_RECEIVED = "like_received"
    BADGE_UNLOCKED = "badge_unlocked"
    STREAK_MILESTONE = "streak_milestone"
    STREAK_AT_RISK = "streak_at_risk"
    STREAK_REMINDER = "streak_reminder"
    SYSTEM_ANNOUNCEMENT = "system_announcement"
    FOLLOW_REQUEST = "follow_request"
    FOLLOW_ACCEPTED = "follow_accepted"
    NEW_FOLLOWER = "new_follower"
    DAY_COMPLETED = "day_completed"
    PHOTO_UPLOADED = "photo_uploaded"
    STORY_LIKED = "story_liked"


class PushSubscriptionStatus(str, Enum):
    """Lifecycle of a web push subscription."""

    ACTIVE = "active"
    GONE = "gone"
    EXPIRED = "expired"


class CronJobStatus(str, Enum):
    """Outcome of a scheduled job run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
