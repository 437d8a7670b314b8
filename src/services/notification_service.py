"""Notification service: persistence, dedupe, real-time fan-out and push hand-off."""

import logging
from datetime import UTC, date, datetime, timedelta

from sqlalchemy.orm import Session

from src.database import insert_ignore
from src.models import Notification, NotificationDedupe
from src.models.enums import NotificationType
from src.services import cache
from src.services.dates import format_display_date
from src.services.errors import NotFoundError
from src.services.realtime import publish_notification

logger = logging.getLogger(__name__)

UNREAD_CACHE_PREFIX = "notif:unread:"
UNREAD_CACHE_TTL_SECONDS = 5 * 60

READ_RETENTION_DAYS = 30
UNREAD_RETENTION_DAYS = 90

# Actor id recorded on dedupe rows for system-generated notifications
SYSTEM_ACTOR_ID = 0


def notification_to_dict(notification: Notification) -> dict:
    """Serialize a notification for pub/sub and API responses."""
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "actor_id": notification.actor_id,
        "type": notification.type,
        "title": notification.title,
        "body": notification.body,
        "metadata": notification.payload or {},
        "is_read": notification.is_read,
        "read_at": notification.read_at.isoformat() if notification.read_at else None,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


def _unread_cache_key(user_id: int) -> str:
    return f"{UNREAD_CACHE_PREFIX}{user_id}"


class NotificationService:
    """Service for creating, querying and cleaning up notifications."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        body: str,
        actor_id: int | None = None,
        metadata: dict | None = None,
        dedupe: tuple[str, str] | None = None,
        push_dedupe_key: str | None = None,
        deep_link: str | None = None,
        push_ttl_seconds: int | None = None,
    ) -> Notification | None:
        """Create a notification and fan it out.

        Args:
            dedupe: Optional (entity_type, entity_key). The dedupe row is inserted in
                the same transaction; when it already exists the notification is skipped.
            push_dedupe_key: Key used by the push worker to collapse repeats
            deep_link: In-app path opened from the push notification
            push_ttl_seconds: Override for the push message TTL

        Returns:
            The stored notification, or None if it was deduplicated
        """
        if dedupe is not None:
            entity_type, entity_key = dedupe
            inserted = insert_ignore(
                self.db,
                NotificationDedupe,
                {
                    "user_id": user_id,
                    "actor_id": actor_id if actor_id is not None else SYSTEM_ACTOR_ID,
                    "type": notification_type.value,
                    "entity_type": entity_type,
                    "entity_key": entity_key,
                },
                index_elements=["user_id", "actor_id", "type", "entity_type", "entity_key"],
            )
            if not inserted:
                self.db.rollback()
                logger.debug(
                    f"Skipping duplicate {notification_type.value} notification "
                    f"for user {user_id} ({entity_type}:{entity_key})"
                )
                return None

        notification = Notification(
            user_id=user_id,
            actor_id=actor_id,
            type=notification_type.value,
            title=title,
            body=body,
            payload=metadata or {},
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)

        logger.info(
            f"Notification {notification.id} ({notification_type.value}) created for user {user_id}"
        )
        self._dispatch(notification, push_dedupe_key, deep_link, push_ttl_seconds)
        return notification

    def _dispatch(
        self,
        notification: Notification,
        push_dedupe_key: str | None,
        deep_link: str | None,
        push_ttl_seconds: int | None,
    ) -> None:
        """Invalidate caches, publish in real time and hand off to push."""
        from src.services.push_service import publish_push

        cache.delete(_unread_cache_key(notification.user_id))
        publish_notification(notification.user_id, notification_to_dict(notification))
        publish_push(
            notification,
            dedupe_key=push_dedupe_key or f"notification:{notification.id}",
            deep_link=deep_link,
            ttl_seconds=push_ttl_seconds,
        )

    # --- Queries ---

    def list_for_user(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> tuple[list[Notification], int]:
        """Get one page of a user's notifications, newest first."""
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        total = query.count()
        notifications = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return notifications, total

    def unread_count(self, user_id: int) -> int:
        """Get the number of unread notifications, cached briefly."""
        cached = cache.get_json(_unread_cache_key(user_id))
        if isinstance(cached, int):
            return cached

        count = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .count()
        )
        cache.set_json(_unread_cache_key(user_id), count, UNREAD_CACHE_TTL_SECONDS)
        return count

    def _get_owned(self, notification_id: int, user_id: int) -> Notification:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if not notification:
            raise NotFoundError("Notification not found", code="NOTIFICATION_NOT_FOUND")
        return notification

    def mark_read(self, notification_id: int, user_id: int) -> None:
        """Mark one notification as read."""
        notification = self._get_owned(notification_id, user_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
            self.db.commit()
        cache.delete(_unread_cache_key(user_id))

    def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification as read. Returns the number updated."""
        updated = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .update(
                {Notification.is_read: True, Notification.read_at: datetime.now(UTC)},
                synchronize_session=False,
            )
        )
        self.db.commit()
        cache.delete(_unread_cache_key(user_id))
        return updated

    def delete(self, notification_id: int, user_id: int) -> None:
        """Delete a notification owned by the user."""
        notification = self._get_owned(notification_id, user_id)
        self.db.delete(notification)
        self.db.commit()
        cache.delete(_unread_cache_key(user_id))

    def cleanup_old(self) -> int:
        """Delete read notifications after 30 days and unread ones after 90 days."""
        now = datetime.now(UTC)
        read_deleted = (
            self.db.query(Notification)
            .filter(
                Notification.is_read == True,  # noqa: E712
                Notification.created_at < now - timedelta(days=READ_RETENTION_DAYS),
            )
            .delete(synchronize_session=False)
        )
        unread_deleted = (
            self.db.query(Notification)
            .filter(
                Notification.is_read == False,  # noqa: E712
                Notification.created_at < now - timedelta(days=UNREAD_RETENTION_DAYS),
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        total = read_deleted + unread_deleted
        logger.info(f"Notification cleanup removed {read_deleted} read, {unread_deleted} unread")
        return total

    # --- Typed helpers ---

    def notify_like_received(
        self, recipient_id: int, liker_id: int, liker_username: str, liked_date: date
    ) -> Notification | None:
        date_str = liked_date.isoformat()
        return self.create(
            user_id=recipient_id,
            actor_id=liker_id,
            notification_type=NotificationType.LIKE_RECEIVED,
            title="New Like!",
            body=f"{liker_username} liked your {format_display_date(liked_date)} activities",
            metadata={
                "liker_id": liker_id,
                "liker_username": liker_username,
                "liked_date": date_str,
            },
            dedupe=("day_like", f"{recipient_id}:{date_str}"),
            push_dedupe_key=f"like:{recipient_id}:{date_str}",
            deep_link=f"/?date={date_str}",
        )

    def notify_follow_request(
        self, recipient_id: int, requester_id: int, requester_username: str
    ) -> Notification | None:
        return self.create(
            user_id=recipient_id,
            actor_id=requester_id,
            notification_type=NotificationType.FOLLOW_REQUEST,
            title="New Follow Request",
            body=f"{requester_username} wants to follow you",
            metadata={"requester_id": requester_id, "requester_username": requester_username},
            dedupe=("follow", f"follow_request:{requester_id}"),
            push_dedupe_key=f"follow_request:{recipient_id}:{requester_id}",
            deep_link=f"/user/{requester_username}",
        )

    def notify_follow_accepted(
        self, recipient_id: int, accepter_id: int, accepter_username: str
    ) -> Notification | None:
        return self.create(
            user_id=recipient_id,
            actor_id=accepter_id,
            notification_type=NotificationType.FOLLOW_ACCEPTED,
            title="Follow Request Accepted!",
            body=f"{accepter_username} accepted your follow request",
            metadata={"accepter_id": accepter_id, "accepter_username": accepter_username},
            push_dedupe_key=f"follow_accepted:{recipient_id}:{accepter_id}",
            deep_link=f"/user/{accepter_username}",
        )

    def notify_new_follower(
        self, recipient_id: int, follower_id: int, follower_username: str
    ) -> Notification | None:
        return self.create(
            user_id=recipient_id,
            actor_id=follower_id,
            notification_type=NotificationType.NEW_FOLLOWER,
            title="New Follower!",
            body=f"{follower_username} started following you",
            metadata={"follower_id": follower_id, "follower_username": follower_username},
            dedupe=("follow", f"new_follower:{follower_id}"),
            push_dedupe_key=f"new_follower:{recipient_id}:{follower_id}",
            deep_link=f"/user/{follower_username}",
        )

    def notify_day_completed(
        self,
        user_id: int,
        username: str,
        avatar: str | None,
        completed_date: date,
        follower_ids: list[int],
    ) -> int:
        """Tell every follower that a user logged a full 24 hours. Returns notifications sent."""
        date_str = completed_date.isoformat()
        sent = 0
        for follower_id in follower_ids:
            notification = self.create(
                user_id=follower_id,
                actor_id=user_id,
                notification_type=NotificationType.DAY_COMPLETED,
                title="Day Complete!",
                body=f"{username} logged all 24 hours on {format_display_date(completed_date)}",
                metadata={
                    "user_id": user_id,
                    "username": username,
                    "avatar": avatar,
                    "date": date_str,
                },
                dedupe=("day_completed", f"{user_id}:{date_str}"),
                push_dedupe_key=f"day_completed:{follower_id}:{user_id}:{date_str}",
                deep_link=f"/user/{username}?date={date_str}",
            )
            if notification is not None:
                sent += 1
        logger.info(f"Day completion for user {user_id} sent to {sent} followers")
        return sent

    def notify_badge_unlocked(
        self, user_id: int, badge_key: str, badge_name: str, icon: str, threshold: int
    ) -> Notification | None:
        return self.create(
            user_id=user_id,
            notification_type=NotificationType.BADGE_UNLOCKED,
            title="Badge Unlocked!",
            body=f"You earned the {badge_name} badge for a {threshold}-day streak",
            metadata={
                "badge_key": badge_key,
                "badge_name": badge_name,
                "badge_icon": icon,
                "threshold": threshold,
            },
            dedupe=("badge", badge_key),
            push_dedupe_key=f"badge:{user_id}:{badge_key}",
            deep_link="/badges",
        )

    def notify_streak_milestone(self, user_id: int, streak_count: int) -> Notification | None:
        return self.create(
            user_id=user_id,
            notification_type=NotificationType.STREAK_MILESTONE,
            title="Streak Milestone!",
            body=f"You've maintained a {streak_count}-day streak!",
            metadata={"streak_count": streak_count},
            dedupe=("streak_milestone", str(streak_count)),
            push_dedupe_key=f"streak_milestone:{user_id}:{streak_count}",
            deep_link="/",
        )

    def notify_streak_reminder(self, user_id: int, missed_date: date) -> Notification | None:
        date_str = missed_date.isoformat()
        return self.create(
            user_id=user_id,
            notification_type=NotificationType.STREAK_REMINDER,
            title="Don't Lose Your Streak!",
            body="You haven't logged today. Update now to keep your streak!",
            metadata={"missed_date": date_str},
            dedupe=("streak_reminder", date_str),
            push_dedupe_key=f"streak_reminder:{user_id}:{date_str}",
            deep_link="/",
            push_ttl_seconds=7200,
        )

    def notify_photo_uploaded(
        self, uploader_id: int, uploader_username: str, photo_date: date, follower_ids: list[int]
    ) -> int:
        """Tell followers that a user posted stories for a day. Returns notifications sent."""
        date_str = photo_date.isoformat()
        sent = 0
        for follower_id in follower_ids:
            notification = self.create(
                user_id=follower_id,
                actor_id=uploader_id,
                notification_type=NotificationType.PHOTO_UPLOADED,
                title="New Story",
                body=f"{uploader_username} shared a story",
                metadata={
                    "uploader_id": uploader_id,
                    "uploader_username": uploader_username,
                    "photo_date": date_str,
                },
                dedupe=("photo_upload", f"{uploader_id}:{date_str}"),
                push_dedupe_key=f"photo_uploaded:{follower_id}:{uploader_id}:{date_str}",
                deep_link=f"/stories/{uploader_username}/{date_str}",
            )
            if notification is not None:
                sent += 1
        return sent

    def notify_story_liked(
        self,
        owner_id: int,
        liker_id: int,
        liker_username: str,
        photo_id: int,
        activity_name: str,
    ) -> Notification | None:
        return self.create(
            user_id=owner_id,
            actor_id=liker_id,
            notification_type=NotificationType.STORY_LIKED,
            title="Story Liked",
            body=f"{liker_username} liked your story",
            metadata={
                "liker_id": liker_id,
                "liker_username": liker_username,
                "photo_id": photo_id,
                "activity_name": activity_name,
            },
            dedupe=("story_like", str(photo_id)),
            push_dedupe_key=f"story_liked:{owner_id}:{photo_id}:{liker_id}",
            deep_link=f"/stories/photo/{photo_id}",
        )
