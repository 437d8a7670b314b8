"""Likes on a user's day of activities."""

import logging
from datetime import date

from sqlalchemy.orm import Session

from src.database import insert_ignore
from src.models import Like, User
from src.services import cache
from src.services.auth import get_user_by_username
from src.services.errors import NotFoundError, PrivateAccountError
from src.services.notification_service import NotificationService
from src.services.privacy import can_view_profile

logger = logging.getLogger(__name__)

LIKES_CACHE_PREFIX = "likes:"
LIKES_CACHE_TTL_SECONDS = 4 * 60 * 60


def _likes_cache_key(user_id: int, liked_date: date) -> str:
    return f"{LIKES_CACHE_PREFIX}{user_id}:{liked_date.isoformat()}"


class LikeService:
    """Service for liking and unliking days."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _get_visible_target(self, viewer_id: int, username: str) -> User:
        target = get_user_by_username(self.db, username)
        if not target:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        if not can_view_profile(self.db, target, viewer_id):
            raise PrivateAccountError()
        return target

    def _count(self, user_id: int, liked_date: date) -> int:
        return (
            self.db.query(Like)
            .filter(Like.liked_user_id == user_id, Like.activity_date == liked_date)
            .count()
        )

    def like_day(self, liker: User, username: str, liked_date: date) -> dict:
        """Like a user's day. Liking twice is a no-op."""
        target = self._get_visible_target(liker.id, username)

        inserted = insert_ignore(
            self.db,
            Like,
            {"liker_id": liker.id, "liked_user_id": target.id, "activity_date": liked_date},
            index_elements=["liker_id", "liked_user_id", "activity_date"],
        )
        self.db.commit()
        new_count = self._count(target.id, liked_date)

        if inserted:
            cache.delete(_likes_cache_key(target.id, liked_date))
            logger.info(f"User {liker.id} liked {target.id}'s day {liked_date}")
            if target.id != liker.id:
                NotificationService(self.db).notify_like_received(
                    target.id, liker.id, liker.username, liked_date
                )

        return {"success": True, "liked": True, "new_count": new_count}

    def unlike_day(self, liker: User, username: str, liked_date: date) -> dict:
        """Remove a like. Unliking a day that was not liked is a no-op."""
        target = get_user_by_username(self.db, username)
        if not target:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        deleted = (
            self.db.query(Like)
            .filter(
                Like.liker_id == liker.id,
                Like.liked_user_id == target.id,
                Like.activity_date == liked_date,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted:
            cache.delete(_likes_cache_key(target.id, liked_date))

        return {"success": True, "liked": False, "new_count": self._count(target.id, liked_date)}

    def get_likes(self, viewer_id: int, username: str, liked_date: date) -> dict:
        """Likers of a user's day, newest first."""
        target = self._get_visible_target(viewer_id, username)

        key = _likes_cache_key(target.id, liked_date)
        likers = cache.get_json(key)
        if not isinstance(likers, list):
            rows = (
                self.db.query(Like, User)
                .join(User, User.id == Like.liker_id)
                .filter(Like.liked_user_id == target.id, Like.activity_date == liked_date)
                .order_by(Like.created_at.desc(), Like.id.desc())
                .all()
            )
            likers = [
                {
                    "id": user.id,
                    "username": user.username,
                    "profile_pic": user.profile_pic,
                    "liked_at": like.created_at.isoformat() if like.created_at else None,
                }
                for like, user in rows
            ]
            cache.set_json(key, likers, LIKES_CACHE_TTL_SECONDS)

        return {
            "likes": likers,
            "count": len(likers),
            "user_has_liked": any(liker["id"] == viewer_id for liker in likers),
        }
