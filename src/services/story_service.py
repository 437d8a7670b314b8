"""Story photos: uploads, the following feed, views and likes."""

import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from src.database import insert_ignore
from src.models import ActivityPhoto, FollowEdgeByFollower, StoryLike, StoryView, User
from src.models.enums import FollowState
from src.services.activity_service import is_valid_activity_name
from src.services.auth import get_user_by_username
from src.services.dates import today
from src.services.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from src.services.follow_service import FollowService
from src.services.media import image_extension, remove_file, store_file
from src.services.notification_service import NotificationService
from src.services.privacy import is_active_follower

logger = logging.getLogger(__name__)

STORY_WINDOW_DAYS = 7


def photo_to_dict(photo: ActivityPhoto) -> dict:
    return {
        "id": photo.id,
        "user_id": photo.user_id,
        "activity_name": photo.activity_name,
        "photo_date": photo.photo_date,
        "photo_url": photo.photo_url,
        "thumbnail_url": photo.thumbnail_url,
        "activity_icon": photo.activity_icon,
        "activity_color": photo.activity_color,
        "activity_label": photo.activity_label,
        "created_at": photo.created_at,
    }


def _user_summary(user: User) -> dict:
    return {"id": user.id, "username": user.username, "profile_pic": user.profile_pic}


class StoryService:
    """Service for story photos."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # --- Access ---

    def can_view_stories(self, viewer_id: int, owner_id: int) -> bool:
        """Stories are visible to their owner and to active followers."""
        if viewer_id == owner_id:
            return True
        return is_active_follower(self.db, viewer_id, owner_id)

    def _get_photo(self, photo_id: int) -> ActivityPhoto:
        photo = self.db.query(ActivityPhoto).filter(ActivityPhoto.id == photo_id).first()
        if not photo:
            raise NotFoundError("Photo not found", code="PHOTO_NOT_FOUND")
        return photo

    def _get_owned_photo(self, photo_id: int, owner_id: int) -> ActivityPhoto:
        photo = self._get_photo(photo_id)
        if photo.user_id != owner_id:
            raise PermissionDeniedError("Only the owner can see this")
        return photo

    # --- Upload and delete ---

    def upload(
        self,
        user: User,
        activity_name: str,
        photo_date: date,
        content_type: str | None,
        data: bytes,
        activity_icon: str | None = None,
        activity_color: str | None = None,
        activity_label: str | None = None,
    ) -> ActivityPhoto:
        """Store a story photo for one of the user's activities on a recent day."""
        if not is_valid_activity_name(activity_name):
            raise ValidationError("Invalid activity name", code="INVALID_ACTIVITY")

        current_day = today()
        if photo_date > current_day:
            raise ValidationError("Cannot upload photos for future dates", code="INVALID_DATE")
        if photo_date < current_day - timedelta(days=STORY_WINDOW_DAYS):
            raise ValidationError(
                f"Photos can only be uploaded for the last {STORY_WINDOW_DAYS} days",
                code="INVALID_DATE",
            )

        extension = image_extension(content_type, data)
        if activity_label is not None and len(activity_label) > 20:
            raise ValidationError("Activity label must be at most 20 characters")

        existing = (
            self.db.query(ActivityPhoto.id)
            .filter(
                ActivityPhoto.user_id == user.id,
                ActivityPhoto.activity_name == activity_name,
                ActivityPhoto.photo_date == photo_date,
            )
            .first()
        )
        if existing:
            raise ConflictError(
                "A photo already exists for this activity and date", code="PHOTO_EXISTS"
            )

        photo_url = store_file("stories", user.id, data, extension)
        photo = ActivityPhoto(
            user_id=user.id,
            activity_name=activity_name,
            photo_date=photo_date,
            photo_url=photo_url,
            thumbnail_url=photo_url,
            activity_icon=activity_icon,
            activity_color=activity_color,
            activity_label=activity_label,
        )
        self.db.add(photo)
        self.db.commit()
        self.db.refresh(photo)
        logger.info(f"User {user.id} uploaded story {photo.id} for {activity_name} on {photo_date}")

        follower_ids = FollowService(self.db).get_active_follower_ids(user.id)
        if follower_ids:
            NotificationService(self.db).notify_photo_uploaded(
                user.id, user.username, photo_date, follower_ids
            )
        return photo

    def delete(self, owner_id: int, photo_id: int) -> None:
        photo = self._get_photo(photo_id)
        if photo.user_id != owner_id:
            raise PermissionDeniedError("You can only delete your own photos")

        urls = {photo.photo_url, photo.thumbnail_url}
        self.db.query(StoryView).filter(StoryView.photo_id == photo.id).delete(
            synchronize_session=False
        )
        self.db.query(StoryLike).filter(StoryLike.photo_id == photo.id).delete(
            synchronize_session=False
        )
        self.db.delete(photo)
        self.db.commit()

        for url in urls:
            remove_file(url)
        logger.info(f"User {owner_id} deleted story {photo_id}")

    # --- Reading ---

    def _annotate(self, viewer_id: int, photos: list[ActivityPhoto]) -> list[dict]:
        """Serialize photos with whether the viewer has seen and liked each."""
        photo_ids = [p.id for p in photos]
        viewed = set()
        liked = set()
        if photo_ids:
            viewed = {
                photo_id
                for (photo_id,) in self.db.query(StoryView.photo_id).filter(
                    StoryView.viewer_id == viewer_id, StoryView.photo_id.in_(photo_ids)
                )
            }
            liked = {
                photo_id
                for (photo_id,) in self.db.query(StoryLike.photo_id).filter(
                    StoryLike.liker_id == viewer_id, StoryLike.photo_id.in_(photo_ids)
                )
            }
        return [
            {**photo_to_dict(p), "viewed": p.id in viewed, "liked": p.id in liked}
            for p in photos
        ]

    def get_user_stories(self, viewer_id: int, username: str, photo_date: date) -> dict:
        """A user's photos for one day."""
        owner = get_user_by_username(self.db, username)
        if not owner:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        if not self.can_view_stories(viewer_id, owner.id):
            raise PermissionDeniedError(
                "You must follow this user to see their stories", code="NOT_FOLLOWING"
            )

        photos = (
            self.db.query(ActivityPhoto)
            .filter(ActivityPhoto.user_id == owner.id, ActivityPhoto.photo_date == photo_date)
            .order_by(ActivityPhoto.created_at, ActivityPhoto.id)
            .all()
        )
        return {"user": _user_summary(owner), "photos": self._annotate(viewer_id, photos)}

    def get_feed(self, viewer_id: int, photo_date: date) -> list[dict]:
        """Photos posted for a day by users the viewer follows, grouped per user."""
        rows = (
            self.db.query(ActivityPhoto, User)
            .join(User, User.id == ActivityPhoto.user_id)
            .join(
                FollowEdgeByFollower,
                FollowEdgeByFollower.followee_id == ActivityPhoto.user_id,
            )
            .filter(
                FollowEdgeByFollower.follower_id == viewer_id,
                FollowEdgeByFollower.state == FollowState.ACTIVE,
                ActivityPhoto.photo_date == photo_date,
            )
            .order_by(ActivityPhoto.created_at.desc(), ActivityPhoto.id.desc())
            .all()
        )

        groups: dict[int, dict] = {}
        photos_by_user: dict[int, list[ActivityPhoto]] = {}
        for photo, user in rows:
            if user.id not in groups:
                groups[user.id] = {"user": _user_summary(user)}
                photos_by_user[user.id] = []
            photos_by_user[user.id].append(photo)

        feed = []
        for user_id, group in groups.items():
            photos = self._annotate(viewer_id, photos_by_user[user_id])
            group["photos"] = photos
            group["has_unviewed"] = any(not p["viewed"] for p in photos)
            feed.append(group)

        # Users with unseen stories first, preserving recency within each half
        feed.sort(key=lambda g: not g["has_unviewed"])
        return feed

    # --- Views ---

    def record_view(self, viewer_id: int, photo_id: int) -> bool:
        """Record that viewer saw a photo. Returns False for self-views and repeats."""
        photo = self._get_photo(photo_id)
        if photo.user_id == viewer_id:
            return False
        if not self.can_view_stories(viewer_id, photo.user_id):
            raise PermissionDeniedError(
                "You must follow this user to see their stories", code="NOT_FOLLOWING"
            )

        inserted = insert_ignore(
            self.db,
            StoryView,
            {"viewer_id": viewer_id, "photo_id": photo_id},
            index_elements=["viewer_id", "photo_id"],
        )
        self.db.commit()
        return inserted

    def list_viewers(
        self, owner_id: int, photo_id: int, page: int = 1, page_size: int = 50
    ) -> tuple[list[dict], int]:
        """Viewers of an owned photo, most recent first."""
        self._get_owned_photo(photo_id, owner_id)

        query = (
            self.db.query(StoryView, User)
            .join(User, User.id == StoryView.viewer_id)
            .filter(StoryView.photo_id == photo_id)
        )
        total = query.count()
        rows = (
            query.order_by(StoryView.viewed_at.desc(), StoryView.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        viewers = [{**_user_summary(user), "viewed_at": view.viewed_at} for view, user in rows]
        return viewers, total

    # --- Likes ---

    def like_photo(self, liker: User, photo_id: int) -> dict:
        """Like a followed user's photo. Liking also counts as a view."""
        photo = self._get_photo(photo_id)
        if photo.user_id == liker.id:
            raise ValidationError("You cannot like your own story", code="SELF_LIKE")
        if not is_active_follower(self.db, liker.id, photo.user_id):
            raise PermissionDeniedError(
                "You must follow this user to like their stories", code="NOT_FOLLOWING"
            )

        inserted = insert_ignore(
            self.db,
            StoryLike,
            {"liker_id": liker.id, "photo_id": photo_id},
            index_elements=["liker_id", "photo_id"],
        )
        insert_ignore(
            self.db,
            StoryView,
            {"viewer_id": liker.id, "photo_id": photo_id},
            index_elements=["viewer_id", "photo_id"],
        )
        self.db.commit()

        if inserted:
            NotificationService(self.db).notify_story_liked(
                photo.user_id,
                liker.id,
                liker.username,
                photo.id,
                photo.activity_label or photo.activity_name,
            )
        return {"liked": True, "like_count": self._like_count(photo_id)}

    def unlike_photo(self, liker_id: int, photo_id: int) -> dict:
        self._get_photo(photo_id)
        self.db.query(StoryLike).filter(
            StoryLike.liker_id == liker_id, StoryLike.photo_id == photo_id
        ).delete(synchronize_session=False)
        self.db.commit()
        return {"liked": False, "like_count": self._like_count(photo_id)}

    def _like_count(self, photo_id: int) -> int:
        return self.db.query(StoryLike).filter(StoryLike.photo_id == photo_id).count()

    def list_likers(self, owner_id: int, photo_id: int) -> list[dict]:
        """Likers of an owned photo, most recent first."""
        self._get_owned_photo(photo_id, owner_id)
        rows = (
            self.db.query(StoryLike, User)
            .join(User, User.id == StoryLike.liker_id)
            .filter(StoryLike.photo_id == photo_id)
            .order_by(StoryLike.created_at.desc(), StoryLike.id.desc())
            .all()
        )
        return [{**_user_summary(user), "liked_at": like.created_at} for like, user in rows]

    def list_interactions(self, owner_id: int, photo_id: int) -> dict:
        """Viewers of an owned photo, each flagged with whether they liked it."""
        viewers, total = self.list_viewers(owner_id, photo_id, page=1, page_size=1000)
        liker_ids = {
            liker_id
            for (liker_id,) in self.db.query(StoryLike.liker_id).filter(
                StoryLike.photo_id == photo_id
            )
        }
        interactions = [{**viewer, "has_liked": viewer["id"] in liker_ids} for viewer in viewers]
        return {
            "viewers": interactions,
            "view_count": total,
            "like_count": len(liker_ids),
        }
