"""Follow graph service.

Edges live in two tables (by follower and by followee) that are always written in
the same transaction, together with the per-user counters.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models import FollowCounter, FollowEdgeByFollowee, FollowEdgeByFollower, User
from src.models.enums import FollowState, RelationshipState
from src.services import cache
from src.services.errors import (
    ConflictError,
    NotFoundError,
    PrivateAccountError,
    RateLimitError,
    ValidationError,
)
from src.services.notification_service import NotificationService
from src.services.privacy import can_view_profile

logger = logging.getLogger(__name__)

COUNTS_CACHE_PREFIX = "follow:counts:"
COUNTS_CACHE_TTL_SECONDS = 10 * 60

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MAX_LOOKUP_IDS = 100
TOMBSTONE_RETENTION_DAYS = 30


@dataclass
class FollowListEntry:
    """One user in a follow list, with the edge timestamp used for paging."""

    user_id: int
    username: str
    profile_pic: str | None
    created_at: datetime


def encode_cursor(created_at: datetime, user_id: int) -> str:
    """Build the opaque cursor for the row a page ended on."""
    return f"{created_at.isoformat()}|{user_id}"


def decode_cursor(cursor: str | None) -> tuple[datetime, int] | None:
    """Parse a cursor produced by encode_cursor."""
    if not cursor:
        return None
    try:
        timestamp, user_id = cursor.rsplit("|", 1)
        return datetime.fromisoformat(timestamp), int(user_id)
    except ValueError as e:
        raise ValidationError("Invalid cursor") from e


def clamp_limit(limit: int | None) -> int:
    if not limit or limit < 1:
        return DEFAULT_PAGE_SIZE
    return min(limit, MAX_PAGE_SIZE)


def _counts_cache_key(user_id: int) -> str:
    return f"{COUNTS_CACHE_PREFIX}{user_id}"


class FollowService:
    """Service for follow relationships between users."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()

    # --- Edge and counter primitives ---

    def _get_edges(
        self, follower_id: int, followee_id: int
    ) -> tuple[FollowEdgeByFollower | None, FollowEdgeByFollowee | None]:
        by_follower = (
            self.db.query(FollowEdgeByFollower)
            .filter(
                FollowEdgeByFollower.follower_id == follower_id,
                FollowEdgeByFollower.followee_id == followee_id,
            )
            .first()
        )
        by_followee = (
            self.db.query(FollowEdgeByFollowee)
            .filter(
                FollowEdgeByFollowee.followee_id == followee_id,
                FollowEdgeByFollowee.follower_id == follower_id,
            )
            .first()
        )
        return by_follower, by_followee

    def _write_edge(
        self,
        follower_id: int,
        followee_id: int,
        state: FollowState,
        now: datetime,
        new_follow: bool = False,
    ) -> None:
        """Set the edge state in both tables, creating rows as needed."""
        by_follower, by_followee = self._get_edges(follower_id, followee_id)
        if by_follower is None:
            by_follower = FollowEdgeByFollower(follower_id=follower_id, followee_id=followee_id)
            self.db.add(by_follower)
        if by_followee is None:
            by_followee = FollowEdgeByFollowee(followee_id=followee_id, follower_id=follower_id)
            self.db.add(by_followee)

        for edge in (by_follower, by_followee):
            edge.state = state
            edge.updated_at = now
            if new_follow or edge.created_at is None:
                edge.created_at = now
                edge.accepted_at = None
            if state == FollowState.ACTIVE:
                edge.accepted_at = now

    def _get_counter(self, user_id: int) -> FollowCounter:
        counter = (
            self.db.query(FollowCounter)
            .filter(FollowCounter.user_id == user_id)
            .with_for_update()
            .first()
        )
        if counter is None:
            counter = FollowCounter(
                user_id=user_id, followers_count=0, following_count=0, pending_requests_count=0
            )
            self.db.add(counter)
            self.db.flush()
        return counter

    def _adjust_counter(
        self, user_id: int, followers: int = 0, following: int = 0, pending: int = 0
    ) -> None:
        counter = self._get_counter(user_id)
        counter.followers_count = max(0, counter.followers_count + followers)
        counter.following_count = max(0, counter.following_count + following)
        counter.pending_requests_count = max(0, counter.pending_requests_count + pending)

    def _commit(self, *user_ids: int) -> None:
        self.db.commit()
        cache.delete(*[_counts_cache_key(uid) for uid in user_ids])

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        return user

    # --- Mutations ---

    def follow(self, follower: User, target_id: int) -> FollowState:
        """Follow a user, or request to follow a private one."""
        if follower.id == target_id:
            raise ValidationError("You cannot follow yourself")
        target = self._get_user(target_id)

        existing, _ = self._get_edges(follower.id, target.id)
        if existing is not None and existing.state == FollowState.ACTIVE:
            raise ConflictError("Already following")
        if existing is not None and existing.state == FollowState.PENDING:
            raise ConflictError("Follow request already pending")

        self._check_follow_limits(follower.id)

        now = datetime.now(UTC)
        state = FollowState.PENDING if target.is_private else FollowState.ACTIVE
        self._write_edge(follower.id, target.id, state, now, new_follow=True)
        if state == FollowState.ACTIVE:
            self._adjust_counter(follower.id, following=1)
            self._adjust_counter(target.id, followers=1)
        else:
            self._adjust_counter(target.id, pending=1)
        self._commit(follower.id, target.id)

        logger.info(f"User {follower.id} -> {target.id} follow created ({state.value})")

        notifications = NotificationService(self.db)
        if state == FollowState.PENDING:
            notifications.notify_follow_request(target.id, follower.id, follower.username)
        else:
            notifications.notify_new_follower(target.id, follower.id, follower.username)
        return state

    def _check_follow_limits(self, follower_id: int) -> None:
        following = (
            self.db.query(FollowEdgeByFollower)
            .filter(
                FollowEdgeByFollower.follower_id == follower_id,
                FollowEdgeByFollower.state == FollowState.ACTIVE,
            )
            .count()
        )
        if following >= self.settings.max_total_following:
            raise RateLimitError(
                f"You can follow at most {self.settings.max_total_following} users"
            )

        since = datetime.now(UTC) - timedelta(days=1)
        recent = (
            self.db.query(FollowEdgeByFollower)
            .filter(
                FollowEdgeByFollower.follower_id == follower_id,
                FollowEdgeByFollower.created_at >= since,
            )
            .count()
        )
        if recent >= self.settings.max_follows_per_day:
            raise RateLimitError("Daily follow limit reached, try again tomorrow")

    def _require_edge(self, follower_id: int, followee_id: int, state: FollowState, message: str):
        edge, _ = self._get_edges(follower_id, followee_id)
        if edge is None or edge.state != state:
            raise NotFoundError(message)
        return edge

    def unfollow(self, follower_id: int, followee_id: int) -> None:
        """Stop following a user."""
        self._require_edge(follower_id, followee_id, FollowState.ACTIVE, "Not following this user")
        self._write_edge(follower_id, followee_id, FollowState.REMOVED, datetime.now(UTC))
        self._adjust_counter(follower_id, following=-1)
        self._adjust_counter(followee_id, followers=-1)
        self._commit(follower_id, followee_id)
        logger.info(f"User {follower_id} unfollowed {followee_id}")

    def cancel_request(self, follower_id: int, target_id: int) -> None:
        """Withdraw a pending follow request."""
        self._require_edge(follower_id, target_id, FollowState.PENDING, "No pending follow request")
        self._write_edge(follower_id, target_id, FollowState.REMOVED, datetime.now(UTC))
        self._adjust_counter(target_id, pending=-1)
        self._commit(follower_id, target_id)

    def accept_request(self, viewer: User, requester_id: int) -> None:
        """Accept a pending request from requester to viewer."""
        self._require_edge(requester_id, viewer.id, FollowState.PENDING, "No pending follow request")
        self._write_edge(requester_id, viewer.id, FollowState.ACTIVE, datetime.now(UTC))
        self._adjust_counter(viewer.id, followers=1, pending=-1)
        self._adjust_counter(requester_id, following=1)
        self._commit(viewer.id, requester_id)
        logger.info(f"User {viewer.id} accepted follow request from {requester_id}")

        NotificationService(self.db).notify_follow_accepted(
            requester_id, viewer.id, viewer.username
        )

    def decline_request(self, viewer_id: int, requester_id: int) -> None:
        """Decline a pending request from requester to viewer."""
        self._require_edge(requester_id, viewer_id, FollowState.PENDING, "No pending follow request")
        self._write_edge(requester_id, viewer_id, FollowState.REMOVED, datetime.now(UTC))
        self._adjust_counter(viewer_id, pending=-1)
        self._commit(viewer_id, requester_id)

    def remove_follower(self, viewer_id: int, follower_id: int) -> None:
        """Remove someone who follows the viewer."""
        self._require_edge(follower_id, viewer_id, FollowState.ACTIVE, "User is not a follower")
        self._write_edge(follower_id, viewer_id, FollowState.REMOVED, datetime.now(UTC))
        self._adjust_counter(follower_id, following=-1)
        self._adjust_counter(viewer_id, followers=-1)
        self._commit(viewer_id, follower_id)

    # --- Lists ---

    def _check_list_access(self, viewer_id: int, target_id: int) -> User:
        target = self._get_user(target_id)
        if not can_view_profile(self.db, target, viewer_id):
            raise PrivateAccountError()
        return target

    def _page(
        self, query, created_col, user_col, limit: int | None, cursor: str | None
    ) -> tuple[list[FollowListEntry], str | None, bool]:
        """Apply (created_at, user_id) descending keyset pagination to query."""
        limit = clamp_limit(limit)
        position = decode_cursor(cursor)
        if position is not None:
            created_at, user_id = position
            query = query.filter(
                or_(
                    created_col < created_at,
                    and_(created_col == created_at, user_col < user_id),
                )
            )

        rows = query.order_by(created_col.desc(), user_col.desc()).limit(limit + 1).all()
        has_more = len(rows) > limit
        rows = rows[:limit]

        entries = [
            FollowListEntry(
                user_id=user.id,
                username=user.username,
                profile_pic=user.profile_pic,
                created_at=created,
            )
            for created, user in rows
        ]
        next_cursor = (
            encode_cursor(entries[-1].created_at, entries[-1].user_id) if has_more else None
        )
        return entries, next_cursor, has_more

    def list_followers(
        self, viewer_id: int, target_id: int, limit: int | None = None, cursor: str | None = None
    ) -> tuple[list[FollowListEntry], str | None, bool]:
        """Active followers of target, newest first."""
        self._check_list_access(viewer_id, target_id)
        query = (
            self.db.query(FollowEdgeByFollowee.created_at, User)
            .join(User, User.id == FollowEdgeByFollowee.follower_id)
            .filter(
                FollowEdgeByFollowee.followee_id == target_id,
                FollowEdgeByFollowee.state == FollowState.ACTIVE,
            )
        )
        return self._page(
            query, FollowEdgeByFollowee.created_at, FollowEdgeByFollowee.follower_id, limit, cursor
        )

    def list_following(
        self, viewer_id: int, target_id: int, limit: int | None = None, cursor: str | None = None
    ) -> tuple[list[FollowListEntry], str | None, bool]:
        """Users target actively follows, newest first."""
        self._check_list_access(viewer_id, target_id)
        query = (
            self.db.query(FollowEdgeByFollower.created_at, User)
            .join(User, User.id == FollowEdgeByFollower.followee_id)
            .filter(
                FollowEdgeByFollower.follower_id == target_id,
                FollowEdgeByFollower.state == FollowState.ACTIVE,
            )
        )
        return self._page(
            query, FollowEdgeByFollower.created_at, FollowEdgeByFollower.followee_id, limit, cursor
        )

    def list_incoming_requests(
        self, viewer_id: int, limit: int | None = None, cursor: str | None = None
    ) -> tuple[list[FollowListEntry], str | None, bool]:
        """Pending requests addressed to the viewer, newest first."""
        query = (
            self.db.query(FollowEdgeByFollowee.created_at, User)
            .join(User, User.id == FollowEdgeByFollowee.follower_id)
            .filter(
                FollowEdgeByFollowee.followee_id == viewer_id,
                FollowEdgeByFollowee.state == FollowState.PENDING,
            )
        )
        return self._page(
            query, FollowEdgeByFollowee.created_at, FollowEdgeByFollowee.follower_id, limit, cursor
        )

    def list_mutuals(
        self, viewer_id: int, target_id: int, limit: int | None = None, cursor: str | None = None
    ) -> tuple[list[FollowListEntry], str | None, bool]:
        """Users the viewer follows who also follow target."""
        self._check_list_access(viewer_id, target_id)
        follows_target = FollowEdgeByFollowee
        query = (
            self.db.query(FollowEdgeByFollower.created_at, User)
            .join(User, User.id == FollowEdgeByFollower.followee_id)
            .join(
                follows_target,
                and_(
                    follows_target.follower_id == FollowEdgeByFollower.followee_id,
                    follows_target.followee_id == target_id,
                    follows_target.state == FollowState.ACTIVE,
                ),
            )
            .filter(
                FollowEdgeByFollower.follower_id == viewer_id,
                FollowEdgeByFollower.state == FollowState.ACTIVE,
            )
        )
        return self._page(
            query, FollowEdgeByFollower.created_at, FollowEdgeByFollower.followee_id, limit, cursor
        )

    def get_active_follower_ids(self, user_id: int) -> list[int]:
        """All active follower ids of a user, for notification fan-out."""
        rows = (
            self.db.query(FollowEdgeByFollowee.follower_id)
            .filter(
                FollowEdgeByFollowee.followee_id == user_id,
                FollowEdgeByFollowee.state == FollowState.ACTIVE,
            )
            .all()
        )
        return [follower_id for (follower_id,) in rows]

    # --- Relationships and counts ---

    def lookup_relationships(
        self, viewer_id: int, target_ids: list[int]
    ) -> dict[int, RelationshipState]:
        """Relationship of the viewer to each target."""
        if len(target_ids) > MAX_LOOKUP_IDS:
            raise ValidationError(f"At most {MAX_LOOKUP_IDS} user ids per lookup")

        result = {target_id: RelationshipState.NONE for target_id in target_ids}
        if viewer_id in result:
            result[viewer_id] = RelationshipState.SELF

        outgoing = (
            self.db.query(FollowEdgeByFollower.followee_id, FollowEdgeByFollower.state)
            .filter(
                FollowEdgeByFollower.follower_id == viewer_id,
                FollowEdgeByFollower.followee_id.in_(target_ids),
                FollowEdgeByFollower.state.in_([FollowState.ACTIVE, FollowState.PENDING]),
            )
            .all()
        )
        for followee_id, state in outgoing:
            result[followee_id] = (
                RelationshipState.FOLLOWING
                if state == FollowState.ACTIVE
                else RelationshipState.REQUESTED
            )

        incoming = (
            self.db.query(FollowEdgeByFollowee.follower_id)
            .filter(
                FollowEdgeByFollowee.followee_id == viewer_id,
                FollowEdgeByFollowee.follower_id.in_(target_ids),
                FollowEdgeByFollowee.state == FollowState.PENDING,
            )
            .all()
        )
        for (follower_id,) in incoming:
            if result[follower_id] == RelationshipState.NONE:
                result[follower_id] = RelationshipState.INCOMING_PENDING

        return result

    def get_relationship(self, viewer_id: int, target_id: int) -> RelationshipState:
        return self.lookup_relationships(viewer_id, [target_id])[target_id]

    def get_counts(self, user_id: int) -> dict:
        """Follower, following and pending request counts, cached."""
        cached = cache.get_json(_counts_cache_key(user_id))
        if isinstance(cached, dict):
            return cached

        counter = self.db.query(FollowCounter).filter(FollowCounter.user_id == user_id).first()
        counts = {
            "followers_count": counter.followers_count if counter else 0,
            "following_count": counter.following_count if counter else 0,
            "pending_requests_count": counter.pending_requests_count if counter else 0,
        }
        cache.set_json(_counts_cache_key(user_id), counts, COUNTS_CACHE_TTL_SECONDS)
        return counts

    def reconcile_counters(self, user_id: int) -> dict:
        """Recompute a user's counters from the edge tables."""
        followers = (
            self.db.query(FollowEdgeByFollowee)
            .filter(
                FollowEdgeByFollowee.followee_id == user_id,
                FollowEdgeByFollowee.state == FollowState.ACTIVE,
            )
            .count()
        )
        following = (
            self.db.query(FollowEdgeByFollower)
            .filter(
                FollowEdgeByFollower.follower_id == user_id,
                FollowEdgeByFollower.state == FollowState.ACTIVE,
            )
            .count()
        )
        pending = (
            self.db.query(FollowEdgeByFollowee)
            .filter(
                FollowEdgeByFollowee.followee_id == user_id,
                FollowEdgeByFollowee.state == FollowState.PENDING,
            )
            .count()
        )

        counter = self._get_counter(user_id)
        counter.followers_count = followers
        counter.following_count = following
        counter.pending_requests_count = pending
        self._commit(user_id)

        logger.info(f"Reconciled follow counters for user {user_id}")
        return {
            "followers_count": followers,
            "following_count": following,
            "pending_requests_count": pending,
        }

    # --- Maintenance ---

    def cleanup_tombstones(self, retention_days: int = TOMBSTONE_RETENTION_DAYS) -> int:
        """Delete REMOVED edges untouched for retention_days. Returns edges deleted."""
        cutoff = datetime.now(UTC) - timedelta(days=retention_days)
        deleted = (
            self.db.query(FollowEdgeByFollower)
            .filter(
                FollowEdgeByFollower.state == FollowState.REMOVED,
                FollowEdgeByFollower.updated_at < cutoff,
            )
            .delete(synchronize_session=False)
        )
        self.db.query(FollowEdgeByFollowee).filter(
            FollowEdgeByFollowee.state == FollowState.REMOVED,
            FollowEdgeByFollowee.updated_at < cutoff,
        ).delete(synchronize_session=False)
        self.db.commit()
        logger.info(f"Follow tombstone cleanup removed {deleted} edges")
        return deleted
