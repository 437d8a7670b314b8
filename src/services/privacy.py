"""Profile visibility rules shared by every resource that exposes a user's data."""

from sqlalchemy.orm import Session

from src.models.enums import FollowState
from src.models.follow import FollowEdgeByFollower
from src.models.user import User
from src.services.auth import get_user_by_username
from src.services.errors import NotFoundError, PrivateAccountError


def is_active_follower(db: Session, follower_id: int, followee_id: int) -> bool:
    """Check whether follower_id has an ACTIVE edge to followee_id."""
    edge = (
        db.query(FollowEdgeByFollower.follower_id)
        .filter(
            FollowEdgeByFollower.follower_id == follower_id,
            FollowEdgeByFollower.followee_id == followee_id,
            FollowEdgeByFollower.state == FollowState.ACTIVE,
        )
        .first()
    )
    return edge is not None


def can_view_profile(db: Session, target: User, viewer_id: int) -> bool:
    """A profile is visible to its owner, to anyone if public, else to active followers."""
    if target.id == viewer_id:
        return True
    if not target.is_private:
        return True
    return is_active_follower(db, viewer_id, target.id)


def get_visible_user(db: Session, username: str, viewer_id: int) -> User:
    """Look up a user by username, enforcing profile visibility for the viewer."""
    user = get_user_by_username(db, username)
    if not user:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    if not can_view_profile(db, user, viewer_id):
        raise PrivateAccountError()
    return user
