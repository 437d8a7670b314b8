"""FastAPI dependencies for authentication and services."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.database import get_db
from src.models.user import User
from src.services.activity_service import ActivityService
from src.services.auth import decode_access_token
from src.services.follow_service import FollowService
from src.services.like_service import LikeService
from src.services.notification_service import NotificationService
from src.services.story_service import StoryService
from src.services.streak_service import BadgeService, StreakService

security = HTTPBearer()


def get_user_from_token(db: Session, token: str) -> User | None:
    """Resolve a JWT to its user, or None if the token is invalid."""
    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    return db.query(User).filter(User.id == int(user_id)).first()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    user = get_user_from_token(db, credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_activity_service(db: Annotated[Session, Depends(get_db)]) -> ActivityService:
    return ActivityService(db)


def get_streak_service(db: Annotated[Session, Depends(get_db)]) -> StreakService:
    return StreakService(db)


def get_badge_service(db: Annotated[Session, Depends(get_db)]) -> BadgeService:
    return BadgeService(db)


def get_follow_service(db: Annotated[Session, Depends(get_db)]) -> FollowService:
    """Get follow service with dependencies."""
    return FollowService(db)


def get_like_service(db: Annotated[Session, Depends(get_db)]) -> LikeService:
    return LikeService(db)


def get_notification_service(db: Annotated[Session, Depends(get_db)]) -> NotificationService:
    return NotificationService(db)


def get_story_service(db: Annotated[Session, Depends(get_db)]) -> StoryService:
    return StoryService(db)
