"""User search and profile endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user, get_follow_service
from src.database import get_db
from src.models.user import User
from src.schemas.auth import UserResponse
from src.schemas.user import (
    BioResponse,
    BioUpdate,
    PrivacySettings,
    ProfilePictureResponse,
    UsernameUpdate,
    UserProfileResponse,
    UserSearchResponse,
    UserSummary,
)
from src.services.auth import (
    delete_profile_picture,
    search_users,
    update_bio,
    update_privacy,
    update_profile_picture,
    update_username,
)
from src.services.follow_service import FollowService
from src.services.privacy import can_view_profile

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/search", response_model=UserSearchResponse)
def search(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    q: Annotated[str, Query(min_length=1, max_length=50)],
):
    """Search users by username."""
    users = search_users(db, q)
    return UserSearchResponse(users=[UserSummary.model_validate(u) for u in users])


@router.put("/me/username", response_model=UserResponse)
def change_username(
    request: UsernameUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    return update_username(db, current_user, request.username)


@router.get("/me/privacy", response_model=PrivacySettings)
def get_privacy(
    current_user: Annotated[User, Depends(get_current_user)],
):
    return PrivacySettings(is_private=current_user.is_private)


@router.put("/me/privacy", response_model=PrivacySettings)
def set_privacy(
    request: PrivacySettings,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Make the current user's profile public or private."""
    user = update_privacy(db, current_user, request.is_private)
    return PrivacySettings(is_private=user.is_private)


@router.get("/me/bio", response_model=BioResponse)
def get_bio(
    current_user: Annotated[User, Depends(get_current_user)],
):
    return BioResponse(bio=current_user.bio)


@router.put("/me/bio", response_model=BioResponse)
def set_bio(
    request: BioUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    user = update_bio(db, current_user, request.bio)
    return BioResponse(bio=user.bio)


@router.post("/me/profile-picture", response_model=ProfilePictureResponse)
async def upload_profile_picture(
    image: Annotated[UploadFile, File(description="Image (JPEG, PNG, WebP, HEIC or HEIF)")],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Replace the current user's profile picture.

    Note: This endpoint must remain async because UploadFile.read() is async.
    """
    data = await image.read()
    user = update_profile_picture(db, current_user, image.content_type, data)
    return ProfilePictureResponse(profile_pic=user.profile_pic)


@router.delete("/me/profile-picture", status_code=status.HTTP_204_NO_CONTENT)
def remove_profile_picture(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    delete_profile_picture(db, current_user)


@router.get("/{user_id}/profile", response_model=UserProfileResponse)
def get_profile(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    """Get a user's profile with follow counts and the viewer's relationship."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    can_view = can_view_profile(db, user, current_user.id)
    counts = follow_service.get_counts(user.id)

    return UserProfileResponse(
        id=user.id,
        username=user.username,
        bio=user.bio if can_view else None,
        profile_pic=user.profile_pic,
        is_private=user.is_private,
        followers_count=counts["followers_count"],
        following_count=counts["following_count"],
        relationship=follow_service.get_relationship(current_user.id, user.id),
        can_view=can_view,
    )
