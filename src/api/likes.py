"""Endpoints for liking a user's day."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_current_user, get_like_service
from src.models.user import User
from src.schemas.like import LikeRequest, LikeResponse, LikesResponse
from src.services.dates import parse_date
from src.services.like_service import LikeService

router = APIRouter(prefix="/api/v1/likes", tags=["likes"])


@router.post("", response_model=LikeResponse)
def like_day(
    request: LikeRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    like_service: Annotated[LikeService, Depends(get_like_service)],
):
    """Like a user's day. Liking the same day again is a no-op."""
    return like_service.like_day(current_user, request.username, parse_date(request.date))


@router.delete("", response_model=LikeResponse)
def unlike_day(
    request: LikeRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    like_service: Annotated[LikeService, Depends(get_like_service)],
):
    return like_service.unlike_day(current_user, request.username, parse_date(request.date))


@router.get("/{username}/{date}", response_model=LikesResponse)
def get_likes(
    username: str,
    date: str,
    current_user: Annotated[User, Depends(get_current_user)],
    like_service: Annotated[LikeService, Depends(get_like_service)],
):
    """Get who liked a user's day."""
    return like_service.get_likes(current_user.id, username, parse_date(date))
