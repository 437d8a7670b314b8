"""Follow graph endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_current_user, get_follow_service
from src.models.user import User
from src.schemas.follow import (
    FollowCountsResponse,
    FollowListItem,
    FollowListResponse,
    FollowResponse,
    RelationshipLookupRequest,
    RelationshipLookupResponse,
)
from src.services.follow_service import FollowListEntry, FollowService

router = APIRouter(prefix="/api/v1", tags=["follows"])

Limit = Annotated[int, Query(ge=1, le=100)]
Cursor = Annotated[str | None, Query()]


def _list_response(page: tuple[list[FollowListEntry], str | None, bool]) -> FollowListResponse:
    entries, next_cursor, has_more = page
    return FollowListResponse(
        users=[
            FollowListItem(
                id=entry.user_id,
                username=entry.username,
                profile_pic=entry.profile_pic,
                created_at=entry.created_at,
            )
            for entry in entries
        ],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post("/users/{user_id}/follow", response_model=FollowResponse)
def follow_user(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    """Follow a user. Private accounts get a follow request instead."""
    return FollowResponse(state=follow_service.follow(current_user, user_id))


@router.delete("/users/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
def unfollow_user(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    follow_service.unfollow(current_user.id, user_id)


@router.post("/follow-requests/{user_id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
def cancel_follow_request(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    """Withdraw a follow request sent to a private account."""
    follow_service.cancel_request(current_user.id, user_id)


@router.get("/me/follow-requests/incoming", response_model=FollowListResponse)
def get_incoming_requests(
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
    limit: Limit = 20,
    cursor: Cursor = None,
):
    return _list_response(follow_service.list_incoming_requests(current_user.id, limit, cursor))


@router.post("/me/follow-requests/{user_id}/accept", status_code=status.HTTP_204_NO_CONTENT)
def accept_follow_request(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    follow_service.accept_request(current_user, user_id)


@router.post("/me/follow-requests/{user_id}/decline", status_code=status.HTTP_204_NO_CONTENT)
def decline_follow_request(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    follow_service.decline_request(current_user.id, user_id)


@router.delete("/me/followers/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_follower(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    """Remove a user from the current user's followers."""
    follow_service.remove_follower(current_user.id, user_id)


@router.get("/users/{user_id}/followers", response_model=FollowListResponse)
def get_followers(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
    limit: Limit = 20,
    cursor: Cursor = None,
):
    return _list_response(follow_service.list_followers(current_user.id, user_id, limit, cursor))


@router.get("/users/{user_id}/following", response_model=FollowListResponse)
def get_following(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
    limit: Limit = 20,
    cursor: Cursor = None,
):
    return _list_response(follow_service.list_following(current_user.id, user_id, limit, cursor))


@router.get("/users/{user_id}/mutuals", response_model=FollowListResponse)
def get_mutuals(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
    limit: Limit = 20,
    cursor: Cursor = None,
):
    """Users the current user follows who also follow this user."""
    return _list_response(follow_service.list_mutuals(current_user.id, user_id, limit, cursor))


@router.get("/users/{user_id}/follow-counts", response_model=FollowCountsResponse)
def get_follow_counts(
    user_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    return follow_service.get_counts(user_id)


@router.post("/me/follow-counts/reconcile", response_model=FollowCountsResponse)
def reconcile_follow_counts(
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    """Recompute the current user's counters from their follow edges."""
    return follow_service.reconcile_counters(current_user.id)


@router.post("/relationships/lookup", response_model=RelationshipLookupResponse)
def lookup_relationships(
    request: RelationshipLookupRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
):
    """Get the current user's relationship to each of up to 100 users."""
    return RelationshipLookupResponse(
        relationships=follow_service.lookup_relationships(current_user.id, request.user_ids)
    )
