"""Follow graph schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.models.enums import FollowState, RelationshipState


class FollowResponse(BaseModel):
    state: FollowState


class FollowListItem(BaseModel):
    id: int
    username: str
    profile_pic: str | None
    created_at: datetime


class FollowListResponse(BaseModel):
    """A cursor-paginated page of users."""

    users: list[FollowListItem]
    next_cursor: str | None
    has_more: bool


class FollowCountsResponse(BaseModel):
    followers_count: int
    following_count: int
    pending_requests_count: int = 0


class RelationshipLookupRequest(BaseModel):
    user_ids: list[int] = Field(..., max_length=100)


class RelationshipLookupResponse(BaseModel):
    relationships: dict[int, RelationshipState]
