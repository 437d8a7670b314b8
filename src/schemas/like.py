"""Day like schemas."""

from pydantic import BaseModel, Field


class LikeRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=20)
    date: str = Field(..., description="YYYY-MM-DD")


class LikeResponse(BaseModel):
    success: bool
    liked: bool
    new_count: int


class Liker(BaseModel):
    id: int
    username: str
    profile_pic: str | None
    liked_at: str | None


class LikesResponse(BaseModel):
    likes: list[Liker]
    count: int
    user_has_liked: bool
