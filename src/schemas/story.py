"""Story photo schemas."""

from datetime import date, datetime

from pydantic import BaseModel

from src.schemas.user import UserSummary


class StoryPhoto(BaseModel):
    id: int
    user_id: int
    activity_name: str
    photo_date: date
    photo_url: str
    thumbnail_url: str
    activity_icon: str | None
    activity_color: str | None
    activity_label: str | None
    created_at: datetime | None


class StoryPhotoView(StoryPhoto):
    """A photo annotated for the viewer."""

    viewed: bool
    liked: bool


class UserStoriesResponse(BaseModel):
    user: UserSummary
    photos: list[StoryPhotoView]


class StoryFeedGroup(UserStoriesResponse):
    has_unviewed: bool


class StoryFeedResponse(BaseModel):
    date: date
    stories: list[StoryFeedGroup]


class StoryViewer(UserSummary):
    viewed_at: datetime


class StoryViewersResponse(BaseModel):
    viewers: list[StoryViewer]
    total: int
    page: int
    page_size: int


class StoryLiker(UserSummary):
    liked_at: datetime


class StoryLikersResponse(BaseModel):
    likers: list[StoryLiker]


class StoryInteraction(StoryViewer):
    has_liked: bool


class StoryInteractionsResponse(BaseModel):
    viewers: list[StoryInteraction]
    view_count: int
    like_count: int


class StoryLikeResponse(BaseModel):
    liked: bool
    like_count: int
