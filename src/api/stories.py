"""Story photo endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from src.api.dependencies import get_current_user, get_story_service
from src.models.user import User
from src.schemas.story import (
    StoryFeedResponse,
    StoryInteractionsResponse,
    StoryLikeResponse,
    StoryLikersResponse,
    StoryPhoto,
    StoryViewersResponse,
    UserStoriesResponse,
)
from src.services.dates import parse_date, today
from src.services.story_service import StoryService, photo_to_dict

router = APIRouter(prefix="/api/v1/stories", tags=["stories"])


@router.post("", response_model=StoryPhoto, status_code=status.HTTP_201_CREATED)
async def upload_story(
    file: Annotated[UploadFile, File(description="Photo (JPEG, PNG, WebP, HEIC or HEIF)")],
    activity_name: Annotated[str, Form()],
    photo_date: Annotated[str, Form(description="YYYY-MM-DD")],
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
    activity_icon: Annotated[str | None, Form()] = None,
    activity_color: Annotated[str | None, Form()] = None,
    activity_label: Annotated[str | None, Form()] = None,
):
    """Upload a story photo for an activity.

    Note: This endpoint must remain async because UploadFile.read() is async.
    """
    data = await file.read()
    photo = story_service.upload(
        current_user,
        activity_name,
        parse_date(photo_date),
        file.content_type,
        data,
        activity_icon=activity_icon,
        activity_color=activity_color,
        activity_label=activity_label,
    )
    return photo_to_dict(photo)


@router.delete("/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_story(
    photo_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
):
    story_service.delete(current_user.id, photo_id)


@router.get("/feed", response_model=StoryFeedResponse)
def get_story_feed(
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
    date: Annotated[str | None, Query(description="YYYY-MM-DD, defaults to today")] = None,
):
    """Stories from followed users for a day, unseen ones first."""
    day = parse_date(date) if date else today()
    return StoryFeedResponse(date=day, stories=story_service.get_feed(current_user.id, day))


@router.post("/{photo_id}/view")
def record_story_view(
    photo_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
):
    """Mark a story as seen. Viewing your own story is not recorded."""
    recorded = story_service.record_view(current_user.id, photo_id)
    return {"recorded": recorded}


@router.get("/{photo_id}/viewers", response_model=StoryViewersResponse)
def get_story_viewers(
    photo_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 50,
):
    viewers, total = story_service.list_viewers(current_user.id, photo_id, page, page_size)
    return StoryViewersResponse(viewers=viewers, total=total, page=page, page_size=page_size)


@router.post("/{photo_id}/like", response_model=StoryLikeResponse)
def like_story(
    photo_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
):
    return story_service.like_photo(current_user, photo_id)


@router.delete("/{photo_id}/like", response_model=StoryLikeResponse)
def unlike_story(
    photo_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
):
    return story_service.unlike_photo(current_user.id, photo_id)


@router.get("/{photo_id}/likers", response_model=StoryLikersResponse)
def get_story_likers(
    photo_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
):
    return StoryLikersResponse(likers=story_service.list_likers(current_user.id, photo_id))


@router.get("/{photo_id}/interactions", response_model=StoryInteractionsResponse)
def get_story_interactions(
    photo_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
):
    """Viewers of the current user's story, each flagged with whether they liked it."""
    return story_service.list_interactions(current_user.id, photo_id)


@router.get("/{username}/{date}", response_model=UserStoriesResponse)
def get_user_stories(
    username: str,
    date: str,
    current_user: Annotated[User, Depends(get_current_user)],
    story_service: Annotated[StoryService, Depends(get_story_service)],
):
    return story_service.get_user_stories(current_user.id, username, parse_date(date))
