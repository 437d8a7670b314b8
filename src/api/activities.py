"""Activity logging and analytics endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import get_activity_service, get_current_user
from src.models.user import User
from src.schemas.activity import (
    ActivityCreate,
    ActivityResponse,
    DailyTotal,
    WeekAnalyticsResponse,
)
from src.services.activity_service import ActivityService
from src.services.dates import parse_date, today

router = APIRouter(prefix="/api/v1/activities", tags=["activities"])


@router.post("", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
def create_or_update_activity(
    activity_data: ActivityCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    activity_service: Annotated[ActivityService, Depends(get_activity_service)],
):
    """Set the hours spent on an activity for a day."""
    activity = activity_service.create_or_update(
        current_user,
        activity_data.name,
        activity_data.hours,
        parse_date(activity_data.date),
        activity_data.note,
    )
    return ActivityResponse(
        id=activity.id,
        name=activity.name,
        hours=activity.duration_hours,
        date=activity.activity_date,
        note=activity.note,
    )


@router.get("/me/week-analytics", response_model=WeekAnalyticsResponse)
def get_week_analytics(
    current_user: Annotated[User, Depends(get_current_user)],
    activity_service: Annotated[ActivityService, Depends(get_activity_service)],
    week_start: Annotated[str, Query(description="Monday, YYYY-MM-DD")],
):
    """Weekly analytics for the current user."""
    return activity_service.week_analytics(current_user, parse_date(week_start), today())


@router.get("/{username}", response_model=list[ActivityResponse])
def get_activities(
    username: str,
    current_user: Annotated[User, Depends(get_current_user)],
    activity_service: Annotated[ActivityService, Depends(get_activity_service)],
    start_date: Annotated[str, Query()],
    end_date: Annotated[str, Query()],
):
    """Get a user's activities between two dates (inclusive)."""
    return activity_service.get_activities(
        current_user.id, username, parse_date(start_date), parse_date(end_date)
    )


@router.get("/{username}/daily-totals", response_model=list[DailyTotal])
def get_daily_totals(
    username: str,
    current_user: Annotated[User, Depends(get_current_user)],
    activity_service: Annotated[ActivityService, Depends(get_activity_service)],
    start_date: Annotated[str, Query()],
    end_date: Annotated[str, Query()],
):
    """Get a user's total hours per day, for at most 93 days."""
    return activity_service.daily_totals(
        current_user.id, username, parse_date(start_date), parse_date(end_date)
    )
