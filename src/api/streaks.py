"""Streak and badge endpoints."""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.api.dependencies import get_badge_service, get_current_user, get_streak_service
from src.database import get_db
from src.models.user import User
from src.schemas.streak import BadgesResponse, NextBadge, StreakResponse
from src.services.dates import parse_date, today
from src.services.privacy import get_visible_user
from src.services.streak_service import BadgeService, StreakService, next_badge

router = APIRouter(prefix="/api/v1", tags=["streaks"])


def _badges_response(badge_service: BadgeService, streak_service: StreakService, user_id: int):
    latest = streak_service.get_latest(user_id)
    upcoming = next_badge(latest.longest if latest else 0)
    return BadgesResponse(
        badges=badge_service.list_for_user(user_id),
        next_badge=NextBadge(**asdict(upcoming)) if upcoming else None,
    )


@router.get("/streaks/{username}", response_model=StreakResponse)
def get_streak(
    username: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    streak_service: Annotated[StreakService, Depends(get_streak_service)],
    date: Annotated[str | None, Query(description="YYYY-MM-DD, defaults to today")] = None,
):
    """Get a user's streak as of a date."""
    day = parse_date(date) if date else today()
    user = get_visible_user(db, username, current_user.id)

    streak = streak_service.get_for_date(user.id, day)
    return StreakResponse(
        date=day,
        current=streak.current if streak else 0,
        longest=streak.longest if streak else 0,
    )


@router.get("/badges", response_model=BadgesResponse)
def get_my_badges(
    current_user: Annotated[User, Depends(get_current_user)],
    badge_service: Annotated[BadgeService, Depends(get_badge_service)],
    streak_service: Annotated[StreakService, Depends(get_streak_service)],
):
    """Get the current user's badges and the next one to earn."""
    return _badges_response(badge_service, streak_service, current_user.id)


@router.get("/badges/{username}", response_model=BadgesResponse)
def get_user_badges(
    username: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    badge_service: Annotated[BadgeService, Depends(get_badge_service)],
    streak_service: Annotated[StreakService, Depends(get_streak_service)],
):
    user = get_visible_user(db, username, current_user.id)
    return _badges_response(badge_service, streak_service, user.id)
