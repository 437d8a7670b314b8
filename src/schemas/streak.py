"""Streak and badge schemas."""

from datetime import date

from pydantic import BaseModel


class StreakResponse(BaseModel):
    date: date
    current: int
    longest: int


class BadgeResponse(BaseModel):
    key: str
    name: str
    icon: str
    color: str
    threshold: int
    earned_at: date


class NextBadge(BaseModel):
    key: str
    name: str
    icon: str
    color: str
    threshold: int


class BadgesResponse(BaseModel):
    badges: list[BadgeResponse]
    next_badge: NextBadge | None
