"""Activity schemas."""

from datetime import date

from pydantic import BaseModel, Field


class ActivityCreate(BaseModel):
    """Set the hours of one activity on one day."""

    name: str = Field(..., min_length=1, max_length=50)
    hours: float = Field(..., ge=0, le=24)
    date: str = Field(..., description="YYYY-MM-DD")
    note: str | None = Field(None, max_length=500)


class ActivityResponse(BaseModel):
    id: int
    name: str
    hours: float
    date: date
    note: str | None = None


class DailyTotal(BaseModel):
    date: date
    total_hours: float


class DayActivity(BaseModel):
    name: str
    hours: float


class DailyBreakdown(BaseModel):
    date: date
    day_name: str
    total_hours: float
    activities: list[DayActivity]


class ActivitySummary(BaseModel):
    name: str
    total_hours: float


class StreakInfo(BaseModel):
    current: int
    longest: int


class WeekAnalyticsResponse(BaseModel):
    """Totals and breakdowns for one Monday-based week."""

    total_hours_this_week: float
    total_hours_prev_week: float
    total_hours_current_week: float
    percentage_change: float
    percentage_vs_current: float
    is_current_week: bool
    streak: StreakInfo
    daily_breakdown: list[DailyBreakdown]
    activity_summary: list[ActivitySummary]
