"""Calendar helpers. Days roll over in the configured app timezone."""

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.config import get_settings
from src.services.errors import ValidationError

DATE_FORMAT = "%Y-%m-%d"


def app_zone() -> ZoneInfo:
    """Get the zone that defines calendar days."""
    return ZoneInfo(get_settings().app_timezone)


def load_zone(name: str | None) -> ZoneInfo:
    """Load an IANA zone, falling back to UTC for unknown or empty names."""
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def today() -> date:
    """Today's date in the app timezone."""
    return datetime.now(UTC).astimezone(app_zone()).date()


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string, raising INVALID_DATE on bad input."""
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise ValidationError(
            "Invalid date format. Use YYYY-MM-DD", code="INVALID_DATE"
        ) from e


def format_display_date(value: date) -> str:
    """Format a date as "2 Jan, 2006"."""
    return f"{value.day} {value.strftime('%b')}, {value.year}"
