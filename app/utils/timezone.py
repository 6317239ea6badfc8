"""
Conversions between the browser's local wall-clock values and UTC.

Offsets follow ``Date.getTimezoneOffset()``: minutes *behind* UTC, so
UTC-5 is ``300`` and UTC+2 is ``-120``.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from ..core.errors import InvalidInputError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (sqlite, server defaults) as UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(date_str: str) -> date:
    try:
        return date.fromisoformat(date_str[:10])
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid date: {date_str}. Expected YYYY-MM-DD")


def local_to_utc(date_str: str, hours: int, minutes: int, tz_offset_minutes: int = 0) -> datetime:
    """Convert a local date + wall-clock time to an aware UTC datetime"""
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59:
        raise InvalidInputError(f"Invalid time {hours}:{minutes:02d}")
    day = parse_date(date_str)
    local = datetime(day.year, day.month, day.day, hours, minutes, tzinfo=timezone.utc)
    return local + timedelta(minutes=tz_offset_minutes or 0)


def next_day(date_str: str) -> str:
    return (parse_date(date_str) + timedelta(days=1)).isoformat()


def create_user_date(date_str: str, hours: int = 12, minutes: int = 0) -> datetime:
    """Anchor a calendar day at a fixed UTC time (noon by default) so it survives any offset"""
    day = parse_date(date_str)
    return datetime(day.year, day.month, day.day, hours, minutes, tzinfo=timezone.utc)


def from_user_iso_string(value: str) -> datetime:
    if not value:
        raise InvalidInputError("Date/time value is required")
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidInputError(f"Invalid date/time: {value}")
    return ensure_utc(parsed).replace(microsecond=0)


def to_user_iso_string(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def calculate_duration(start: datetime, end: datetime) -> int:
    return int((ensure_utc(end) - ensure_utc(start)).total_seconds() // 1)


def from_client_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
