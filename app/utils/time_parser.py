"""
Parsing and formatting of user-entered durations and clock times.

Durations are always whole seconds, capped at one day.
"""
import re
from datetime import datetime
from typing import Tuple

from ..core.errors import InvalidInputError

MAX_DURATION_SECONDS = 24 * 3600

_NUMBER = r"(\d+(?:\.\d+)?)"
_HOURS = r"(?:h|hr|hrs|hour|hours)"
_MINUTES = r"(?:m|min|mins|minute|minutes)"
_SECONDS = r"(?:s|sec|secs|second|seconds)"

_HOUR_RE = re.compile(rf"^{_NUMBER}\s*{_HOURS}$")
_MINUTE_RE = re.compile(rf"^{_NUMBER}\s*{_MINUTES}$")
_SECOND_RE = re.compile(rf"^{_NUMBER}\s*{_SECONDS}$")
_CLOCK_DURATION_RE = re.compile(r"^(\d+):(\d{1,2})(?::(\d{1,2}))?$")
_COMBINED_RE = re.compile(
    rf"^{_NUMBER}\s*{_HOURS}\s+{_NUMBER}\s*{_MINUTES}(?:\s+{_NUMBER}\s*{_SECONDS})?$"
)
_DECIMAL_RE = re.compile(rf"^{_NUMBER}$")

_MERIDIEM_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(a|am|p|pm)$")
_FOUR_DIGIT_MERIDIEM_RE = re.compile(r"^(\d{3,4})\s*(a|am|p|pm)$")
_24H_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

SUPPORTED_DURATION_FORMATS = "2h, 2hr, 3.5hr, 4:15, 90m, 5400s, 0h 30m, etc."


class TimeParseError(InvalidInputError):
    """Raised when a duration or clock time cannot be understood"""


def _bounded(seconds: float) -> int:
    result = int(round(seconds))
    if result < 0 or result > MAX_DURATION_SECONDS:
        raise TimeParseError("Duration must be between 0 and 24 hours")
    return result


def parse_time_input(value: str) -> int:
    """Parse a duration such as "2h", "90m", "1:30" or "2h 15m" into seconds.

    A bare number is read as hours.
    """
    if value is None or not isinstance(value, str) or not value.strip():
        raise TimeParseError("Input cannot be empty")
    text = value.strip().lower()

    match = _HOUR_RE.match(text)
    if match:
        return _bounded(float(match.group(1)) * 3600)

    match = _MINUTE_RE.match(text)
    if match:
        return _bounded(float(match.group(1)) * 60)

    match = _SECOND_RE.match(text)
    if match:
        return _bounded(float(match.group(1)))

    match = _CLOCK_DURATION_RE.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        seconds = int(match.group(3)) if match.group(3) else 0
        return _bounded(hours * 3600 + minutes * 60 + seconds)

    match = _COMBINED_RE.match(text)
    if match:
        hours, minutes = float(match.group(1)), float(match.group(2))
        seconds = float(match.group(3)) if match.group(3) else 0
        return _bounded(hours * 3600 + minutes * 60 + seconds)

    match = _DECIMAL_RE.match(text)
    if match:
        return _bounded(float(match.group(1)) * 3600)

    raise TimeParseError(f"Invalid time format: {value}. Supported formats: {SUPPORTED_DURATION_FORMATS}")


def parse_clock_time(value: str) -> Tuple[int, int]:
    """Parse a wall-clock time ("9:30 AM", "5:30p", "930am", "17:45") into (hours, minutes) on a 24h clock."""
    if value is None or not value.strip():
        raise TimeParseError("Time cannot be empty")
    text = value.strip().lower()
    meridiem = None

    match = _MERIDIEM_RE.match(text)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2)) if match.group(2) else 0
        meridiem = match.group(3)
    else:
        match = _FOUR_DIGIT_MERIDIEM_RE.match(text)
        if match:
            digits = match.group(1)
            hours, minutes = int(digits[:-2]), int(digits[-2:])
            meridiem = match.group(2)
        else:
            match = _24H_RE.match(text)
            if not match:
                raise TimeParseError(
                    f"Invalid time format: {value}. Supported formats: 12p, 12:30am, 1230 p, 12:00 PM, 12am, etc."
                )
            hours, minutes = int(match.group(1)), int(match.group(2))

    if meridiem is not None:
        if hours < 1 or hours > 12 or minutes > 59:
            raise TimeParseError(f"Invalid time: {value}. Hours must be 1-12 for 12-hour format.")
        is_pm = meridiem.startswith("p")
        if is_pm and hours != 12:
            hours += 12
        elif not is_pm and hours == 12:
            hours = 0

    if hours > 23 or minutes > 59:
        raise TimeParseError(f"Invalid time: {value}. Hours must be 0-23, minutes must be 0-59.")
    return hours, minutes


def format_duration(seconds: int) -> str:
    seconds = int(seconds or 0)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        minutes, rest = divmod(seconds, 60)
        return f"{minutes}m {rest}s" if rest else f"{minutes}m"

    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    rest = seconds % 60
    if not minutes and not rest:
        return f"{hours}h"
    if not rest:
        return f"{hours}h {minutes}m"
    return f"{hours}h {minutes}m {rest}s"


def format_hours(seconds: int) -> str:
    return f"{(seconds or 0) / 3600:.2f}"


def format_time_12h(value: datetime) -> str:
    """Format as 12-hour clock, e.g. 09:05AM"""
    suffix = "PM" if value.hour >= 12 else "AM"
    hour = value.hour % 12 or 12
    return f"{hour:02d}:{value.minute:02d}{suffix}"
