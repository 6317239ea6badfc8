"""Request validation for time entry create/update"""
from datetime import datetime
from typing import Optional

from ..core.errors import InvalidInputError
from ..utils.time_parser import TimeParseError, parse_clock_time, parse_time_input


class TimeEntryValidationError(InvalidInputError):
    pass


def _apply_clock_strings(req) -> None:
    """Fill start/end hours and minutes from free-form clock strings ("9:30 AM")"""
    try:
        if getattr(req, "start_clock", None):
            req.start_hours, req.start_minutes = parse_clock_time(req.start_clock)
        if getattr(req, "end_clock", None):
            req.end_hours, req.end_minutes = parse_clock_time(req.end_clock)
    except TimeParseError as e:
        raise TimeEntryValidationError(str(e))


def has_start_components(req) -> bool:
    return req.start_hours is not None and req.start_minutes is not None


def has_end_components(req) -> bool:
    return req.end_hours is not None and req.end_minutes is not None


def validate_duration(duration: str) -> int:
    try:
        return parse_time_input(duration)
    except TimeParseError as e:
        raise TimeEntryValidationError(str(e))


def validate_create_request(req) -> Optional[int]:
    """Validate a create request; returns parsed duration seconds for duration mode."""
    _apply_clock_strings(req)

    if not req.user_id or not req.task_id:
        raise TimeEntryValidationError("User ID and task ID are required")

    has_iso = bool(req.start_time and req.end_time)
    has_components = has_start_components(req) and has_end_components(req)
    has_duration = bool(req.duration and req.duration.strip())

    if not (has_iso or has_components or has_duration):
        raise TimeEntryValidationError("Either start/end times or duration must be provided")

    if has_components and not has_iso and not req.task_date:
        raise TimeEntryValidationError("Task date is required when using start/end hours")

    if has_duration and not (has_iso or has_components):
        return validate_duration(req.duration)
    return None


UPDATE_FIELDS = (
    "task_id", "start_time", "end_time", "start_hours", "start_minutes", "end_hours", "end_minutes",
    "duration", "duration_manual", "created_at", "notes",
)


def validate_update_request(req) -> Optional[int]:
    _apply_clock_strings(req)

    if not any(getattr(req, field, None) is not None for field in UPDATE_FIELDS):
        raise TimeEntryValidationError("At least one field must be provided for update")

    for side in ("start", "end"):
        if (getattr(req, f"{side}_hours") is None) != (getattr(req, f"{side}_minutes") is None):
            raise TimeEntryValidationError(f"{side.capitalize()} hours and minutes must be provided together")

    uses_components = has_start_components(req) or has_end_components(req)
    if uses_components and not req.task_date:
        raise TimeEntryValidationError("Task date is required when using start/end hours")

    if req.duration is not None and req.duration.strip():
        return validate_duration(req.duration)
    return None


def validate_time_order(start: datetime, end: datetime) -> None:
    if end <= start:
        raise TimeEntryValidationError("End time must be after start time")
