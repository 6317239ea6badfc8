from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class TimeEntryCreate(BaseModel):
    """
    One of three modes:
    - start_time + end_time as ISO strings
    - start/end hours and minutes (or clock strings) on task_date in the browser's timezone
    - duration string such as "2h 15m"
    """
    user_id: Optional[int] = None
    task_id: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_hours: Optional[int] = Field(None, ge=0, le=23)
    start_minutes: Optional[int] = Field(None, ge=0, le=59)
    end_hours: Optional[int] = Field(None, ge=0, le=23)
    end_minutes: Optional[int] = Field(None, ge=0, le=59)
    start_clock: Optional[str] = None
    end_clock: Optional[str] = None
    task_date: Optional[str] = None
    timezone_offset: int = 0
    duration: Optional[str] = None
    notes: Optional[str] = None


class TimeEntryUpdate(BaseModel):
    task_id: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_hours: Optional[int] = Field(None, ge=0, le=23)
    start_minutes: Optional[int] = Field(None, ge=0, le=59)
    end_hours: Optional[int] = Field(None, ge=0, le=23)
    end_minutes: Optional[int] = Field(None, ge=0, le=59)
    start_clock: Optional[str] = None
    end_clock: Optional[str] = None
    task_date: Optional[str] = None
    timezone_offset: int = 0
    duration: Optional[str] = None
    duration_manual: Optional[int] = Field(None, ge=0)
    created_at: Optional[str] = None
    notes: Optional[str] = None


class TimeEntry(BaseModel):
    id: int
    task_id: int
    user_id: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_manual: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DurationParseRequest(BaseModel):
    value: str


class TimerStart(BaseModel):
    task_id: Optional[int] = None
    notes: Optional[str] = None
    client_time: Optional[int] = None  # epoch millis from the browser


class TimerStop(BaseModel):
    notes: Optional[str] = None
    client_time: Optional[int] = None
