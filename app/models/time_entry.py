from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel
from ..utils.timezone import ensure_utc


class TimeEntry(BaseModel):
    """
    Time logged by a user against a task.

    Three shapes exist:
    - timed entry: start_time and end_time set, duration_manual holds end - start
    - manual entry: only duration_manual set, start_time/end_time null
    - running timer: start_time set, end_time and duration_manual null
    """
    __tablename__ = "time_entries"

    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True))
    end_time = Column(DateTime(timezone=True))
    duration_manual = Column(Integer)  # seconds
    notes = Column(Text)

    task = relationship("Task")
    user = relationship("User")

    @property
    def is_running(self) -> bool:
        return self.start_time is not None and self.end_time is None and self.duration_manual is None

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None or self.duration_manual is not None

    def duration_seconds(self, now: Optional[datetime] = None) -> int:
        if self.duration_manual is not None:
            return int(self.duration_manual)
        start = ensure_utc(self.start_time)
        if start is not None and self.end_time is not None:
            return max(0, int((ensure_utc(self.end_time) - start).total_seconds()))
        if start is not None and now is not None:
            return max(0, int((ensure_utc(now) - start).total_seconds()))
        return 0

    def __repr__(self):
        return f"<TimeEntry(id={self.id}, task_id={self.task_id}, user_id={self.user_id})>"
