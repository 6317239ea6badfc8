from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ProjectBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    client_id: int


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    client_id: Optional[int] = None
    archived: Optional[bool] = None


class Project(ProjectBase):
    id: int
    archived: bool
    is_system: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectStats(BaseModel):
    project_id: int
    task_count: int
    total_seconds: int
    total_hours: str
