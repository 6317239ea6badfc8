from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from ..models.task import TaskStatus, TaskPriority


class TaskBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.REGULAR
    due_date: Optional[datetime] = None


class TaskCreate(TaskBase):
    project_id: int
    assigned_to: List[int] = []


class TaskUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    archived: Optional[bool] = None
    project_id: Optional[int] = None


class Task(TaskBase):
    id: int
    project_id: int
    status: str
    priority: str
    archived: bool
    is_system: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TaskAssign(BaseModel):
    user_ids: List[int] = Field(..., min_length=1)
