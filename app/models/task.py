from sqlalchemy import Column, String, Text, Boolean, Integer, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from ..db.database import Base
from .base import BaseModel, utcnow


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    REGULAR = "regular"
    HIGH = "high"
    URGENT = "urgent"


class Task(BaseModel):
    """Task model"""
    __tablename__ = "tasks"

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String(50), nullable=False, default=TaskStatus.PENDING.value)
    priority = Column(String(50), nullable=False, default=TaskPriority.REGULAR.value)
    due_date = Column(DateTime(timezone=True))
    archived = Column(Boolean, nullable=False, default=False)
    is_system = Column(Boolean, nullable=False, default=False)

    project = relationship("Project", back_populates="tasks")
    assignments = relationship("TaskAssignment", back_populates="task", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Task(id={self.id}, name='{self.name}', status='{self.status}')>"


class TaskAssignment(Base):
    """Many-to-many between tasks and the users working on them"""
    __tablename__ = "task_assignments"

    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    task = relationship("Task", back_populates="assignments")
