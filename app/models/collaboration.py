"""Content shared inside a team: discussions, files, links and notes"""
import enum
from sqlalchemy import Column, String, Text, Boolean, Integer, BigInteger, ForeignKey
from .base import BaseModel


class DiscussionType(str, enum.Enum):
    INSIGHT = "insight"
    COMMENT = "comment"
    SUBTASK = "subtask"


class TaskDiscussion(BaseModel):
    __tablename__ = "task_discussions"

    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    parent_id = Column(Integer, ForeignKey("task_discussions.id", ondelete="CASCADE"), nullable=True)
    content = Column(Text, nullable=False)
    type = Column(String(50), nullable=False, default=DiscussionType.COMMENT.value)
    likes = Column(Integer, nullable=False, default=0)
    archived = Column(Boolean, nullable=False, default=False)


class TaskFile(BaseModel):
    __tablename__ = "task_files"

    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    filename = Column(String(255), nullable=False)
    file_path = Column(Text, nullable=False)
    file_url = Column(Text)
    file_size = Column(BigInteger)
    mime_type = Column(String(255))
    archived = Column(Boolean, nullable=False, default=False)


class TaskLink(BaseModel):
    __tablename__ = "task_links"

    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    description = Column(Text)
    archived = Column(Boolean, nullable=False, default=False)


class TaskNote(BaseModel):
    __tablename__ = "task_notes"

    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    is_private = Column(Boolean, nullable=False, default=False)
    archived = Column(Boolean, nullable=False, default=False)
