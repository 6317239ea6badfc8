from typing import Optional
from pydantic import BaseModel, Field
from ..models.collaboration import DiscussionType


class DiscussionCreate(BaseModel):
    content: str = Field(..., min_length=1)
    task_id: Optional[int] = None
    type: DiscussionType = DiscussionType.COMMENT


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)


class NoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str
    task_id: Optional[int] = None
    is_private: bool = False


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    is_private: Optional[bool] = None


class LinkCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    url: str
    description: Optional[str] = None
    task_id: Optional[int] = None


class CollaborationTaskAssign(BaseModel):
    task_id: int
    user_id: int
