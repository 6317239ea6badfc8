from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    archived: Optional[bool] = None


class Client(ClientBase):
    id: int
    created_by: Optional[int] = None
    archived: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ArchiveToggle(BaseModel):
    archived: bool = True
