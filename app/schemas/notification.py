from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class Notification(BaseModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
