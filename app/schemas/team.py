from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field
from ..models.team import TeamRole


class TeamBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class TeamCreate(TeamBase):
    project_id: Optional[int] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    archived: Optional[bool] = None


class Team(TeamBase):
    id: int
    created_by: int
    project_id: Optional[int] = None
    archived: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TeamMemberAdd(BaseModel):
    user_id: int
    role: TeamRole = TeamRole.MEMBER


class TeamMemberRoleUpdate(BaseModel):
    role: TeamRole


class TeamProjectLink(BaseModel):
    project_id: int
