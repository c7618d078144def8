import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, constr

from hackhub.models.enums import TeamMemberStatus, TeamRole


class TeamCreate(BaseModel):
    event_id: UUID
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    description: Optional[str] = None


class TeamJoin(BaseModel):
    invite_code: constr(strip_whitespace=True, min_length=6, max_length=6)


class TeamMemberUpdate(BaseModel):
    role: Optional[TeamRole] = None
    status: Optional[TeamMemberStatus] = None


class TeamMemberResponse(BaseModel):
    id: UUID
    user_id: UUID
    role: str
    status: str
    joined_at: Optional[datetime.datetime] = None
    left_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


class TeamResponse(BaseModel):
    id: UUID
    event_id: UUID
    leader_id: UUID
    name: str
    description: Optional[str] = None
    invite_code: Optional[str] = None
    invite_expires: Optional[datetime.datetime] = None
    is_locked: bool
    status: str
    members: List[TeamMemberResponse] = []

    class Config:
        from_attributes = True
