import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AnnouncementCreate(BaseModel):
    event_id: UUID
    title: str = Field(..., min_length=3, max_length=200)
    content: str = Field(..., min_length=1)
    is_pinned: bool = False
    is_public: bool = True


class AnnouncementResponse(BaseModel):
    id: UUID
    event_id: UUID
    created_by_id: UUID
    title: str
    content: str
    is_pinned: bool
    is_public: bool
    created_at: datetime.datetime
    # read state of the current user, None when they are not a recipient
    is_read: Optional[bool] = None

    class Config:
        from_attributes = True


class AnnouncementReadResponse(BaseModel):
    announcement_id: UUID
    is_read: bool
    read_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True
