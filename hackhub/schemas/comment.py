from __future__ import annotations

import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    parent_id: Optional[UUID] = None
    is_internal: bool = False


class CommentResponse(BaseModel):
    id: UUID
    submission_id: UUID
    user_id: UUID
    parent_id: Optional[UUID] = None
    content: str
    is_internal: bool
    created_at: datetime.datetime
    replies: List[CommentResponse] = []

    class Config:
        from_attributes = True
