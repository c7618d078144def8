import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hackhub.models.enums import SubmissionStatus


class SubmissionCreate(BaseModel):
    """Fields of a new submission, sent as a multipart form"""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    github_url: Optional[str] = Field(None, max_length=1024)
    video_url: Optional[str] = Field(None, max_length=1024)
    submission_note: Optional[str] = None
    is_public: bool = False
    is_draft: bool = False


class SubmissionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    github_url: Optional[str] = Field(None, max_length=1024)
    video_url: Optional[str] = Field(None, max_length=1024)
    submission_note: Optional[str] = None
    is_public: Optional[bool] = None
    finalize: bool = False


class SubmissionStatusUpdate(BaseModel):
    status: SubmissionStatus


class SubmissionResponse(BaseModel):
    id: UUID
    event_id: UUID
    team_id: UUID
    submitted_by_id: UUID
    title: str
    description: str
    github_url: Optional[str] = None
    video_url: Optional[str] = None
    file_url: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    submission_note: Optional[str] = None
    is_public: bool
    status: str
    average_score: Optional[float] = None
    total_evaluations: int
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


class SubmissionListResponse(BaseModel):
    items: List[SubmissionResponse]
    total: int
    limit: int
    offset: int
