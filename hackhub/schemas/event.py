import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from hackhub.models.enums import JudgeRole
from hackhub.utils.time_utils import to_naive_utc

DATE_FIELDS = (
    "start_date", "end_date", "registration_start", "registration_end",
    "submission_deadline", "judging_end",
)


class JudgingCriterion(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    max_score: float = Field(..., gt=0, le=100)


class EventBase(BaseModel):
    @field_validator(*DATE_FIELDS, mode="after", check_fields=False)
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class EventCreate(EventBase):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    start_date: datetime.datetime
    end_date: datetime.datetime
    registration_start: datetime.datetime
    registration_end: datetime.datetime
    submission_deadline: Optional[datetime.datetime] = None
    judging_end: Optional[datetime.datetime] = None
    max_team_size: int = Field(5, ge=1, le=10)
    min_team_size: int = Field(1, ge=1)
    judging_criteria: List[JudgingCriterion] = []
    is_leaderboard_public: bool = False
    timezone: str = "UTC"


class EventUpdate(EventBase):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    start_date: Optional[datetime.datetime] = None
    end_date: Optional[datetime.datetime] = None
    registration_start: Optional[datetime.datetime] = None
    registration_end: Optional[datetime.datetime] = None
    submission_deadline: Optional[datetime.datetime] = None
    judging_end: Optional[datetime.datetime] = None
    max_team_size: Optional[int] = Field(None, ge=1, le=10)
    min_team_size: Optional[int] = Field(None, ge=1)
    judging_criteria: Optional[List[JudgingCriterion]] = None
    is_leaderboard_public: Optional[bool] = None
    timezone: Optional[str] = None


class EventResponse(BaseModel):
    id: UUID
    organizer_id: UUID
    title: str
    slug: str
    description: str
    start_date: datetime.datetime
    end_date: datetime.datetime
    registration_start: datetime.datetime
    registration_end: datetime.datetime
    submission_deadline: Optional[datetime.datetime] = None
    judging_end: Optional[datetime.datetime] = None
    max_team_size: int
    min_team_size: int
    judging_criteria: List[JudgingCriterion]
    status: str
    is_published: bool
    published_at: Optional[datetime.datetime] = None
    is_leaderboard_public: bool
    timezone: str
    created_at: datetime.datetime

    class Config:
        from_attributes = True


class EventListResponse(BaseModel):
    items: List[EventResponse]
    total: int
    limit: int
    offset: int


class JudgeInvite(BaseModel):
    user_id: UUID
    role: JudgeRole = JudgeRole.JUDGE


class JudgeInvitationResponse(BaseModel):
    accept: bool


class EventJudgeResponse(BaseModel):
    id: UUID
    event_id: UUID
    user_id: UUID
    role: str
    status: str
    invited_at: datetime.datetime
    responded_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True
