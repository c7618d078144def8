from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
import uuid

from hackhub.db import Base
from hackhub.models.enums import EventStatus, JudgeRole, JudgeStatus
from hackhub.utils.time_utils import utcnow


class Event(Base):
    """Hackathon event: a competition window with its own judging criteria"""
    __tablename__ = 'events'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organizer_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=False)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    registration_start = Column(DateTime, nullable=False)
    registration_end = Column(DateTime, nullable=False)
    submission_deadline = Column(DateTime, nullable=True)
    judging_end = Column(DateTime, nullable=True)

    max_team_size = Column(Integer, nullable=False, default=5)
    min_team_size = Column(Integer, nullable=False, default=1)
    # [{"id": "c1", "name": "Innovation", "max_score": 10}, ...]
    judging_criteria = Column(JSON, nullable=False, default=list)

    status = Column(String(20), nullable=False, default=EventStatus.DRAFT.value, index=True)
    is_published = Column(Boolean, nullable=False, default=False, index=True)
    published_at = Column(DateTime, nullable=True)
    is_leaderboard_public = Column(Boolean, nullable=False, default=False)
    timezone = Column(String(64), nullable=False, default="UTC")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    organizer = relationship("User")
    judges = relationship("EventJudge", back_populates="event")
    teams = relationship("Team", back_populates="event")

    @property
    def criteria(self) -> List[dict]:
        return list(self.judging_criteria or [])

    @property
    def judging_closes_at(self) -> datetime:
        return self.judging_end or self.end_date

    def is_registration_open(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.registration_start <= now <= self.registration_end

    def is_submission_open(self, now: Optional[datetime] = None) -> bool:
        if not self.submission_deadline:
            return False
        now = now or utcnow()
        return now <= self.submission_deadline and now <= self.end_date

    def is_judging_open(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return now <= self.judging_closes_at


class EventJudge(Base):
    """Judge (or mentor/reviewer) invitation for an event"""
    __tablename__ = 'event_judges'
    __table_args__ = (
        UniqueConstraint('event_id', 'user_id', name='uq_event_judge'),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey('events.id'), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True)
    invited_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=True)
    role = Column(String(20), nullable=False, default=JudgeRole.JUDGE.value)
    status = Column(String(20), nullable=False, default=JudgeStatus.PENDING.value, index=True)
    invited_at = Column(DateTime, default=utcnow, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    # Relationships
    event = relationship("Event", back_populates="judges")
    user = relationship("User", foreign_keys=[user_id])
