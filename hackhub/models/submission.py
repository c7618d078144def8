from sqlalchemy import Column, String, Text, Integer, Float, Boolean, ForeignKey, DateTime, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
import uuid

from hackhub.db import Base
from hackhub.models.enums import SubmissionStatus
from hackhub.utils.time_utils import utcnow


class Submission(Base):
    """Project entry of a team for an event"""
    __tablename__ = 'submissions'
    __table_args__ = (
        Index('ix_submissions_event_team', 'event_id', 'team_id'),
        # at most one non-draft submission per team per event
        Index(
            'uq_submission_team_event_active', 'team_id', 'event_id',
            unique=True,
            postgresql_where=text("status <> 'draft' AND deleted_at IS NULL"),
            sqlite_where=text("status <> 'draft' AND deleted_at IS NULL"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey('events.id'), nullable=False)
    team_id = Column(UUID(as_uuid=True), ForeignKey('teams.id'), nullable=False)
    submitted_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    github_url = Column(String(1024), nullable=True)
    video_url = Column(String(1024), nullable=True)
    file_url = Column(String(1024), nullable=True)
    file_type = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    submission_note = Column(Text, nullable=True)
    is_public = Column(Boolean, nullable=False, default=False)

    status = Column(String(20), nullable=False, default=SubmissionStatus.DRAFT.value, index=True)
    # derived from evaluations, written only by score_utils.recalculate_scores
    average_score = Column(Float, nullable=True)
    total_evaluations = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    event = relationship("Event")
    team = relationship("Team")
    submitted_by = relationship("User")
    evaluations = relationship(
        "Evaluation",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="Evaluation.created_at",
    )
    comments = relationship("Comment", back_populates="submission", cascade="all, delete-orphan")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
