import uuid
from sqlalchemy import Column, ForeignKey, Integer, Float, String, Text, DateTime, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from hackhub.db import Base
from hackhub.models.enums import EvaluationStatus
from hackhub.utils.time_utils import utcnow


class Evaluation(Base):
    """One judge's scoring of one submission in one judging round"""
    __tablename__ = 'evaluations'
    __table_args__ = (
        UniqueConstraint('submission_id', 'judge_id', 'round', name='uq_evaluation_judge_submission_round'),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(UUID(as_uuid=True), ForeignKey('submissions.id'), nullable=False, index=True)
    judge_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True)
    # weak reference, used for criteria lookups only
    event_id = Column(UUID(as_uuid=True), ForeignKey('events.id'), nullable=False)
    round = Column(Integer, nullable=False, default=1)

    score = Column(Float, nullable=False)
    criteria_scores = Column(JSON, nullable=False, default=dict)
    feedback = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=EvaluationStatus.SUBMITTED.value)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    submission = relationship("Submission", back_populates="evaluations")
    judge = relationship("User")
