import uuid
from sqlalchemy import Column, ForeignKey, Boolean, Text, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from hackhub.db import Base
from hackhub.utils.time_utils import utcnow


class Comment(Base):
    """Discussion comment on a submission"""
    __tablename__ = 'comments'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    submission_id = Column(UUID(as_uuid=True), ForeignKey('submissions.id'), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True)
    parent_id = Column(UUID(as_uuid=True), ForeignKey('comments.id'), nullable=True, index=True)
    content = Column(Text, nullable=False)
    # only visible to judges, organizers and admins
    is_internal = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    submission = relationship("Submission", back_populates="comments")
    user = relationship("User")
