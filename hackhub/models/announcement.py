import uuid
from sqlalchemy import Column, ForeignKey, Boolean, String, Text, DateTime, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from hackhub.db import Base
from hackhub.utils.time_utils import utcnow


class Announcement(Base):
    """Message posted by an organizer to the people of one event"""
    __tablename__ = 'announcements'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey('events.id'), nullable=False, index=True)
    created_by_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    is_pinned = Column(Boolean, nullable=False, default=False)
    # public: participants and judges, otherwise judges only
    is_public = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    event = relationship("Event")
    created_by = relationship("User")
    recipients = relationship("AnnouncementRecipient", back_populates="announcement")


class AnnouncementRecipient(Base):
    """Delivery of an announcement to one user, with its read state"""
    __tablename__ = 'announcement_recipients'
    __table_args__ = (
        UniqueConstraint('announcement_id', 'user_id', name='uq_announcement_recipient'),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    announcement_id = Column(UUID(as_uuid=True), ForeignKey('announcements.id'), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    announcement = relationship("Announcement", back_populates="recipients")
    user = relationship("User")
