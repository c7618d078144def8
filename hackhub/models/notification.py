import uuid
from sqlalchemy import Column, ForeignKey, Boolean, String, DateTime
from sqlalchemy.dialects.postgresql import UUID

from hackhub.db import Base
from hackhub.utils.time_utils import utcnow


class Notification(Base):
    """In-app notification for a user"""
    __tablename__ = 'notifications'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    message = Column(String(512), nullable=False)
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(UUID(as_uuid=True), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, index=True)
