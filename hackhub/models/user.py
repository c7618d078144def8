from hackhub.utils.time_utils import utcnow
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
import uuid

from hackhub.db import Base


class User(Base):
    """User account"""
    __tablename__ = 'users'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(512), nullable=False)
    full_name = Column(String(255), nullable=False, index=True)
    registered_at = Column(DateTime, default=utcnow)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    user2roles = relationship("User2Roles", back_populates="user", lazy="selectin")
    team_members = relationship("TeamMember", back_populates="user")

    @property
    def roles(self):
        return [user2role.role for user2role in self.user2roles]

    @property
    def role_names(self):
        return {role.name for role in self.roles}

    def has_role(self, role_name: str) -> bool:
        return role_name in self.role_names


class User2Roles(Base):
    """Link between a user and a platform role"""
    __tablename__ = 'user_2_roles'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    role_id = Column(UUID(as_uuid=True), ForeignKey('roles.id'), nullable=False)

    # Relationships
    user = relationship("User", back_populates="user2roles")
    role = relationship("Role", back_populates="user2roles", lazy="joined")
