from typing import List, Optional

from sqlalchemy import Column, String, Text, Boolean, ForeignKey, DateTime, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
import uuid

from hackhub.db import Base
from hackhub.models.enums import TeamMemberStatus, TeamRole, TeamStatus
from hackhub.utils.time_utils import utcnow


class Team(Base):
    """Team of participants for one event"""
    __tablename__ = 'teams'
    __table_args__ = (
        Index(
            'uq_team_event_name', 'event_id', 'name',
            unique=True,
            postgresql_where=text('deleted_at IS NULL'),
            sqlite_where=text('deleted_at IS NULL'),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    event_id = Column(UUID(as_uuid=True), ForeignKey('events.id'), nullable=False, index=True)
    leader_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    invite_code = Column(String(6), unique=True, nullable=False)
    invite_expires = Column(DateTime, nullable=True)
    is_locked = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), nullable=False, default=TeamStatus.ACTIVE.value)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    event = relationship("Event", back_populates="teams")
    leader = relationship("User")
    members = relationship("TeamMember", back_populates="team", order_by="TeamMember.created_at")

    def get_active_members(self) -> List["TeamMember"]:
        """Accepted members of the team"""
        return [
            member for member in self.members
            if member.status == TeamMemberStatus.ACCEPTED.value
        ]

    def get_admins(self) -> List["TeamMember"]:
        return [
            member for member in self.get_active_members()
            if member.role == TeamRole.ADMIN.value
        ]

    def get_member(self, user_id) -> Optional["TeamMember"]:
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None

    def is_active_member(self, user_id) -> bool:
        member = self.get_member(user_id)
        return member is not None and member.status == TeamMemberStatus.ACCEPTED.value

    def is_team_admin(self, user_id) -> bool:
        member = self.get_member(user_id)
        return (
            member is not None
            and member.status == TeamMemberStatus.ACCEPTED.value
            and member.role == TeamRole.ADMIN.value
        )

    def is_full(self, max_team_size: int) -> bool:
        return len(self.get_active_members()) >= max_team_size


class TeamMember(Base):
    """Membership of a user in a team"""
    __tablename__ = 'team_members'
    __table_args__ = (
        UniqueConstraint('team_id', 'user_id', name='uq_team_member'),
        # one accepted membership per user per event, across teams
        Index(
            'uq_team_member_event_user_accepted', 'event_id', 'user_id',
            unique=True,
            postgresql_where=text("status = 'accepted'"),
            sqlite_where=text("status = 'accepted'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    team_id = Column(UUID(as_uuid=True), ForeignKey('teams.id'), nullable=False)
    event_id = Column(UUID(as_uuid=True), ForeignKey('events.id'), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id'), nullable=False, index=True)
    role = Column(String(20), nullable=False, default=TeamRole.MEMBER.value)
    status = Column(String(20), nullable=False, default=TeamMemberStatus.PENDING.value)
    joined_at = Column(DateTime, nullable=True)
    left_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, onupdate=utcnow)

    # Relationships
    team = relationship("Team", back_populates="members")
    user = relationship("User", back_populates="team_members")
