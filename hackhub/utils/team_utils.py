import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from hackhub.models import Submission, Team, TeamMember, User
from hackhub.models.enums import NotificationType, TeamMemberStatus, TeamRole, TeamStatus
from hackhub.utils.notification_utils import notify_users
from hackhub.utils.permissions import Capability, get_capabilities
from hackhub.utils.submission_utils import get_active_event, get_team_with_members
from hackhub.utils.time_utils import utcnow
from hackhub.utils.window_checker import check_registration_window

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
INVITE_CODE_LENGTH = 6
INVITE_CODE_TTL = timedelta(days=7)


async def generate_invite_code(session: AsyncSession) -> str:
    """Random invite code that no other team uses"""
    while True:
        code = ''.join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))
        existing = await session.execute(select(Team.id).where(Team.invite_code == code))
        if existing.first() is None:
            return code


async def get_accepted_membership(session: AsyncSession, user_id: UUID, event_id: UUID) -> Optional[TeamMember]:
    """The user's accepted membership in any team of the event"""
    result = await session.execute(
        select(TeamMember).where(
            TeamMember.user_id == user_id,
            TeamMember.event_id == event_id,
            TeamMember.status == TeamMemberStatus.ACCEPTED.value
        )
    )
    return result.scalars().first()


async def get_team(session: AsyncSession, team_id: UUID) -> Team:
    team = await get_team_with_members(session, team_id)
    if not team or team.deleted_at is not None:
        raise NotFoundError("Team not found")
    return team


def _by_join_time(member: TeamMember):
    return member.joined_at or member.created_at


def _pick_successor(team: Team, leaving_user_id: UUID) -> Optional[TeamMember]:
    """Earliest-joined remaining admin, else the earliest-joined remaining member"""
    remaining = sorted(
        (member for member in team.get_active_members() if member.user_id != leaving_user_id),
        key=_by_join_time
    )
    for member in remaining:
        if member.role == TeamRole.ADMIN.value:
            return member
    return remaining[0] if remaining else None


async def create_team(
        session: AsyncSession,
        user: User,
        event_id: UUID,
        name: str,
        description: Optional[str] = None
) -> Team:
    """Create a team; the creator becomes its leader and an accepted admin member"""
    event = await get_active_event(session, event_id)
    check_registration_window(event)

    if await get_accepted_membership(session, user.id, event.id):
        raise ConflictError("You are already in a team for this event")

    existing = await session.execute(
        select(Team.id).where(
            Team.event_id == event.id,
            Team.name == name,
            Team.deleted_at.is_(None)
        )
    )
    if existing.first() is not None:
        raise ConflictError("A team with this name already exists in the event")

    now = utcnow()
    team = Team(
        id=uuid.uuid4(),
        event_id=event.id,
        leader_id=user.id,
        name=name,
        description=description,
        invite_code=await generate_invite_code(session),
        invite_expires=now + INVITE_CODE_TTL,
        is_locked=False,
        status=TeamStatus.ACTIVE.value
    )
    session.add(team)
    session.add(TeamMember(
        id=uuid.uuid4(),
        team_id=team.id,
        event_id=event.id,
        user_id=user.id,
        role=TeamRole.ADMIN.value,
        status=TeamMemberStatus.ACCEPTED.value,
        joined_at=now
    ))

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Team name or membership already taken for this event")

    logger.info("Team %s (%s) created in event %s by %s", team.id, name, event_id, user.id)
    return await get_team(session, team.id)


async def join_team(
        session: AsyncSession,
        user: User,
        invite_code: str,
        background_tasks: Optional[BackgroundTasks] = None
) -> Team:
    result = await session.execute(
        select(Team).where(
            Team.invite_code == invite_code.strip().upper(),
            Team.deleted_at.is_(None)
        )
    )
    team = result.scalar_one_or_none()

    now = utcnow()
    if (
            not team
            or team.is_locked
            or team.status != TeamStatus.ACTIVE.value
            or (team.invite_expires is not None and team.invite_expires < now)
    ):
        raise NotFoundError("Invalid or expired invite code")

    team = await get_team(session, team.id)
    event = await get_active_event(session, team.event_id)
    check_registration_window(event, now)

    if await get_accepted_membership(session, user.id, event.id):
        raise ConflictError("You are already in a team for this event")

    if team.is_full(event.max_team_size):
        raise ValidationError("Team is full", details={"max_team_size": event.max_team_size})

    member = team.get_member(user.id)
    if member is not None and member.status in (TeamMemberStatus.PENDING.value, TeamMemberStatus.ACCEPTED.value):
        raise ConflictError("You have already requested to join this team")

    if member is None:
        member = TeamMember(id=uuid.uuid4(), team_id=team.id, event_id=event.id, user_id=user.id)
        session.add(member)
    member.role = TeamRole.MEMBER.value
    member.status = TeamMemberStatus.ACCEPTED.value
    member.joined_at = now
    member.left_at = None

    team_id = team.id
    admin_ids = [admin.user_id for admin in team.get_admins()]
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("You are already in a team for this event")

    logger.info("User %s joined team %s", user.id, team_id)

    await notify_users(
        session,
        admin_ids,
        NotificationType.TEAM_JOIN,
        f"{user.full_name} joined your team",
        reference_type="team",
        reference_id=team_id,
        background_tasks=background_tasks
    )
    return await get_team(session, team_id)


async def update_team_member(
        session: AsyncSession,
        team_id: UUID,
        target_user_id: UUID,
        actor: User,
        role: Optional[TeamRole] = None,
        status: Optional[TeamMemberStatus] = None
) -> TeamMember:
    """
    Change the role or status of a team member

    Only the leader, team admins, the event organizer or platform admins may
    do this; nobody but organizers and admins edits their own membership.
    """
    team = await get_team(session, team_id)
    event = await get_active_event(session, team.event_id)

    capabilities = await get_capabilities(session, actor, event)
    is_organizer = Capability.ORGANIZE in capabilities
    if not (is_organizer or team.leader_id == actor.id or team.is_team_admin(actor.id)):
        raise ForbiddenError("Not authorized to update team members")

    member = team.get_member(target_user_id)
    if not member:
        raise NotFoundError("Team member not found")

    if target_user_id == actor.id and not is_organizer:
        raise ForbiddenError("You cannot modify your own status or role")

    new_role = TeamRole(role).value if role is not None else member.role
    new_status = TeamMemberStatus(status).value if status is not None else member.status

    was_accepted_admin = (
        member.status == TeamMemberStatus.ACCEPTED.value
        and member.role == TeamRole.ADMIN.value
    )
    stays_accepted_admin = (
        new_status == TeamMemberStatus.ACCEPTED.value
        and new_role == TeamRole.ADMIN.value
    )
    if was_accepted_admin and not stays_accepted_admin:
        other_admins = [admin for admin in team.get_admins() if admin.user_id != target_user_id]
        other_members = [m for m in team.get_active_members() if m.user_id != target_user_id]
        if not other_admins and other_members:
            raise ValidationError("A team must have at least one admin")

    now = utcnow()
    if new_status != member.status:
        if new_status == TeamMemberStatus.ACCEPTED.value:
            if team.is_full(event.max_team_size):
                raise ValidationError("Team is full", details={"max_team_size": event.max_team_size})
            if await get_accepted_membership(session, target_user_id, event.id):
                raise ConflictError("User is already in a team for this event")
            member.joined_at = now
            member.left_at = None
        elif member.status == TeamMemberStatus.ACCEPTED.value:
            member.left_at = now
            if team.leader_id == target_user_id:
                successor = _pick_successor(team, target_user_id)
                if successor:
                    team.leader_id = successor.user_id
                    successor.role = TeamRole.ADMIN.value

    member.role = new_role
    member.status = new_status

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("User is already in a team for this event")

    await session.refresh(member)
    return member


async def leave_team(session: AsyncSession, team_id: UUID, user: User) -> Optional[Team]:
    """
    Leave a team, handing leadership over when the leader leaves

    The new leader is the earliest-joined other admin, otherwise the
    earliest-joined other member, who is promoted to admin. A team left empty
    is withdrawn, unless it already has submissions.

    Returns:
        Team: the team, or None when it was withdrawn
    """
    team = await get_team(session, team_id)

    member = team.get_member(user.id)
    if not member or member.status != TeamMemberStatus.ACCEPTED.value:
        raise NotFoundError("You are not a member of this team")

    successor = _pick_successor(team, user.id)
    now = utcnow()

    if successor is None:
        submission_count = await session.scalar(
            select(func.count(Submission.id)).where(
                Submission.team_id == team.id,
                Submission.deleted_at.is_(None)
            )
        )
        if submission_count:
            raise ValidationError("The last member cannot leave a team that has submissions")

    member.status = TeamMemberStatus.LEFT.value
    member.left_at = now

    withdrawn = False
    if successor is None:
        team.status = TeamStatus.WITHDRAWN.value
        team.deleted_at = now
        withdrawn = True
    elif team.leader_id == user.id or not [a for a in team.get_admins() if a.user_id != user.id]:
        if team.leader_id == user.id:
            team.leader_id = successor.user_id
        successor.role = TeamRole.ADMIN.value

    team_id = team.id
    await session.commit()
    logger.info("User %s left team %s%s", user.id, team_id, " (team withdrawn)" if withdrawn else "")

    if withdrawn:
        return None
    return await get_team(session, team_id)


async def regenerate_invite_code(session: AsyncSession, team_id: UUID, user: User) -> Team:
    team = await get_team(session, team_id)
    event = await get_active_event(session, team.event_id)

    capabilities = await get_capabilities(session, user, event)
    if not (Capability.ORGANIZE in capabilities or team.leader_id == user.id or team.is_team_admin(user.id)):
        raise ForbiddenError("Not authorized to regenerate the invite code")

    team.invite_code = await generate_invite_code(session)
    team.invite_expires = utcnow() + INVITE_CODE_TTL

    await session.commit()
    return await get_team(session, team.id)

