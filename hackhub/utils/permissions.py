"""
Capability checks for event-scoped actions.

A caller's standing toward an event (platform admin, organizer of the event,
accepted judge of the event, accepted member of a team in the event) is
resolved once, then mapped to capabilities through ``CAPABILITY_POLICY``.
Routers and utils ask for a capability and never compare role strings.
"""
from enum import Enum
from typing import FrozenSet, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import ForbiddenError
from hackhub.models import Event, EventJudge, Team, TeamMember, User
from hackhub.models.enums import JudgeRole, JudgeStatus, TeamMemberStatus, TeamStatus, UserRole


class Capability(str, Enum):
    SUBMIT = "submit"
    JUDGE = "judge"
    ORGANIZE = "organize"
    ADMIN = "admin"


class Standing(str, Enum):
    ADMIN = "admin"
    ORGANIZER_OF = "organizer_of"
    JUDGE_OF = "judge_of"
    MEMBER_OF = "member_of"


# capability -> standings that grant it
CAPABILITY_POLICY = {
    Capability.ADMIN: frozenset({Standing.ADMIN}),
    Capability.ORGANIZE: frozenset({Standing.ADMIN, Standing.ORGANIZER_OF}),
    Capability.JUDGE: frozenset({Standing.ADMIN, Standing.ORGANIZER_OF, Standing.JUDGE_OF}),
    Capability.SUBMIT: frozenset({Standing.MEMBER_OF}),
}


def is_platform_admin(user: Optional[User]) -> bool:
    return user is not None and user.has_role(UserRole.ADMIN.value)


async def is_accepted_judge(session: AsyncSession, user_id, event_id) -> bool:
    result = await session.execute(
        select(EventJudge.id).where(
            EventJudge.event_id == event_id,
            EventJudge.user_id == user_id,
            EventJudge.role == JudgeRole.JUDGE.value,
            EventJudge.status == JudgeStatus.ACCEPTED.value
        )
    )
    return result.first() is not None


async def is_accepted_member(session: AsyncSession, user_id, team: Team) -> bool:
    result = await session.execute(
        select(TeamMember.id).where(
            TeamMember.team_id == team.id,
            TeamMember.user_id == user_id,
            TeamMember.status == TeamMemberStatus.ACCEPTED.value
        )
    )
    return result.first() is not None


async def get_standings(
        session: AsyncSession,
        user: Optional[User],
        event: Event,
        team: Optional[Team] = None
) -> Set[Standing]:
    """Resolve the caller's relationships to the event (and team, if given)"""
    standings: Set[Standing] = set()
    if user is None:
        return standings

    if is_platform_admin(user):
        standings.add(Standing.ADMIN)
    if event.organizer_id == user.id:
        standings.add(Standing.ORGANIZER_OF)
    if await is_accepted_judge(session, user.id, event.id):
        standings.add(Standing.JUDGE_OF)
    if (
            team is not None
            and team.event_id == event.id
            and team.deleted_at is None
            and team.status == TeamStatus.ACTIVE.value
            and await is_accepted_member(session, user.id, team)
    ):
        standings.add(Standing.MEMBER_OF)

    return standings


async def get_capabilities(
        session: AsyncSession,
        user: Optional[User],
        event: Event,
        team: Optional[Team] = None
) -> FrozenSet[Capability]:
    """Capabilities granted to the caller for this event"""
    standings = await get_standings(session, user, event, team)
    return frozenset(
        capability
        for capability, granting in CAPABILITY_POLICY.items()
        if standings & granting
    )


async def require_capability(
        session: AsyncSession,
        user: Optional[User],
        event: Event,
        capability: Capability,
        team: Optional[Team] = None,
        message: str = "Not authorized for this action"
) -> FrozenSet[Capability]:
    capabilities = await get_capabilities(session, user, event, team)
    if capability not in capabilities:
        raise ForbiddenError(message)
    return capabilities
