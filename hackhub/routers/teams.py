from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.auth.jwt import get_current_user
from hackhub.db import get_session
from hackhub.models import Team, User
from hackhub.schemas.team import TeamCreate, TeamJoin, TeamMemberUpdate, TeamMemberResponse, TeamResponse
from hackhub.utils import team_utils
from hackhub.utils.permissions import Capability, get_capabilities
from hackhub.utils.submission_utils import get_active_event

router = APIRouter(
    prefix="/teams",
    tags=["teams"]
)


async def team_to_response(session: AsyncSession, team: Team, viewer: User) -> TeamResponse:
    """The invite code is shown to team members and organizers only"""
    response = TeamResponse.model_validate(team)
    if not team.is_active_member(viewer.id):
        event = await get_active_event(session, team.event_id)
        capabilities = await get_capabilities(session, viewer, event)
        if Capability.ORGANIZE not in capabilities:
            response.invite_code = None
            response.invite_expires = None
    return response


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
        team_data: TeamCreate,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Create a team; the creator becomes its leader"""
    team = await team_utils.create_team(
        session, current_user, team_data.event_id, team_data.name, team_data.description
    )
    return await team_to_response(session, team, current_user)


@router.post("/join", response_model=TeamResponse)
async def join_team(
        join_data: TeamJoin,
        background_tasks: BackgroundTasks,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    team = await team_utils.join_team(session, current_user, join_data.invite_code, background_tasks)
    return await team_to_response(session, team, current_user)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
        team_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    team = await team_utils.get_team(session, team_id)
    return await team_to_response(session, team, current_user)


@router.post("/{team_id}/leave", response_model=Optional[TeamResponse])
async def leave_team(
        team_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Leave the team; returns null when the team was withdrawn"""
    team = await team_utils.leave_team(session, team_id, current_user)
    if team is None:
        return None
    return await team_to_response(session, team, current_user)


@router.put("/{team_id}/members/{user_id}", response_model=TeamMemberResponse)
async def update_team_member(
        team_id: UUID,
        user_id: UUID,
        member_data: TeamMemberUpdate,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await team_utils.update_team_member(
        session, team_id, user_id, current_user, member_data.role, member_data.status
    )


@router.post("/{team_id}/regenerate-invite", response_model=TeamResponse)
async def regenerate_invite(
        team_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    team = await team_utils.regenerate_invite_code(session, team_id, current_user)
    return await team_to_response(session, team, current_user)
