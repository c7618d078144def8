from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.auth.jwt import get_current_user, get_optional_user
from hackhub.db import get_session
from hackhub.models import User
from hackhub.models.enums import EventStatus, SubmissionStatus
from hackhub.schemas.event import (
    EventCreate,
    EventUpdate,
    EventResponse,
    EventListResponse,
    JudgeInvite,
    JudgeInvitationResponse,
    EventJudgeResponse
)
from hackhub.schemas.leaderboard import LeaderboardResponse
from hackhub.schemas.submission import SubmissionListResponse
from hackhub.settings import settings
from hackhub.utils import event_utils
from hackhub.utils.leaderboard_utils import can_view_leaderboard, get_leaderboard
from hackhub.utils.submission_utils import get_active_event, list_event_submissions

router = APIRouter(
    prefix="/events",
    tags=["events"]
)


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
        event_data: EventCreate,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Create a draft event"""
    return await event_utils.create_event(session, current_user, event_data)


@router.get("", response_model=EventListResponse)
async def list_events(
        event_status: Optional[EventStatus] = Query(None, alias="status"),
        limit: int = Query(20, ge=1, le=100),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session)
):
    """Published events"""
    items, total = await event_utils.list_events(session, event_status, limit, offset)
    return EventListResponse(
        items=[EventResponse.model_validate(event) for event in items],
        total=total,
        limit=limit,
        offset=offset
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
        event_id: UUID,
        current_user: Optional[User] = Depends(get_optional_user),
        session: AsyncSession = Depends(get_session)
):
    return await event_utils.get_event(session, event_id, current_user)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
        event_id: UUID,
        event_data: EventUpdate,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await event_utils.update_event(session, event_id, current_user, event_data)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
        event_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    await event_utils.delete_event(session, event_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/publish", response_model=EventResponse)
async def publish_event(
        event_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await event_utils.publish_event(session, event_id, current_user)


@router.post("/{event_id}/unpublish", response_model=EventResponse)
async def unpublish_event(
        event_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await event_utils.unpublish_event(session, event_id, current_user)


@router.post("/{event_id}/judges", response_model=EventJudgeResponse, status_code=status.HTTP_201_CREATED)
async def invite_judge(
        event_id: UUID,
        invite: JudgeInvite,
        background_tasks: BackgroundTasks,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Invite a user as judge, mentor or reviewer"""
    return await event_utils.invite_judge(
        session, event_id, current_user, invite.user_id, invite.role, background_tasks
    )


@router.post("/{event_id}/judges/respond", response_model=EventJudgeResponse)
async def respond_to_invitation(
        event_id: UUID,
        answer: JudgeInvitationResponse,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await event_utils.respond_to_judge_invitation(session, event_id, current_user, answer.accept)


@router.get("/{event_id}/leaderboard", response_model=LeaderboardResponse)
async def event_leaderboard(
        event_id: UUID,
        limit: int = Query(settings.default_leaderboard_limit, ge=1, le=settings.max_leaderboard_limit),
        offset: int = Query(0, ge=0),
        current_user: Optional[User] = Depends(get_optional_user),
        session: AsyncSession = Depends(get_session)
):
    """Ranked submitted entries of the event"""
    event = await get_active_event(session, event_id)
    await can_view_leaderboard(session, current_user, event)
    return await get_leaderboard(session, event_id, limit, offset)


@router.get("/{event_id}/submissions", response_model=SubmissionListResponse)
async def event_submissions(
        event_id: UUID,
        submission_status: Optional[SubmissionStatus] = Query(None, alias="status"),
        team_id: Optional[UUID] = None,
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    items, total = await list_event_submissions(
        session, event_id, current_user, submission_status, team_id, limit, offset
    )
    return SubmissionListResponse(items=items, total=total, limit=limit, offset=offset)
