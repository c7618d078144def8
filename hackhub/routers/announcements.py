from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.auth.jwt import get_current_user, get_optional_user
from hackhub.db import get_session
from hackhub.models import User
from hackhub.schemas.announcement import AnnouncementCreate, AnnouncementReadResponse, AnnouncementResponse
from hackhub.utils import announcement_utils

router = APIRouter(
    prefix="/announcements",
    tags=["announcements"]
)


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(
        announcement_data: AnnouncementCreate,
        background_tasks: BackgroundTasks,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Post an announcement to an event (organizers and admins)"""
    return await announcement_utils.create_announcement(
        session, current_user, announcement_data, background_tasks=background_tasks
    )


@router.get("", response_model=List[AnnouncementResponse])
async def get_announcements(
        event_id: UUID,
        current_user: Optional[User] = Depends(get_optional_user),
        session: AsyncSession = Depends(get_session)
):
    return await announcement_utils.list_announcements(session, event_id, current_user)


@router.get("/unread-count")
async def get_unread_count(
        event_id: Optional[UUID] = None,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return {"unread": await announcement_utils.count_unread(session, current_user, event_id)}


@router.get("/{announcement_id}", response_model=AnnouncementResponse)
async def get_announcement(
        announcement_id: UUID,
        current_user: Optional[User] = Depends(get_optional_user),
        session: AsyncSession = Depends(get_session)
):
    return await announcement_utils.get_announcement(session, announcement_id, current_user)


@router.post("/{announcement_id}/read", response_model=AnnouncementReadResponse)
async def mark_as_read(
        announcement_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await announcement_utils.mark_announcement_read(session, announcement_id, current_user)


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_announcement(
        announcement_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    await announcement_utils.delete_announcement(session, announcement_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
