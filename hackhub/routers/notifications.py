from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.auth.jwt import get_current_user
from hackhub.db import get_session
from hackhub.errors import NotFoundError
from hackhub.models import Notification, User
from hackhub.schemas.notification import NotificationResponse

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"]
)


@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
        unread_only: bool = False,
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Notifications of the current user, newest first"""
    query = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))

    result = await session.execute(
        query.order_by(Notification.created_at.desc()).limit(limit).offset(offset)
    )
    return result.scalars().all()


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
        notification_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    notification = await session.get(Notification, notification_id)
    if not notification or notification.user_id != current_user.id:
        raise NotFoundError("Notification not found")

    notification.is_read = True
    await session.commit()
    await session.refresh(notification)
    return notification
