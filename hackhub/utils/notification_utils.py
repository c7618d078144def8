import logging
import uuid
from typing import Iterable, Optional

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.models import Notification, User, TeamMember
from hackhub.models.enums import NotificationType, TeamMemberStatus
from hackhub.utils.email_utils import email_sender

logger = logging.getLogger(__name__)


async def notify_users(
        session: AsyncSession,
        user_ids: Iterable[uuid.UUID],
        notification_type: NotificationType,
        message: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[uuid.UUID] = None,
        background_tasks: Optional[BackgroundTasks] = None,
        exclude_user_id: Optional[uuid.UUID] = None
) -> int:
    """
    Create in-app notifications (and queue emails) for the given users.

    Fire-and-forget: called after the triggering operation has committed, any
    failure is logged and never propagated to the caller.
    """
    recipients = [user_id for user_id in dict.fromkeys(user_ids) if user_id != exclude_user_id]
    if not recipients:
        return 0

    try:
        session.add_all([
            Notification(
                id=uuid.uuid4(),
                user_id=user_id,
                type=notification_type.value,
                message=message,
                reference_type=reference_type,
                reference_id=reference_id
            )
            for user_id in recipients
        ])
        await session.commit()

        if background_tasks is not None and email_sender.enabled:
            result = await session.execute(select(User.email).where(User.id.in_(recipients)))
            emails = list(result.scalars().all())
            if emails:
                background_tasks.add_task(
                    email_sender.send_notification,
                    emails, notification_type, message, reference_type, reference_id
                )
    except Exception:
        logger.exception("Failed to dispatch %s notifications", notification_type.value)
        await session.rollback()
        return 0

    return len(recipients)


async def get_team_member_ids(session: AsyncSession, team_id: uuid.UUID) -> list:
    result = await session.execute(
        select(TeamMember.user_id).where(
            TeamMember.team_id == team_id,
            TeamMember.status == TeamMemberStatus.ACCEPTED.value
        )
    )
    return list(result.scalars().all())
