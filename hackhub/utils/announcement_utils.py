import logging
import uuid
from typing import List, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import ForbiddenError, NotFoundError, ValidationError
from hackhub.models import Announcement, AnnouncementRecipient, EventJudge, Team, TeamMember, User
from hackhub.models.enums import JudgeStatus, NotificationType, TeamMemberStatus, TeamStatus
from hackhub.utils.event_utils import get_event
from hackhub.utils.notification_utils import notify_users
from hackhub.utils.permissions import Capability, get_capabilities, require_capability
from hackhub.utils.submission_utils import get_active_event
from hackhub.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200


async def get_event_audience(session: AsyncSession, event_id: UUID, include_participants: bool = True) -> list:
    """Accepted judges of the event, plus accepted members of its active teams"""
    result = await session.execute(
        select(EventJudge.user_id).where(
            EventJudge.event_id == event_id,
            EventJudge.status == JudgeStatus.ACCEPTED.value
        )
    )
    user_ids = list(result.scalars().all())

    if include_participants:
        result = await session.execute(
            select(TeamMember.user_id)
            .join(Team, Team.id == TeamMember.team_id)
            .where(
                Team.event_id == event_id,
                Team.deleted_at.is_(None),
                Team.status == TeamStatus.ACTIVE.value,
                TeamMember.status == TeamMemberStatus.ACCEPTED.value
            )
        )
        user_ids.extend(result.scalars().all())

    return list(dict.fromkeys(user_ids))


def _to_dict(announcement: Announcement, is_read: Optional[bool] = None) -> dict:
    return {
        "id": announcement.id,
        "event_id": announcement.event_id,
        "created_by_id": announcement.created_by_id,
        "title": announcement.title,
        "content": announcement.content,
        "is_pinned": announcement.is_pinned,
        "is_public": announcement.is_public,
        "created_at": announcement.created_at,
        "is_read": is_read,
    }


async def _read_states(session: AsyncSession, user: Optional[User], announcement_ids: list) -> dict:
    if user is None or not announcement_ids:
        return {}
    result = await session.execute(
        select(AnnouncementRecipient.announcement_id, AnnouncementRecipient.is_read).where(
            AnnouncementRecipient.user_id == user.id,
            AnnouncementRecipient.announcement_id.in_(announcement_ids)
        )
    )
    return {announcement_id: is_read for announcement_id, is_read in result.all()}


async def create_announcement(
        session: AsyncSession,
        user: User,
        payload,
        background_tasks: Optional[BackgroundTasks] = None
) -> dict:
    """
    Post an announcement to an event and deliver it to its audience

    Public announcements reach judges and participants, internal ones only
    the judges. Every recipient gets a read-tracking row and a notification.
    """
    event = await get_active_event(session, payload.event_id)
    await require_capability(
        session, user, event, Capability.ORGANIZE,
        message="Only organizers can post announcements"
    )

    title = (payload.title or "").strip()
    if len(title) < 3 or len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Title must be between 3 and {MAX_TITLE_LENGTH} characters",
            details={"field": "title"}
        )
    content = (payload.content or "").strip()
    if not content:
        raise ValidationError("Content is required", details={"field": "content"})

    event_id, event_title, author_id = event.id, event.title, user.id
    recipients = [
        user_id
        for user_id in await get_event_audience(session, event_id, include_participants=payload.is_public)
        if user_id != author_id
    ]

    announcement = Announcement(
        id=uuid.uuid4(),
        event_id=event_id,
        created_by_id=author_id,
        title=title,
        content=content,
        is_pinned=payload.is_pinned,
        is_public=payload.is_public
    )
    session.add(announcement)
    session.add_all([
        AnnouncementRecipient(id=uuid.uuid4(), announcement_id=announcement.id, user_id=user_id)
        for user_id in recipients
    ])
    await session.commit()
    await session.refresh(announcement)

    result = _to_dict(announcement)
    logger.info(
        "Announcement %s posted to event %s for %d recipients",
        announcement.id, event_id, len(recipients)
    )

    await notify_users(
        session,
        recipients,
        NotificationType.ANNOUNCEMENT,
        f"{event_title}: {title}",
        reference_type="announcement",
        reference_id=result["id"],
        background_tasks=background_tasks
    )
    return result


async def list_announcements(session: AsyncSession, event_id: UUID, user: Optional[User] = None) -> List[dict]:
    """Announcements of an event, pinned first, then newest first"""
    event = await get_event(session, event_id, user)
    capabilities = await get_capabilities(session, user, event)

    filters = [Announcement.event_id == event.id, Announcement.deleted_at.is_(None)]
    if Capability.JUDGE not in capabilities:
        filters.append(Announcement.is_public.is_(True))

    result = await session.execute(
        select(Announcement)
        .where(*filters)
        .order_by(Announcement.is_pinned.desc(), Announcement.created_at.desc())
    )
    announcements = result.scalars().all()

    read_states = await _read_states(session, user, [announcement.id for announcement in announcements])
    return [
        _to_dict(announcement, read_states.get(announcement.id))
        for announcement in announcements
    ]


async def _load_announcement(session: AsyncSession, announcement_id: UUID) -> Announcement:
    announcement = await session.get(Announcement, announcement_id)
    if not announcement or announcement.deleted_at is not None:
        raise NotFoundError("Announcement not found")
    return announcement


async def get_announcement(session: AsyncSession, announcement_id: UUID, user: Optional[User] = None) -> dict:
    announcement = await _load_announcement(session, announcement_id)
    event = await get_event(session, announcement.event_id, user)
    if not announcement.is_public:
        capabilities = await get_capabilities(session, user, event)
        if Capability.JUDGE not in capabilities:
            raise ForbiddenError("This announcement is for judges only")

    read_states = await _read_states(session, user, [announcement.id])
    return _to_dict(announcement, read_states.get(announcement.id))


async def mark_announcement_read(session: AsyncSession, announcement_id: UUID, user: User) -> AnnouncementRecipient:
    """Mark an announcement as read for one of its recipients"""
    await _load_announcement(session, announcement_id)

    result = await session.execute(
        select(AnnouncementRecipient).where(
            AnnouncementRecipient.announcement_id == announcement_id,
            AnnouncementRecipient.user_id == user.id
        )
    )
    recipient = result.scalar_one_or_none()
    if recipient is None:
        raise NotFoundError("Announcement not found")

    if not recipient.is_read:
        recipient.is_read = True
        recipient.read_at = utcnow()
        await session.commit()
        await session.refresh(recipient)
    return recipient


async def count_unread(session: AsyncSession, user: User, event_id: Optional[UUID] = None) -> int:
    query = (
        select(func.count(AnnouncementRecipient.id))
        .join(Announcement, Announcement.id == AnnouncementRecipient.announcement_id)
        .where(
            AnnouncementRecipient.user_id == user.id,
            AnnouncementRecipient.is_read.is_(False),
            Announcement.deleted_at.is_(None)
        )
    )
    if event_id is not None:
        query = query.where(Announcement.event_id == event_id)
    return await session.scalar(query) or 0


async def delete_announcement(session: AsyncSession, announcement_id: UUID, user: User) -> None:
    announcement = await _load_announcement(session, announcement_id)
    event = await get_active_event(session, announcement.event_id)
    await require_capability(
        session, user, event, Capability.ORGANIZE,
        message="Only organizers can delete announcements"
    )

    announcement.deleted_at = utcnow()
    await session.commit()
    logger.info("Announcement %s deleted by %s", announcement_id, user.id)
