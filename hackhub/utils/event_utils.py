import logging
import re
import uuid
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from hackhub.models import Event, EventJudge, User
from hackhub.models.enums import EventStatus, JudgeRole, JudgeStatus, NotificationType, UserRole
from hackhub.utils.notification_utils import notify_users
from hackhub.utils.permissions import Capability, get_capabilities, is_platform_admin, require_capability
from hackhub.utils.submission_utils import get_active_event
from hackhub.utils.time_utils import is_valid_timezone, utcnow

logger = logging.getLogger(__name__)

# frozen once the event is published
PUBLISHED_FROZEN_FIELDS = ("start_date", "judging_criteria")

REQUIRED_FOR_PUBLISH = (
    "title", "description", "start_date", "end_date", "registration_start", "registration_end"
)


def slugify(title: str) -> str:
    slug = title.lower().strip()
    slug = re.sub(r'[^\w\s-]', '', slug)
    slug = re.sub(r'[\s_]+', '-', slug)
    slug = re.sub(r'-{2,}', '-', slug).strip('-')
    return slug or "event"


async def generate_unique_slug(session: AsyncSession, title: str) -> str:
    """Slug derived from the title, suffixed with a counter when taken"""
    base = slugify(title)[:240]
    result = await session.execute(
        select(Event.slug).where(Event.slug.like(f"{base}%"))
    )
    taken = set(result.scalars().all())

    slug = base
    counter = 2
    while slug in taken:
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def validate_event_fields(data: dict) -> None:
    """
    Checks the date ordering, team size bounds and judging criteria of an event

    :param data: the full set of event fields (after merging an update)
    :raises: ValidationError
    """
    start_date: datetime = data.get("start_date")
    end_date: datetime = data.get("end_date")
    registration_start: datetime = data.get("registration_start")
    registration_end: datetime = data.get("registration_end")
    submission_deadline: Optional[datetime] = data.get("submission_deadline")
    judging_end: Optional[datetime] = data.get("judging_end")

    if end_date <= start_date:
        raise ValidationError("End date must be after start date", details={"field": "end_date"})
    if registration_end <= registration_start:
        raise ValidationError(
            "Registration end must be after registration start",
            details={"field": "registration_end"}
        )
    if registration_end >= start_date:
        raise ValidationError(
            "Registration must close before the event starts",
            details={"field": "registration_end"}
        )
    if submission_deadline is not None and submission_deadline > end_date:
        raise ValidationError(
            "Submission deadline cannot be after the event end",
            details={"field": "submission_deadline"}
        )
    if judging_end is not None and judging_end < end_date:
        raise ValidationError(
            "Judging cannot end before the event ends",
            details={"field": "judging_end"}
        )

    min_team_size = data.get("min_team_size", 1)
    max_team_size = data.get("max_team_size", 5)
    if min_team_size > max_team_size:
        raise ValidationError(
            "Minimum team size cannot exceed maximum team size",
            details={"field": "min_team_size"}
        )

    criterion_ids = [str(criterion["id"]) for criterion in data.get("judging_criteria") or []]
    duplicates = sorted({cid for cid in criterion_ids if criterion_ids.count(cid) > 1})
    if duplicates:
        raise ValidationError(
            f"Duplicate judging criterion '{duplicates[0]}'",
            details={"criterion": duplicates[0]}
        )

    timezone = data.get("timezone") or "UTC"
    if not is_valid_timezone(timezone):
        raise ValidationError(f"Unknown timezone '{timezone}'", details={"field": "timezone"})


def _event_fields(event: Event) -> dict:
    return {
        "start_date": event.start_date,
        "end_date": event.end_date,
        "registration_start": event.registration_start,
        "registration_end": event.registration_end,
        "submission_deadline": event.submission_deadline,
        "judging_end": event.judging_end,
        "min_team_size": event.min_team_size,
        "max_team_size": event.max_team_size,
        "judging_criteria": event.judging_criteria,
        "timezone": event.timezone,
    }


async def create_event(session: AsyncSession, user: User, payload) -> Event:
    """Create a draft event; organizers and admins only"""
    if not (user.has_role(UserRole.ORGANIZER.value) or is_platform_admin(user)):
        raise ForbiddenError("Only organizers can create events")

    data = payload.model_dump()
    validate_event_fields(data)

    event = Event(
        id=uuid.uuid4(),
        organizer_id=user.id,
        slug=await generate_unique_slug(session, data["title"]),
        status=EventStatus.DRAFT.value,
        is_published=False,
        **data
    )
    session.add(event)

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("An event with this slug already exists")

    await session.refresh(event)
    logger.info("Event %s (%s) created by %s", event.id, event.slug, user.id)
    return event


async def update_event(session: AsyncSession, event_id: UUID, user: User, payload) -> Event:
    event = await get_active_event(session, event_id)
    await require_capability(
        session, user, event, Capability.ORGANIZE,
        message="Not authorized to update this event"
    )

    changes = payload.model_dump(exclude_unset=True)
    if event.is_published:
        for field in PUBLISHED_FROZEN_FIELDS:
            if field in changes and changes[field] != getattr(event, field):
                raise ValidationError(
                    f"Cannot change {field} for a published event",
                    details={"field": field}
                )

    for field in ("title", "description", "start_date", "end_date", "registration_start", "registration_end"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be empty", details={"field": field})

    merged = _event_fields(event)
    merged.update(changes)
    validate_event_fields(merged)

    for field, value in changes.items():
        setattr(event, field, value)

    await session.commit()
    await session.refresh(event)
    return event


async def publish_event(session: AsyncSession, event_id: UUID, user: User) -> Event:
    event = await get_active_event(session, event_id)
    await require_capability(
        session, user, event, Capability.ORGANIZE,
        message="Not authorized to publish this event"
    )

    missing = [field for field in REQUIRED_FOR_PUBLISH if not getattr(event, field)]
    if missing:
        raise ValidationError(
            "Event is missing required fields",
            details={"missing": missing}
        )

    event.is_published = True
    if event.published_at is None:
        event.published_at = utcnow()
    if event.status == EventStatus.DRAFT.value:
        event.status = EventStatus.UPCOMING.value

    await session.commit()
    await session.refresh(event)
    logger.info("Event %s published", event.id)
    return event


async def unpublish_event(session: AsyncSession, event_id: UUID, user: User) -> Event:
    event = await get_active_event(session, event_id)
    await require_capability(
        session, user, event, Capability.ORGANIZE,
        message="Not authorized to unpublish this event"
    )

    event.is_published = False
    if event.status == EventStatus.UPCOMING.value:
        event.status = EventStatus.DRAFT.value

    await session.commit()
    await session.refresh(event)
    return event


async def delete_event(session: AsyncSession, event_id: UUID, user: User) -> None:
    event = await get_active_event(session, event_id)
    await require_capability(
        session, user, event, Capability.ORGANIZE,
        message="Not authorized to delete this event"
    )

    event.deleted_at = utcnow()
    await session.commit()
    logger.info("Event %s deleted by %s", event_id, user.id)


async def get_event(session: AsyncSession, event_id: UUID, user: Optional[User] = None) -> Event:
    """Published events are visible to everyone, drafts only to organizers and admins"""
    event = await get_active_event(session, event_id)
    if not event.is_published:
        capabilities = await get_capabilities(session, user, event)
        if Capability.ORGANIZE not in capabilities:
            raise ForbiddenError("This event is not published")
    return event


async def list_events(
        session: AsyncSession,
        status: Optional[EventStatus] = None,
        limit: int = 20,
        offset: int = 0
) -> Tuple[List[Event], int]:
    filters = [Event.is_published.is_(True), Event.deleted_at.is_(None)]
    if status is not None:
        filters.append(Event.status == EventStatus(status).value)

    total = await session.scalar(select(func.count(Event.id)).where(*filters))
    result = await session.execute(
        select(Event)
        .where(*filters)
        .order_by(Event.start_date.asc(), Event.id.asc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total or 0


async def invite_judge(
        session: AsyncSession,
        event_id: UUID,
        user: User,
        invitee_id: UUID,
        role: JudgeRole = JudgeRole.JUDGE,
        background_tasks: Optional[BackgroundTasks] = None
) -> EventJudge:
    """Invite a user to judge (or mentor, or review) an event"""
    event = await get_active_event(session, event_id)
    await require_capability(
        session, user, event, Capability.ORGANIZE,
        message="Only organizers can invite judges"
    )

    invitee = await session.get(User, invitee_id)
    if not invitee or not invitee.is_active:
        raise NotFoundError("User not found")

    existing = await session.execute(
        select(EventJudge.id).where(
            EventJudge.event_id == event.id,
            EventJudge.user_id == invitee_id
        )
    )
    if existing.first() is not None:
        raise ConflictError("User is already invited to this event")

    invitation = EventJudge(
        id=uuid.uuid4(),
        event_id=event.id,
        user_id=invitee_id,
        invited_by_id=user.id,
        role=JudgeRole(role).value,
        status=JudgeStatus.PENDING.value,
        invited_at=utcnow()
    )
    session.add(invitation)

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("User is already invited to this event")

    await session.refresh(invitation)
    logger.info("User %s invited as %s to event %s", invitee_id, invitation.role, event_id)

    await notify_users(
        session,
        [invitee_id],
        NotificationType.JUDGE_INVITATION,
        f"You are invited as {invitation.role} to \"{event.title}\"",
        reference_type="event",
        reference_id=event.id,
        background_tasks=background_tasks
    )
    return invitation


async def respond_to_judge_invitation(
        session: AsyncSession,
        event_id: UUID,
        user: User,
        accept: bool
) -> EventJudge:
    result = await session.execute(
        select(EventJudge).where(
            EventJudge.event_id == event_id,
            EventJudge.user_id == user.id
        )
    )
    invitation = result.scalar_one_or_none()
    if not invitation:
        raise NotFoundError("Invitation not found")

    if invitation.status != JudgeStatus.PENDING.value:
        raise ValidationError(f"Invitation is already {invitation.status}")

    invitation.status = JudgeStatus.ACCEPTED.value if accept else JudgeStatus.REJECTED.value
    invitation.responded_at = utcnow()

    await session.commit()
    await session.refresh(invitation)
    return invitation


async def refresh_event_statuses(session: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Move published events through upcoming -> ongoing -> completed

    Returns:
        int: the number of events whose status changed
    """
    now = now or utcnow()
    result = await session.execute(
        select(Event).where(
            Event.is_published.is_(True),
            Event.deleted_at.is_(None),
            Event.status.in_([EventStatus.UPCOMING.value, EventStatus.ONGOING.value])
        )
    )

    changed = 0
    for event in result.scalars().all():
        new_status = event.status
        if now > event.end_date:
            new_status = EventStatus.COMPLETED.value
        elif now >= event.start_date:
            new_status = EventStatus.ONGOING.value

        if new_status != event.status:
            logger.info("Event %s status %s -> %s", event.id, event.status, new_status)
            event.status = new_status
            changed += 1

    if changed:
        await session.commit()
    return changed
