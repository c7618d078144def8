import logging
import uuid
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hackhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from hackhub.models import Event, Submission, Team, User
from hackhub.models.enums import NotificationType, SubmissionStatus
from hackhub.utils.file_utils import LocalStorage, get_storage
from hackhub.utils.notification_utils import get_team_member_ids, notify_users
from hackhub.utils.permissions import Capability, get_capabilities, require_capability
from hackhub.utils.time_utils import utcnow
from hackhub.utils.window_checker import check_submission_window

logger = logging.getLogger(__name__)

# current status -> statuses it may move to
STATUS_TRANSITIONS = {
    SubmissionStatus.DRAFT.value: {SubmissionStatus.SUBMITTED.value},
    SubmissionStatus.SUBMITTED.value: {SubmissionStatus.UNDER_REVIEW.value},
    SubmissionStatus.UNDER_REVIEW.value: {SubmissionStatus.ACCEPTED.value, SubmissionStatus.REJECTED.value},
    SubmissionStatus.ACCEPTED.value: set(),
    SubmissionStatus.REJECTED.value: set(),
}

EDITABLE_FIELDS = ("title", "description", "github_url", "video_url", "submission_note", "is_public")


async def get_active_event(session: AsyncSession, event_id: UUID) -> Event:
    event = await session.get(Event, event_id)
    if not event or event.deleted_at is not None:
        raise NotFoundError("Event not found")
    return event


async def get_team_with_members(session: AsyncSession, team_id: UUID) -> Optional[Team]:
    result = await session.execute(
        select(Team)
        .options(selectinload(Team.members))
        .where(Team.id == team_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def load_submission(session: AsyncSession, submission_id: UUID) -> Tuple[Submission, Event, Team]:
    """
    Load a non-deleted submission together with its event and team

    :raises: NotFoundError if any of them is missing or soft-deleted
    """
    submission = await session.get(Submission, submission_id)
    if not submission or submission.is_deleted:
        raise NotFoundError("Submission not found")

    event = await get_active_event(session, submission.event_id)
    team = await get_team_with_members(session, submission.team_id)
    if not team:
        raise NotFoundError("Team not found")

    return submission, event, team


async def get_team_submissions(session: AsyncSession, team_id: UUID, event_id: UUID) -> List[Submission]:
    """Non-deleted submissions of the team for the event"""
    result = await session.execute(
        select(Submission).where(
            Submission.team_id == team_id,
            Submission.event_id == event_id,
            Submission.deleted_at.is_(None)
        )
    )
    return list(result.scalars().all())


def _has_active_submission(submissions: List[Submission], exclude_id: Optional[UUID] = None) -> bool:
    return any(
        submission.status != SubmissionStatus.DRAFT.value and submission.id != exclude_id
        for submission in submissions
    )


async def _notify_team(
        session: AsyncSession,
        team_id: UUID,
        notification_type: NotificationType,
        message: str,
        submission_id: UUID,
        background_tasks: Optional[BackgroundTasks] = None,
        exclude_user_id: Optional[UUID] = None
):
    member_ids = await get_team_member_ids(session, team_id)
    await notify_users(
        session,
        member_ids,
        notification_type,
        message,
        reference_type="submission",
        reference_id=submission_id,
        background_tasks=background_tasks,
        exclude_user_id=exclude_user_id
    )


async def create_submission(
        session: AsyncSession,
        event_id: UUID,
        team_id: UUID,
        submitter: User,
        payload,
        upload_file=None,
        storage: Optional[LocalStorage] = None,
        background_tasks: Optional[BackgroundTasks] = None
) -> Submission:
    """
    Create the team's submission for an event

    The artifact, when given, is stored before the row is written, so a failed
    upload leaves nothing behind. The submission is created as a draft only if
    the caller asks for one and the team has no submission for the event yet.

    :raises: NotFoundError, ClosedWindowError, ForbiddenError, ConflictError, UploadError
    """
    event = await get_active_event(session, event_id)

    team = await get_team_with_members(session, team_id)
    if not team or team.deleted_at is not None or team.event_id != event.id:
        raise NotFoundError("Team not found")

    check_submission_window(event)

    await require_capability(
        session, submitter, event, Capability.SUBMIT, team=team,
        message="Only accepted team members can submit"
    )

    existing = await get_team_submissions(session, team.id, event.id)
    if _has_active_submission(existing):
        raise ConflictError("The team has already submitted a project for this event")

    status = (
        SubmissionStatus.DRAFT.value
        if getattr(payload, "is_draft", False) and not existing
        else SubmissionStatus.SUBMITTED.value
    )

    stored_file = None
    if upload_file is not None:
        storage = storage or get_storage()
        stored_file = await storage.upload(upload_file, folder=f"submissions/{event.id}")

    submission = Submission(
        id=uuid.uuid4(),
        event_id=event.id,
        team_id=team.id,
        submitted_by_id=submitter.id,
        title=payload.title,
        description=payload.description,
        github_url=payload.github_url,
        video_url=payload.video_url,
        submission_note=payload.submission_note,
        is_public=payload.is_public,
        status=status,
        total_evaluations=0,
        file_url=stored_file.url if stored_file else None,
        file_type=stored_file.type if stored_file else None,
        file_size=stored_file.size if stored_file else None,
    )
    session.add(submission)

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        if stored_file is not None:
            storage.delete(stored_file)
        raise ConflictError("The team has already submitted a project for this event")

    await session.refresh(submission)
    logger.info(
        "Submission %s created for team %s in event %s (%s)",
        submission.id, team_id, event_id, status
    )

    if status == SubmissionStatus.SUBMITTED.value:
        await _notify_team(
            session, team_id, NotificationType.SUBMISSION_CREATED,
            f"Your team submitted \"{submission.title}\"",
            submission.id, background_tasks, exclude_user_id=submitter.id
        )

    return submission


async def update_submission(
        session: AsyncSession,
        submission_id: UUID,
        user: User,
        payload
) -> Submission:
    """Edit a submission; ``finalize`` turns a draft into a submitted entry"""
    submission, event, team = await load_submission(session, submission_id)

    check_submission_window(event)
    await require_capability(
        session, user, event, Capability.SUBMIT, team=team,
        message="Only accepted team members can edit the submission"
    )

    changes = payload.model_dump(exclude_unset=True)
    for field in EDITABLE_FIELDS:
        if field in changes:
            if field in ("title", "description") and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty", details={"field": field})
            setattr(submission, field, changes[field])

    if changes.get("finalize") and submission.status == SubmissionStatus.DRAFT.value:
        existing = await get_team_submissions(session, submission.team_id, submission.event_id)
        if _has_active_submission(existing, exclude_id=submission.id):
            raise ConflictError("The team has already submitted a project for this event")
        submission.status = SubmissionStatus.SUBMITTED.value

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("The team has already submitted a project for this event")

    await session.refresh(submission)
    return submission


async def delete_submission(session: AsyncSession, submission_id: UUID, user: User) -> None:
    """
    Soft-delete a submission

    Team members may delete while submissions are open, organizers and admins
    at any time. Evaluations and comments are kept but no longer reachable.
    """
    submission, event, team = await load_submission(session, submission_id)

    capabilities = await get_capabilities(session, user, event, team)
    if Capability.ORGANIZE not in capabilities:
        if Capability.SUBMIT not in capabilities:
            raise ForbiddenError("Not authorized to delete this submission")
        check_submission_window(event)

    submission.deleted_at = utcnow()
    await session.commit()
    logger.info("Submission %s deleted by %s", submission_id, user.id)


async def change_submission_status(
        session: AsyncSession,
        submission_id: UUID,
        user: User,
        new_status: SubmissionStatus,
        background_tasks: Optional[BackgroundTasks] = None
) -> Submission:
    """Move a submission along draft -> submitted -> under_review -> accepted/rejected"""
    submission, event, team = await load_submission(session, submission_id)

    await require_capability(
        session, user, event, Capability.ORGANIZE,
        message="Only organizers can change the submission status"
    )

    new_status = SubmissionStatus(new_status).value
    if new_status not in STATUS_TRANSITIONS.get(submission.status, set()):
        raise ValidationError(
            f"Cannot change status from {submission.status} to {new_status}",
            details={"from": submission.status, "to": new_status}
        )

    if new_status == SubmissionStatus.SUBMITTED.value:
        existing = await get_team_submissions(session, submission.team_id, submission.event_id)
        if _has_active_submission(existing, exclude_id=submission.id):
            raise ConflictError("The team has already submitted a project for this event")

    submission.status = new_status
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("The team has already submitted a project for this event")

    await session.refresh(submission)
    logger.info("Submission %s moved to %s", submission_id, new_status)

    await _notify_team(
        session, submission.team_id, NotificationType.SUBMISSION_STATUS,
        f"Submission \"{submission.title}\" is now {new_status}",
        submission.id, background_tasks
    )
    return submission


async def get_submission(session: AsyncSession, submission_id: UUID, user: User) -> Submission:
    submission, event, team = await load_submission(session, submission_id)

    capabilities = await get_capabilities(session, user, event, team)
    if not capabilities and not submission.is_public:
        raise ForbiddenError("Not authorized to view this submission")

    return submission


async def list_event_submissions(
        session: AsyncSession,
        event_id: UUID,
        user: User,
        status: Optional[SubmissionStatus] = None,
        team_id: Optional[UUID] = None,
        limit: int = 50,
        offset: int = 0
) -> Tuple[List[Submission], int]:
    """Submissions of an event, for judges, organizers and admins"""
    event = await get_active_event(session, event_id)
    await require_capability(
        session, user, event, Capability.JUDGE,
        message="Only judges and organizers can list submissions"
    )

    filters = [Submission.event_id == event.id, Submission.deleted_at.is_(None)]
    if status is not None:
        filters.append(Submission.status == SubmissionStatus(status).value)
    if team_id is not None:
        filters.append(Submission.team_id == team_id)

    total = await session.scalar(select(func.count(Submission.id)).where(*filters))

    result = await session.execute(
        select(Submission)
        .where(*filters)
        .order_by(Submission.created_at.asc(), Submission.id.asc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total or 0
