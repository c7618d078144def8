import logging
import uuid
from typing import List, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import ForbiddenError, NotFoundError, ValidationError
from hackhub.models import Comment, User
from hackhub.models.enums import NotificationType
from hackhub.utils.notification_utils import notify_users
from hackhub.utils.permissions import Capability, get_capabilities
from hackhub.utils.submission_utils import load_submission

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


async def add_comment(
        session: AsyncSession,
        submission_id: UUID,
        user: User,
        content: str,
        parent_id: Optional[UUID] = None,
        is_internal: bool = False,
        background_tasks: Optional[BackgroundTasks] = None
) -> Comment:
    """
    Comment on a submission

    Anyone who can see the submission may comment; internal comments are
    reserved for judges, organizers and admins.
    """
    submission, event, team = await load_submission(session, submission_id)

    capabilities = await get_capabilities(session, user, event, team)
    if not capabilities and not submission.is_public:
        raise ForbiddenError("Not authorized to comment on this submission")
    if is_internal and Capability.JUDGE not in capabilities:
        raise ForbiddenError("Only judges and organizers can post internal comments")

    content = (content or "").strip()
    if not content or len(content) > MAX_COMMENT_LENGTH:
        raise ValidationError(
            f"Comment must be between 1 and {MAX_COMMENT_LENGTH} characters",
            details={"field": "content"}
        )

    parent = None
    if parent_id is not None:
        parent = await session.get(Comment, parent_id)
        if not parent or parent.deleted_at is not None or parent.submission_id != submission.id:
            raise NotFoundError("Parent comment not found")

    comment = Comment(
        id=uuid.uuid4(),
        submission_id=submission.id,
        user_id=user.id,
        parent_id=parent_id,
        content=content,
        is_internal=is_internal
    )
    session.add(comment)
    await session.commit()
    await session.refresh(comment)

    recipients = [submission.submitted_by_id]
    if parent is not None:
        recipients.append(parent.user_id)
    await notify_users(
        session,
        recipients,
        NotificationType.NEW_COMMENT,
        f"New comment on \"{submission.title}\"",
        reference_type="submission",
        reference_id=submission.id,
        background_tasks=background_tasks,
        exclude_user_id=user.id
    )
    return comment


async def list_comments(session: AsyncSession, submission_id: UUID, user: User) -> List[dict]:
    """Top-level comments with their replies; internal ones only for judges and organizers"""
    submission, event, team = await load_submission(session, submission_id)

    capabilities = await get_capabilities(session, user, event, team)
    if not capabilities and not submission.is_public:
        raise ForbiddenError("Not authorized to view comments on this submission")

    filters = [Comment.submission_id == submission.id, Comment.deleted_at.is_(None)]
    if Capability.JUDGE not in capabilities:
        filters.append(Comment.is_internal.is_(False))

    result = await session.execute(
        select(Comment)
        .where(*filters)
        .order_by(Comment.created_at.asc())
    )
    comments = result.scalars().all()

    nodes = {
        comment.id: {
            "id": comment.id,
            "submission_id": comment.submission_id,
            "user_id": comment.user_id,
            "parent_id": comment.parent_id,
            "content": comment.content,
            "is_internal": comment.is_internal,
            "created_at": comment.created_at,
            "replies": [],
        }
        for comment in comments
    }

    roots = []
    for node in nodes.values():
        parent = nodes.get(node["parent_id"]) if node["parent_id"] else None
        if parent is not None:
            parent["replies"].append(node)
        elif node["parent_id"] is None:
            roots.append(node)
    return roots
