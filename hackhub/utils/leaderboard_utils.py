from typing import Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import ForbiddenError
from hackhub.models import Event, Submission, Team, User
from hackhub.models.enums import SubmissionStatus
from hackhub.settings import settings
from hackhub.utils.permissions import Capability, get_capabilities
from hackhub.utils.submission_utils import get_active_event


def _round_score(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


async def can_view_leaderboard(session: AsyncSession, user: Optional[User], event: Event) -> bool:
    """
    Public leaderboards are open to anyone, including anonymous callers;
    otherwise only the organizer of the event or an admin may look

    :raises: ForbiddenError
    """
    if event.is_leaderboard_public:
        return True

    capabilities = await get_capabilities(session, user, event)
    if Capability.ORGANIZE not in capabilities:
        raise ForbiddenError("The leaderboard of this event is not public")
    return True


async def get_leaderboard(
        session: AsyncSession,
        event_id: UUID,
        limit: Optional[int] = None,
        offset: int = 0
) -> dict:
    """
    Ranked page of the event's submitted entries

    Ordered by average score (unscored entries last), then by number of
    evaluations, then by submission time and id so that ties are stable.
    Ranks continue across pages.
    """
    event = await get_active_event(session, event_id)

    if limit is None:
        limit = settings.default_leaderboard_limit
    limit = max(1, min(limit, settings.max_leaderboard_limit))
    offset = max(0, offset)

    filters = (
        Submission.event_id == event.id,
        Submission.status == SubmissionStatus.SUBMITTED.value,
        Submission.deleted_at.is_(None),
    )

    total = await session.scalar(
        select(func.count(Submission.id)).where(*filters)
    )

    query = (
        select(Submission, Team.name.label('team_name'))
        .join(Team, Team.id == Submission.team_id)
        .where(*filters)
        .order_by(
            Submission.average_score.desc().nulls_last(),
            Submission.total_evaluations.desc(),
            Submission.created_at.asc(),
            Submission.id.asc()
        )
        .limit(limit)
        .offset(offset)
    )
    result = await session.execute(query)

    entries = [
        {
            "rank": offset + position + 1,
            "submission_id": submission.id,
            "team_id": submission.team_id,
            "team_name": team_name,
            "title": submission.title,
            "average_score": _round_score(submission.average_score),
            "evaluation_count": submission.total_evaluations or 0,
        }
        for position, (submission, team_name) in enumerate(result.all())
    ]

    return {
        "event_id": event.id,
        "entries": entries,
        "total": total or 0,
        "limit": limit,
        "offset": offset,
    }
