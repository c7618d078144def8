import logging
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import NotFoundError
from hackhub.models import Submission, Evaluation

logger = logging.getLogger(__name__)


async def recalculate_scores(session: AsyncSession, submission_id: UUID) -> Submission:
    """
    Recompute the cached average score and evaluation count of a submission

    Aggregates every non-deleted evaluation of the submission, across all
    judging rounds. The submission row is locked for the duration of the
    caller's transaction; the result is flushed, committing is up to the caller.

    Returns:
        Submission: the updated submission
    """
    submission = await session.execute(
        select(Submission)
        .where(Submission.id == submission_id)
        .with_for_update()
    )
    submission = submission.scalar_one_or_none()

    if not submission:
        raise NotFoundError("Submission not found")

    aggregate = await session.execute(
        select(
            func.count(Evaluation.id).label('total_evaluations'),
            func.avg(Evaluation.score).label('average_score')
        ).where(
            Evaluation.submission_id == submission_id,
            Evaluation.deleted_at.is_(None)
        )
    )
    total_evaluations, average_score = aggregate.one()

    if not total_evaluations:
        submission.average_score = None
        submission.total_evaluations = 0
    else:
        submission.average_score = float(average_score)
        submission.total_evaluations = total_evaluations

    await session.flush()

    logger.debug(
        "Recalculated submission %s: average=%s, evaluations=%s",
        submission_id, submission.average_score, submission.total_evaluations
    )
    return submission
