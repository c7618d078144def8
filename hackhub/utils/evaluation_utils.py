import logging
import math
import uuid
from numbers import Real
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from hackhub.models import Event, Evaluation, User
from hackhub.models.enums import EvaluationStatus, NotificationType
from hackhub.utils.notification_utils import get_team_member_ids, notify_users
from hackhub.utils.permissions import Capability, get_capabilities, is_platform_admin, require_capability
from hackhub.utils.score_utils import recalculate_scores
from hackhub.utils.submission_utils import load_submission
from hackhub.utils.time_utils import utcnow
from hackhub.utils.window_checker import check_judging_window

logger = logging.getLogger(__name__)

MIN_SCORE = 0
MAX_SCORE = 100


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def validate_criteria_scores(
        event: Event,
        criteria_scores: Optional[Dict[str, float]],
        score: Optional[float] = None
) -> Tuple[float, Dict[str, float]]:
    """
    Validate per-criterion scores against the event's judging criteria

    Every criterion of the event must be scored within ``[0, max_score]`` and
    no unknown criterion ids are accepted. When ``score`` is omitted it is the
    plain sum of the criterion scores.

    Returns:
        tuple: the overall score and the normalised criteria scores
    :raises: ValidationError naming the offending criterion
    """
    criteria_scores = dict(criteria_scores or {})
    criteria = event.criteria
    known_ids = [str(criterion["id"]) for criterion in criteria]

    normalised = {}
    for criterion in criteria:
        criterion_id = str(criterion["id"])
        if criterion_id not in criteria_scores:
            raise ValidationError(
                f"Missing score for criterion '{criterion_id}'",
                details={"criterion": criterion_id}
            )

        value = criteria_scores[criterion_id]
        if not _is_number(value):
            raise ValidationError(
                f"Score for criterion '{criterion_id}' must be a number",
                details={"criterion": criterion_id}
            )

        max_score = criterion.get("max_score", MAX_SCORE)
        if value < 0 or value > max_score:
            raise ValidationError(
                f"Score for criterion '{criterion_id}' must be between 0 and {max_score}",
                details={"criterion": criterion_id}
            )
        normalised[criterion_id] = float(value)

    unknown_ids = sorted(set(criteria_scores) - set(known_ids))
    if unknown_ids:
        raise ValidationError(
            f"Unknown criterion '{unknown_ids[0]}'",
            details={"criterion": unknown_ids[0]}
        )

    if score is None:
        if not criteria:
            raise ValidationError("Score is required when the event has no judging criteria")
        score = sum(normalised.values())

    if not _is_number(score) or not MIN_SCORE <= score <= MAX_SCORE:
        raise ValidationError(
            f"Score must be between {MIN_SCORE} and {MAX_SCORE}",
            details={"score": score}
        )

    return float(score), normalised


async def _write_evaluation(
        session: AsyncSession,
        submission_id: UUID,
        event_id: UUID,
        judge_id: UUID,
        round: int,
        score: float,
        criteria_scores: Dict[str, float],
        feedback: Optional[str]
) -> Tuple[Evaluation, bool]:
    """Find-or-create the row for (submission, judge, round), then update it"""
    result = await session.execute(
        select(Evaluation).where(
            Evaluation.submission_id == submission_id,
            Evaluation.judge_id == judge_id,
            Evaluation.round == round
        )
    )
    evaluation = result.scalar_one_or_none()

    created = evaluation is None or evaluation.deleted_at is not None
    if evaluation is None:
        evaluation = Evaluation(
            id=uuid.uuid4(),
            submission_id=submission_id,
            judge_id=judge_id,
            event_id=event_id,
            round=round
        )
        session.add(evaluation)
    elif evaluation.deleted_at is not None:
        # revive a soft-deleted row, the unique key still holds it
        evaluation.deleted_at = None
        evaluation.created_at = utcnow()

    evaluation.score = score
    evaluation.criteria_scores = criteria_scores
    evaluation.feedback = feedback
    evaluation.status = EvaluationStatus.SUBMITTED.value

    await session.flush()
    return evaluation, created


async def submit_evaluation(
        session: AsyncSession,
        submission_id: UUID,
        judge: User,
        round: int,
        payload,
        background_tasks: Optional[BackgroundTasks] = None
) -> Tuple[Evaluation, bool]:
    """
    Record a judge's evaluation of a submission for one round

    A second call for the same (submission, judge, round) updates the
    existing row. The evaluation write and the score recalculation are
    committed together; if either fails nothing is stored.

    Returns:
        tuple: the evaluation and whether it was created (False when updated)
    :raises: NotFoundError, ForbiddenError, ClosedWindowError, ValidationError
    """
    submission, event, team = await load_submission(session, submission_id)

    capabilities = await require_capability(
        session, judge, event, Capability.JUDGE,
        message="Only judges of this event can evaluate submissions"
    )
    check_judging_window(event, is_admin=Capability.ADMIN in capabilities)

    if round is None or round < 1:
        raise ValidationError("Round must be a positive integer", details={"round": round})

    score, criteria_scores = validate_criteria_scores(
        event, payload.criteria_scores, payload.score
    )

    event_id = event.id
    team_id = submission.team_id
    judge_id = judge.id

    # a concurrent insert of the same key loses to the unique constraint, retry once as an update
    for attempt in range(2):
        try:
            evaluation, created = await _write_evaluation(
                session, submission_id, event_id, judge_id, round,
                score, criteria_scores, payload.feedback
            )
            await recalculate_scores(session, submission_id)
            await session.commit()
            break
        except IntegrityError:
            await session.rollback()
            if attempt:
                raise ConflictError("Evaluation was modified concurrently, please retry")
            logger.warning(
                "Concurrent evaluation insert for submission %s by judge %s, retrying as update",
                submission_id, judge_id
            )
        except Exception:
            await session.rollback()
            raise

    logger.info(
        "Evaluation %s %s: submission %s, judge %s, round %s, score %s",
        evaluation.id, "created" if created else "updated", submission_id, judge_id, round, score
    )

    member_ids = await get_team_member_ids(session, team_id)
    await notify_users(
        session,
        member_ids,
        NotificationType.EVALUATION_RECEIVED,
        "Your submission received an evaluation",
        reference_type="submission",
        reference_id=submission_id,
        background_tasks=background_tasks
    )

    return evaluation, created


async def delete_evaluation(session: AsyncSession, evaluation_id: UUID, user: User) -> None:
    """
    Soft-delete an evaluation and recalculate the submission's scores

    The owning judge may delete while judging is open, an admin at any time.
    """
    evaluation = await session.get(Evaluation, evaluation_id)
    if not evaluation or evaluation.deleted_at is not None:
        raise NotFoundError("Evaluation not found")

    submission, event, team = await load_submission(session, evaluation.submission_id)

    is_admin = is_platform_admin(user)
    if not is_admin:
        if evaluation.judge_id != user.id:
            raise ForbiddenError("Only the judge who wrote the evaluation can delete it")
        check_judging_window(event)

    submission_id = submission.id
    try:
        evaluation.deleted_at = utcnow()
        await session.flush()
        await recalculate_scores(session, submission_id)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info("Evaluation %s deleted by %s", evaluation_id, user.id)


async def list_submission_evaluations(
        session: AsyncSession,
        submission_id: UUID,
        user: User
) -> List[Evaluation]:
    """Organizers and admins see every evaluation, judges only their own"""
    submission, event, team = await load_submission(session, submission_id)

    capabilities = await get_capabilities(session, user, event, team)
    if Capability.JUDGE not in capabilities:
        raise ForbiddenError("Not authorized to view evaluations")

    filters = [
        Evaluation.submission_id == submission.id,
        Evaluation.deleted_at.is_(None)
    ]
    if Capability.ORGANIZE not in capabilities:
        filters.append(Evaluation.judge_id == user.id)

    result = await session.execute(
        select(Evaluation)
        .where(*filters)
        .order_by(Evaluation.round.asc(), Evaluation.created_at.asc())
    )
    return list(result.scalars().all())

