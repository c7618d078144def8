import uuid

import pytest
from sqlalchemy import select

from hackhub.errors import NotFoundError
from hackhub.models import Submission
from hackhub.utils.score_utils import recalculate_scores
from hackhub.utils.time_utils import utcnow


async def reload(session, submission_id):
    result = await session.execute(
        select(Submission).where(Submission.id == submission_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def test_average_and_count_follow_evaluation_deletes(session, factory):
    event = await factory.event()
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judges = [await factory.judge(event) for _ in range(3)]
    evaluations = [
        await factory.evaluation(submission, judge, score)
        for judge, score in zip(judges, [80, 90, 100])
    ]

    await recalculate_scores(session, submission.id)
    await session.commit()
    submission = await reload(session, submission.id)
    assert submission.average_score == 90.0
    assert submission.total_evaluations == 3

    evaluations[2].deleted_at = utcnow()
    await recalculate_scores(session, submission.id)
    await session.commit()
    submission = await reload(session, submission.id)
    assert submission.average_score == 85.0
    assert submission.total_evaluations == 2

    for evaluation in evaluations[:2]:
        evaluation.deleted_at = utcnow()
    await recalculate_scores(session, submission.id)
    await session.commit()
    submission = await reload(session, submission.id)
    assert submission.average_score is None
    assert submission.total_evaluations == 0


async def test_aggregate_spans_all_rounds(session, factory):
    event = await factory.event()
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judge = await factory.judge(event)

    await factory.evaluation(submission, judge, 60, round=1)
    await factory.evaluation(submission, judge, 70, round=2)
    await factory.evaluation(submission, judge, 95, round=3)

    updated = await recalculate_scores(session, submission.id)

    assert updated.total_evaluations == 3
    assert updated.average_score == pytest.approx(75.0)


async def test_average_is_not_rounded(session, factory):
    event = await factory.event()
    team = await factory.team(event)
    submission = await factory.submission(event, team)

    for score in (70, 80, 82):
        await factory.evaluation(submission, await factory.judge(event), score)

    updated = await recalculate_scores(session, submission.id)

    assert updated.average_score == pytest.approx(232 / 3)
    assert updated.average_score != round(updated.average_score, 2)


async def test_missing_submission(session):
    with pytest.raises(NotFoundError):
        await recalculate_scores(session, uuid.uuid4())
