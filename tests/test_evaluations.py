import pytest
from sqlalchemy import func, select

from hackhub.errors import ClosedWindowError, ForbiddenError, NotFoundError, ValidationError
from hackhub.models import Evaluation, Submission
from hackhub.models.enums import JudgeStatus
from hackhub.schemas.evaluation import EvaluationCreate
from hackhub.utils import evaluation_utils
from hackhub.utils.evaluation_utils import (
    delete_evaluation,
    list_submission_evaluations,
    submit_evaluation,
    validate_criteria_scores
)

CRITERIA = [{"id": "c1", "name": "Innovation", "max_score": 10}]


async def count_evaluations(session, submission_id):
    return await session.scalar(
        select(func.count(Evaluation.id)).where(Evaluation.submission_id == submission_id)
    )


async def reload_submission(session, submission_id):
    result = await session.execute(
        select(Submission).where(Submission.id == submission_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


@pytest.fixture
async def setup(factory):
    event = await factory.event()
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judge = await factory.judge(event)
    return event, team, submission, judge


async def test_second_call_updates_the_same_row(session, setup):
    event, team, submission, judge = setup

    first, created = await submit_evaluation(
        session, submission.id, judge, 1, EvaluationCreate(score=70, feedback="ok")
    )
    assert created is True

    second, created = await submit_evaluation(
        session, submission.id, judge, 1, EvaluationCreate(score=85, feedback="much better")
    )
    assert created is False
    assert second.id == first.id
    assert await count_evaluations(session, submission.id) == 1

    result = await session.execute(
        select(Evaluation).where(Evaluation.id == first.id).execution_options(populate_existing=True)
    )
    stored = result.scalar_one()
    assert stored.score == 85
    assert stored.feedback == "much better"


async def test_rounds_are_separate_rows(session, setup):
    event, team, submission, judge = setup

    await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=60))
    _, created = await submit_evaluation(session, submission.id, judge, 2, EvaluationCreate(score=80))

    assert created is True
    assert await count_evaluations(session, submission.id) == 2
    stored = await reload_submission(session, submission.id)
    assert stored.average_score == 70.0
    assert stored.total_evaluations == 2


async def test_scores_are_recalculated_on_write(session, factory, setup):
    event, team, submission, judge = setup
    other_judge = await factory.judge(event)

    await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=80))
    await submit_evaluation(session, submission.id, other_judge, 1, EvaluationCreate(score=100))

    stored = await reload_submission(session, submission.id)
    assert stored.average_score == 90.0
    assert stored.total_evaluations == 2


async def test_criterion_above_max_is_rejected(session, factory):
    event = await factory.event(judging_criteria=CRITERIA)
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judge = await factory.judge(event)

    with pytest.raises(ValidationError) as exc_info:
        await submit_evaluation(
            session, submission.id, judge, 1, EvaluationCreate(criteria_scores={"c1": 11})
        )
    assert exc_info.value.details == {"criterion": "c1"}

    evaluation, created = await submit_evaluation(
        session, submission.id, judge, 1, EvaluationCreate(criteria_scores={"c1": 10})
    )
    assert created is True
    assert evaluation.score == 10.0


async def test_missing_criterion_is_rejected(session, factory):
    event = await factory.event(judging_criteria=CRITERIA)
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judge = await factory.judge(event)

    with pytest.raises(ValidationError) as exc_info:
        await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=50))
    assert exc_info.value.details["criterion"] == "c1"
    assert await count_evaluations(session, submission.id) == 0


class FakeEvent:
    def __init__(self, criteria):
        self.criteria = criteria


def test_score_defaults_to_sum_of_criteria():
    event = FakeEvent([
        {"id": "c1", "name": "Innovation", "max_score": 30},
        {"id": "c2", "name": "Design", "max_score": 30},
    ])

    score, criteria_scores = validate_criteria_scores(event, {"c1": 20, "c2": 15.5})

    assert score == 35.5
    assert criteria_scores == {"c1": 20.0, "c2": 15.5}


def test_explicit_score_wins_over_criteria_sum():
    event = FakeEvent([{"id": "c1", "name": "Innovation", "max_score": 10}])

    score, _ = validate_criteria_scores(event, {"c1": 5}, score=77)

    assert score == 77.0


@pytest.mark.parametrize("criteria_scores, criterion", [
    ({"c1": "high"}, "c1"),
    ({"c1": True}, "c1"),
    ({"c1": -1}, "c1"),
    ({"c1": 5, "c9": 1}, "c9"),
])
def test_bad_criteria_name_the_criterion(criteria_scores, criterion):
    event = FakeEvent([{"id": "c1", "name": "Innovation", "max_score": 10}])

    with pytest.raises(ValidationError) as exc_info:
        validate_criteria_scores(event, criteria_scores)

    assert exc_info.value.details["criterion"] == criterion


def test_sum_above_hundred_is_rejected():
    event = FakeEvent([
        {"id": "c1", "name": "Innovation", "max_score": 60},
        {"id": "c2", "name": "Design", "max_score": 60},
    ])

    with pytest.raises(ValidationError):
        validate_criteria_scores(event, {"c1": 60, "c2": 50})


def test_score_required_without_criteria():
    with pytest.raises(ValidationError):
        validate_criteria_scores(FakeEvent([]), {})


def test_criteria_list_form_is_merged():
    payload = EvaluationCreate(criteria=[{"id": "c1", "score": 7}])

    assert payload.criteria_scores == {"c1": 7}


async def test_closed_judging_blocks_judges_but_not_admins(session, factory):
    event = await factory.event(state="closed")
    team = await factory.team(event)
    submission = await factory.submission(event, team)
    judge = await factory.judge(event)
    admin = await factory.admin()

    with pytest.raises(ClosedWindowError):
        await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=50))

    _, created = await submit_evaluation(session, submission.id, admin, 1, EvaluationCreate(score=50))
    assert created is True


async def test_participant_cannot_evaluate(session, factory, setup):
    event, team, submission, judge = setup
    participant = await factory.user()
    pending_judge = await factory.judge(event, status=JudgeStatus.PENDING)

    with pytest.raises(ForbiddenError):
        await submit_evaluation(session, submission.id, participant, 1, EvaluationCreate(score=50))
    with pytest.raises(ForbiddenError):
        await submit_evaluation(session, submission.id, pending_judge, 1, EvaluationCreate(score=50))


async def test_organizer_can_evaluate(session, factory, setup):
    event, team, submission, judge = setup
    organizer = await factory.reload_user(event.organizer_id)

    _, created = await submit_evaluation(session, submission.id, organizer, 1, EvaluationCreate(score=40))

    assert created is True


async def test_deleted_submission_cannot_be_evaluated(session, factory, setup):
    event, team, submission, judge = setup
    submission.deleted_at = submission.created_at
    await session.commit()

    with pytest.raises(NotFoundError):
        await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=50))


async def test_failed_recalculation_keeps_no_evaluation(session, setup, monkeypatch):
    event, team, submission, judge = setup
    submission_id = submission.id

    async def broken_recalculation(session, submission_id):
        raise RuntimeError("aggregate failed")

    monkeypatch.setattr(evaluation_utils, "recalculate_scores", broken_recalculation)

    with pytest.raises(RuntimeError):
        await submit_evaluation(session, submission_id, judge, 1, EvaluationCreate(score=90))

    assert await count_evaluations(session, submission_id) == 0
    stored = await reload_submission(session, submission_id)
    assert stored.average_score is None
    assert stored.total_evaluations == 0


async def test_delete_recalculates_and_revive_counts_as_created(session, setup):
    event, team, submission, judge = setup
    evaluation, _ = await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=80))

    await delete_evaluation(session, evaluation.id, judge)

    stored = await reload_submission(session, submission.id)
    assert stored.average_score is None
    assert stored.total_evaluations == 0

    revived, created = await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=65))
    assert created is True
    assert revived.id == evaluation.id
    stored = await reload_submission(session, submission.id)
    assert stored.average_score == 65.0


async def test_only_owner_or_admin_deletes(session, factory, setup):
    event, team, submission, judge = setup
    other_judge = await factory.judge(event)
    admin = await factory.admin()
    evaluation, _ = await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=80))

    with pytest.raises(ForbiddenError):
        await delete_evaluation(session, evaluation.id, other_judge)

    await delete_evaluation(session, evaluation.id, admin)

    with pytest.raises(NotFoundError):
        await delete_evaluation(session, evaluation.id, admin)


async def test_judges_list_only_their_own_evaluations(session, factory, setup):
    event, team, submission, judge = setup
    other_judge = await factory.judge(event)
    organizer = await factory.reload_user(event.organizer_id)

    await submit_evaluation(session, submission.id, judge, 1, EvaluationCreate(score=80))
    await submit_evaluation(session, submission.id, other_judge, 1, EvaluationCreate(score=60))

    own = await list_submission_evaluations(session, submission.id, judge)
    everything = await list_submission_evaluations(session, submission.id, organizer)

    assert [evaluation.judge_id for evaluation in own] == [judge.id]
    assert len(everything) == 2

    member = await factory.reload_user(team.leader_id)
    with pytest.raises(ForbiddenError):
        await list_submission_evaluations(session, submission.id, member)
