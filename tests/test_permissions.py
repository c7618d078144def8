import pytest

from hackhub.errors import ForbiddenError
from hackhub.models.enums import JudgeStatus
from hackhub.utils.permissions import Capability, get_capabilities, require_capability
from hackhub.utils.team_utils import leave_team


@pytest.fixture
async def event_with_team(factory):
    event = await factory.event()
    leader = await factory.user()
    member = await factory.user()
    team = await factory.team(event, leader=leader, members=[member])
    return event, team, leader, member


async def test_admin_has_every_capability_but_submit(session, factory, event_with_team):
    event, team, _, _ = event_with_team
    admin = await factory.admin()

    capabilities = await get_capabilities(session, admin, event, team)

    assert capabilities == {Capability.ADMIN, Capability.ORGANIZE, Capability.JUDGE}


async def test_organizer_of_event(session, factory, event_with_team):
    event, team, _, _ = event_with_team
    organizer = await factory.reload_user(event.organizer_id)
    other_organizer = await factory.organizer()

    assert await get_capabilities(session, organizer, event, team) == {Capability.ORGANIZE, Capability.JUDGE}
    assert await get_capabilities(session, other_organizer, event, team) == set()


async def test_only_accepted_judges_judge(session, factory, event_with_team):
    event, team, _, _ = event_with_team
    judge = await factory.judge(event)
    pending = await factory.judge(event, status=JudgeStatus.PENDING)
    rejected = await factory.judge(event, status=JudgeStatus.REJECTED)

    assert await get_capabilities(session, judge, event, team) == {Capability.JUDGE}
    assert await get_capabilities(session, pending, event, team) == set()
    assert await get_capabilities(session, rejected, event, team) == set()


async def test_judge_of_another_event(session, factory, event_with_team):
    event, team, _, _ = event_with_team
    other_event = await factory.event()
    judge = await factory.judge(other_event)

    assert await get_capabilities(session, judge, event, team) == set()


async def test_team_members_submit_for_their_team_only(session, factory, event_with_team):
    event, team, leader, member = event_with_team
    other_team = await factory.team(event)

    assert await get_capabilities(session, leader, event, team) == {Capability.SUBMIT}
    assert await get_capabilities(session, member, event, team) == {Capability.SUBMIT}
    assert await get_capabilities(session, member, event, other_team) == set()
    assert await get_capabilities(session, member, event) == set()


async def test_member_who_left_loses_submit(session, event_with_team):
    event, team, leader, member = event_with_team

    await leave_team(session, team.id, member)

    assert await get_capabilities(session, member, event, team) == set()


async def test_anonymous_has_nothing(session, event_with_team):
    event, team, _, _ = event_with_team

    assert await get_capabilities(session, None, event, team) == set()


async def test_require_capability(session, factory, event_with_team):
    event, team, leader, _ = event_with_team

    capabilities = await require_capability(session, leader, event, Capability.SUBMIT, team=team)
    assert Capability.SUBMIT in capabilities

    with pytest.raises(ForbiddenError) as exc_info:
        await require_capability(session, leader, event, Capability.JUDGE, message="Judges only")
    assert exc_info.value.message == "Judges only"
