import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("SMTP_ENABLED", "false")

import uuid
from datetime import timedelta
from typing import AsyncGenerator, Iterable, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import app
from hackhub.auth.jwt import create_access_token
from hackhub.auth.utils import get_password_hash
from hackhub.db import Base, get_session
from hackhub.init_db import seed_roles
from hackhub.models import (
    Event, EventJudge, Evaluation, Role, Submission, Team, TeamMember, User, User2Roles
)
from hackhub.models.enums import (
    EventStatus, JudgeRole, JudgeStatus, SubmissionStatus, TeamMemberStatus, TeamRole, TeamStatus
)
from hackhub.utils.file_utils import LocalStorage, get_storage
from hackhub.utils.time_utils import utcnow

TEST_DATABASE_URL = "sqlite+aiosqlite://"
PASSWORD = "password123"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await seed_roles(session)
    return factory


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(base_dir=str(tmp_path / "uploads"), max_file_size=1024)


@pytest_asyncio.fixture
async def client(session_factory, storage) -> AsyncGenerator[AsyncClient, None]:
    """API client; every request gets its own session on the test database"""
    async def override_get_session():
        async with session_factory() as request_session:
            yield request_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


class Factory:
    """Builds rows directly, bypassing the window and permission checks"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def reload_user(self, user_id) -> User:
        result = await self.session.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def user(self, roles: Iterable[str] = ("participant",), full_name: Optional[str] = None) -> User:
        n = self._next()
        user = User(
            id=uuid.uuid4(),
            email=f"user{n}@example.com",
            password=get_password_hash(PASSWORD),
            full_name=full_name or f"User {n}"
        )
        self.session.add(user)
        for role_name in roles:
            role = await self.session.execute(select(Role).where(Role.name == role_name))
            self.session.add(User2Roles(id=uuid.uuid4(), user_id=user.id, role_id=role.scalar_one().id))
        await self.session.commit()
        return await self.reload_user(user.id)

    async def admin(self) -> User:
        return await self.user(roles=("admin",))

    async def organizer(self) -> User:
        return await self.user(roles=("organizer",))

    async def event(self, organizer: Optional[User] = None, state: str = "open", **overrides) -> Event:
        """
        state "open": registration, submissions and judging all open
        state "closed": the event and its judging period are over
        """
        organizer = organizer or await self.organizer()
        now = utcnow()
        if state == "open":
            dates = dict(
                registration_start=now - timedelta(days=1),
                registration_end=now + timedelta(days=1),
                start_date=now + timedelta(days=2),
                end_date=now + timedelta(days=5),
                submission_deadline=now + timedelta(days=4),
                judging_end=now + timedelta(days=7),
            )
        else:
            dates = dict(
                registration_start=now - timedelta(days=10),
                registration_end=now - timedelta(days=8),
                start_date=now - timedelta(days=7),
                end_date=now - timedelta(days=2),
                submission_deadline=now - timedelta(days=3),
                judging_end=now - timedelta(days=1),
            )
        n = self._next()
        fields = dict(
            id=uuid.uuid4(),
            organizer_id=organizer.id,
            title=f"Event {n}",
            slug=f"event-{n}",
            description="A hackathon",
            max_team_size=5,
            min_team_size=1,
            judging_criteria=[],
            status=EventStatus.UPCOMING.value,
            is_published=True,
            published_at=now,
            is_leaderboard_public=False,
            timezone="UTC",
        )
        fields.update(dates)
        fields.update(overrides)
        event = Event(**fields)
        self.session.add(event)
        await self.session.commit()
        return event

    async def team(self, event: Event, leader: Optional[User] = None, members: Iterable[User] = (),
                   name: Optional[str] = None) -> Team:
        leader = leader or await self.user()
        n = self._next()
        now = utcnow()
        team = Team(
            id=uuid.uuid4(),
            event_id=event.id,
            leader_id=leader.id,
            name=name or f"Team {n}",
            invite_code=f"T{n:05d}"[-6:],
            invite_expires=now + timedelta(days=7),
            is_locked=False,
            status=TeamStatus.ACTIVE.value
        )
        self.session.add(team)
        self.session.add(TeamMember(
            id=uuid.uuid4(), team_id=team.id, event_id=event.id, user_id=leader.id,
            role=TeamRole.ADMIN.value, status=TeamMemberStatus.ACCEPTED.value,
            joined_at=now, created_at=now
        ))
        for offset, member in enumerate(members, start=1):
            self.session.add(TeamMember(
                id=uuid.uuid4(), team_id=team.id, event_id=event.id, user_id=member.id,
                role=TeamRole.MEMBER.value, status=TeamMemberStatus.ACCEPTED.value,
                joined_at=now + timedelta(seconds=offset), created_at=now + timedelta(seconds=offset)
            ))
        await self.session.commit()
        return team

    async def judge(self, event: Event, user: Optional[User] = None,
                    status: JudgeStatus = JudgeStatus.ACCEPTED) -> User:
        user = user or await self.user(roles=("judge",))
        self.session.add(EventJudge(
            id=uuid.uuid4(), event_id=event.id, user_id=user.id,
            role=JudgeRole.JUDGE.value, status=status.value, invited_at=utcnow()
        ))
        await self.session.commit()
        return user

    async def submission(self, event: Event, team: Team, status: SubmissionStatus = SubmissionStatus.SUBMITTED,
                         average_score: Optional[float] = None, total_evaluations: int = 0,
                         created_offset: int = 0, title: Optional[str] = None) -> Submission:
        n = self._next()
        submission = Submission(
            id=uuid.uuid4(),
            event_id=event.id,
            team_id=team.id,
            submitted_by_id=team.leader_id,
            title=title or f"Project {n}",
            description="Project description",
            status=status.value,
            average_score=average_score,
            total_evaluations=total_evaluations,
            created_at=utcnow() + timedelta(seconds=created_offset)
        )
        self.session.add(submission)
        await self.session.commit()
        return submission

    async def evaluation(self, submission: Submission, judge: User, score: float, round: int = 1) -> Evaluation:
        evaluation = Evaluation(
            id=uuid.uuid4(),
            submission_id=submission.id,
            judge_id=judge.id,
            event_id=submission.event_id,
            round=round,
            score=score,
            criteria_scores={}
        )
        self.session.add(evaluation)
        await self.session.commit()
        return evaluation


@pytest.fixture
def factory(session) -> Factory:
    return Factory(session)
