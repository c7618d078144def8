import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from hackhub.db import Base
from hackhub.models import Role, UserRole

logger = logging.getLogger(__name__)

ROLES_DATA = [
    {"name": UserRole.PARTICIPANT.value, "description": "Event participant"},
    {"name": UserRole.JUDGE.value, "description": "Jury member"},
    {"name": UserRole.ORGANIZER.value, "description": "Event organizer"},
    {"name": UserRole.ADMIN.value, "description": "Platform administrator"},
]


async def seed_roles(session: AsyncSession):
    """Create the platform roles that are missing"""
    result = await session.execute(select(Role.name))
    existing = set(result.scalars().all())

    for role_data in ROLES_DATA:
        if role_data["name"] not in existing:
            session.add(Role(
                id=uuid.uuid4(),
                name=role_data["name"],
                description=role_data["description"]
            ))

    await session.commit()


async def init_models(engine: AsyncEngine):
    """Create the schema and reference data"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        await seed_roles(session)

    logger.info("Database schema initialized")
