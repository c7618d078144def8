import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.auth.jwt import create_access_token, get_current_user, oauth2_scheme
from hackhub.auth.utils import verify_password, get_password_hash
from hackhub.db import get_session
from hackhub.errors import ConflictError
from hackhub.models import Role, User, UserRole
from hackhub.models.user import User2Roles
from hackhub.schemas.user import UserCreate, UserLogin, Token, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        registered_at=user.registered_at,
        is_active=user.is_active,
        roles=sorted(user.role_names)
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, session: AsyncSession = Depends(get_session)):
    """Registration of a participant account"""
    query = select(User).where(User.email == user_data.email)
    result = await session.execute(query)
    if result.scalar_one_or_none():
        raise ConflictError("Email already registered")

    role = await session.execute(select(Role).where(Role.name == UserRole.PARTICIPANT.value))
    role = role.scalar_one()

    user = User(
        id=uuid.uuid4(),
        email=user_data.email,
        password=get_password_hash(user_data.password),
        full_name=user_data.full_name
    )
    session.add(user)
    session.add(User2Roles(id=uuid.uuid4(), user_id=user.id, role_id=role.id))

    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Email already registered")

    result = await session.execute(
        select(User).where(User.id == user.id).execution_options(populate_existing=True)
    )
    user = result.scalar_one()
    logger.info("User %s registered", user.id)
    return user_to_response(user)


@router.post("/login", response_model=Token)
async def login(user_data: UserLogin, session: AsyncSession = Depends(get_session)):
    query = select(User).where(User.email == user_data.email)
    result = await session.execute(query)
    user = result.scalar_one_or_none()

    if not user or not user.is_active or not verify_password(user_data.password, user.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={"sub": user.email}
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get(
    "/me",
    response_model=UserResponse,
    dependencies=[Depends(oauth2_scheme)],
    responses={
        401: {"description": "Not authenticated"},
    }
)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user)
