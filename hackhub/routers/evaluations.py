from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.auth.jwt import get_current_user
from hackhub.db import get_session
from hackhub.models import User
from hackhub.utils.evaluation_utils import delete_evaluation

router = APIRouter(
    prefix="/evaluations",
    tags=["evaluations"]
)


@router.delete("/{evaluation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_evaluation(
        evaluation_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Delete an evaluation and recalculate the submission's scores"""
    await delete_evaluation(session, evaluation_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
