from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.auth.jwt import get_current_user
from hackhub.db import get_session
from hackhub.models import User
from hackhub.schemas.comment import CommentCreate, CommentResponse
from hackhub.schemas.evaluation import EvaluationCreate, EvaluationResponse
from hackhub.schemas.submission import (
    SubmissionCreate,
    SubmissionUpdate,
    SubmissionStatusUpdate,
    SubmissionResponse
)
from hackhub.utils import submission_utils
from hackhub.utils.comment_utils import add_comment, list_comments
from hackhub.utils.evaluation_utils import list_submission_evaluations, submit_evaluation
from hackhub.utils.file_utils import LocalStorage, get_storage

router = APIRouter(
    prefix="/submissions",
    tags=["submissions"]
)


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
        background_tasks: BackgroundTasks,
        event_id: UUID = Form(...),
        team_id: UUID = Form(...),
        title: str = Form(...),
        description: str = Form(...),
        github_url: Optional[str] = Form(None),
        video_url: Optional[str] = Form(None),
        submission_note: Optional[str] = Form(None),
        is_public: bool = Form(False),
        is_draft: bool = Form(False),
        file: Optional[UploadFile] = File(None),
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session),
        storage: LocalStorage = Depends(get_storage)
):
    """Submit the team's project, optionally with an artifact file"""
    try:
        payload = SubmissionCreate(
            title=title,
            description=description,
            github_url=github_url,
            video_url=video_url,
            submission_note=submission_note,
            is_public=is_public,
            is_draft=is_draft
        )
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors())

    return await submission_utils.create_submission(
        session,
        event_id,
        team_id,
        current_user,
        payload,
        upload_file=file if file is not None and file.filename else None,
        storage=storage,
        background_tasks=background_tasks
    )


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
        submission_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await submission_utils.get_submission(session, submission_id, current_user)


@router.put("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
        submission_id: UUID,
        submission_data: SubmissionUpdate,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await submission_utils.update_submission(session, submission_id, current_user, submission_data)


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
        submission_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    await submission_utils.delete_submission(session, submission_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{submission_id}/status", response_model=SubmissionResponse)
async def change_status(
        submission_id: UUID,
        status_data: SubmissionStatusUpdate,
        background_tasks: BackgroundTasks,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Organizer review: draft -> submitted -> under_review -> accepted/rejected"""
    return await submission_utils.change_submission_status(
        session, submission_id, current_user, status_data.status, background_tasks
    )


@router.post(
    "/{submission_id}/evaluations",
    response_model=EvaluationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"description": "Existing evaluation updated", "model": EvaluationResponse}}
)
async def evaluate_submission(
        submission_id: UUID,
        evaluation_data: EvaluationCreate,
        response: Response,
        background_tasks: BackgroundTasks,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    """Create the judge's evaluation for the round, or update it if it exists"""
    evaluation, created = await submit_evaluation(
        session,
        submission_id,
        current_user,
        evaluation_data.round,
        evaluation_data,
        background_tasks
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return evaluation


@router.get("/{submission_id}/evaluations", response_model=List[EvaluationResponse])
async def get_submission_evaluations(
        submission_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await list_submission_evaluations(session, submission_id, current_user)


@router.post("/{submission_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
        submission_id: UUID,
        comment_data: CommentCreate,
        background_tasks: BackgroundTasks,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    comment = await add_comment(
        session,
        submission_id,
        current_user,
        comment_data.content,
        parent_id=comment_data.parent_id,
        is_internal=comment_data.is_internal,
        background_tasks=background_tasks
    )
    return CommentResponse(
        id=comment.id,
        submission_id=comment.submission_id,
        user_id=comment.user_id,
        parent_id=comment.parent_id,
        content=comment.content,
        is_internal=comment.is_internal,
        created_at=comment.created_at
    )


@router.get("/{submission_id}/comments", response_model=List[CommentResponse])
async def get_comments(
        submission_id: UUID,
        current_user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await list_comments(session, submission_id, current_user)
