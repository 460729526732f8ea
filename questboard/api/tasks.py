"""Task API endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from questboard.api.deps import get_current_user_id, get_task_service, raise_http_error
from questboard.api.schemas import (
    ErrorResponse,
    TaskCompletionResponse,
    TaskCreateRequest,
    TaskInfo,
    TaskVerifyRequest,
)
from questboard.core.badge.models import TaskCompletion
from questboard.core.errors import QuestboardError
from questboard.services.task_service import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _build_completion_response(result: TaskCompletion) -> TaskCompletionResponse:
    """TaskCompletion을 TaskCompletionResponse로 변환"""
    return TaskCompletionResponse(
        success=True,
        task=TaskInfo.from_core(result.task),
        recipient_id=result.recipient_id,
        verification_pending=result.verification_pending,
        badge_awarded=result.badge_awarded,
    )


@router.post(
    "",
    response_model=TaskInfo,
    status_code=201,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def create_task(
    request: TaskCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
) -> TaskInfo:
    """태스크 생성"""
    try:
        task = service.create_task(
            user_id,
            request.title,
            description=request.description,
            assignees=request.assignees,
            badge_id=request.badge_id,
            completion_verification=request.completion_verification,
        )
    except QuestboardError as e:
        raise_http_error(e)
    return TaskInfo.from_core(task)


@router.get(
    "/{task_id}",
    response_model=TaskInfo,
    responses={404: {"model": ErrorResponse}},
)
def get_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
) -> TaskInfo:
    """태스크 조회"""
    try:
        task = service.get_task(task_id)
    except QuestboardError as e:
        raise_http_error(e)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return TaskInfo.from_core(task)


@router.post(
    "/{task_id}/complete",
    response_model=TaskCompletionResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def complete_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
) -> TaskCompletionResponse:
    """
    태스크 완료

    배지가 걸린 태스크는 담당자(없으면 완료한 유저)에게 배지가 지급됩니다.
    완료 검증이 켜져 있고 생성자가 아닌 유저가 완료하면 승인 대기 상태가 됩니다.
    """
    try:
        result = service.complete_task(user_id, task_id)
    except QuestboardError as e:
        raise_http_error(e)
    return _build_completion_response(result)


@router.post(
    "/{task_id}/verify",
    response_model=TaskCompletionResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def verify_task(
    task_id: str,
    request: TaskVerifyRequest,
    user_id: str = Depends(get_current_user_id),
    service: TaskService = Depends(get_task_service),
) -> TaskCompletionResponse:
    """태스크 완료 승인/거절 (생성자만)"""
    try:
        result = service.verify_task_completion(user_id, task_id, request.approved)
    except QuestboardError as e:
        raise_http_error(e)
    return _build_completion_response(result)
