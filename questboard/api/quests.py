"""Quest API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from questboard.api.deps import get_current_user_id, get_quest_service, raise_http_error
from questboard.api.schemas import (
    BadgeAwardInfo,
    BadgeInfo,
    CompletionResponse,
    ErrorResponse,
    ProgressInfo,
    QuestDetailResponse,
    QuestInfo,
    QuestProgressResponse,
    QuestRequest,
    QuestSummaryInfo,
    QuestTaskInfo,
)
from questboard.core.errors import QuestboardError
from questboard.core.quest.progress_logic import derive_state
from questboard.services.quest_service import QuestService

router = APIRouter(prefix="/quests", tags=["quests"])


@router.post(
    "",
    response_model=QuestInfo,
    status_code=201,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def create_quest(
    request: QuestRequest,
    user_id: str = Depends(get_current_user_id),
    service: QuestService = Depends(get_quest_service),
) -> QuestInfo:
    """
    퀘스트 생성

    task_ids 순서가 곧 태스크 순서입니다.
    required_tasks_count는 1 이상, 태스크 수 이하여야 합니다.
    """
    try:
        quest = service.create_quest(
            user_id,
            request.title,
            request.task_ids,
            required_tasks_count=request.required_tasks_count,
            description=request.description,
            badge_id=request.badge_id,
        )
    except QuestboardError as e:
        raise_http_error(e)
    return QuestInfo.from_core(quest)


@router.get("", response_model=list[QuestSummaryInfo])
def list_quests(
    q: Optional[str] = Query(default=None, description="제목/설명/배지 제목 검색"),
    created_by_me: bool = False,
    in_progress: bool = False,
    completed: bool = False,
    user_id: str = Depends(get_current_user_id),
    service: QuestService = Depends(get_quest_service),
) -> list[QuestSummaryInfo]:
    """퀘스트 목록 (최신순)"""
    try:
        summaries = service.list_quests(
            user_id,
            query=q,
            created_by_me=created_by_me,
            in_progress=in_progress,
            completed=completed,
        )
    except QuestboardError as e:
        raise_http_error(e)
    return [QuestSummaryInfo.from_core(s) for s in summaries]


@router.get(
    "/{quest_id}",
    response_model=QuestDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_quest(
    quest_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuestService = Depends(get_quest_service),
) -> QuestDetailResponse:
    """퀘스트 상세 (태스크, 보상 배지, 내 진행 기록)"""
    try:
        detail = service.get_quest_detail(quest_id, user_id)
    except QuestboardError as e:
        raise_http_error(e)
    return QuestDetailResponse(
        quest=QuestInfo.from_core(detail.quest),
        state=derive_state(detail.progress).value,
        tasks=[QuestTaskInfo.from_core(qt) for qt in detail.tasks],
        badge=BadgeInfo.from_core(detail.badge) if detail.badge else None,
        progress=ProgressInfo.from_core(detail.progress) if detail.progress else None,
        user_has_badge=detail.user_has_badge,
    )


@router.put(
    "/{quest_id}",
    response_model=QuestInfo,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
def update_quest(
    quest_id: str,
    request: QuestRequest,
    user_id: str = Depends(get_current_user_id),
    service: QuestService = Depends(get_quest_service),
) -> QuestInfo:
    """
    퀘스트 수정 (생성자만)

    태스크 목록을 통째로 교체하고, 기존 진행 기록은 모두 리셋됩니다.
    """
    try:
        quest = service.update_quest(
            user_id,
            quest_id,
            request.title,
            request.task_ids,
            request.required_tasks_count,
            description=request.description,
            badge_id=request.badge_id,
        )
    except QuestboardError as e:
        raise_http_error(e)
    return QuestInfo.from_core(quest)


@router.delete(
    "/{quest_id}",
    status_code=204,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def delete_quest(
    quest_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuestService = Depends(get_quest_service),
) -> Response:
    """퀘스트 삭제 (생성자만)"""
    try:
        service.delete_quest(user_id, quest_id)
    except QuestboardError as e:
        raise_http_error(e)
    return Response(status_code=204)


@router.post(
    "/{quest_id}/start",
    response_model=ProgressInfo,
    status_code=201,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def start_quest(
    quest_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuestService = Depends(get_quest_service),
) -> ProgressInfo:
    """퀘스트 시작. 유저당 한 번만 가능합니다."""
    try:
        progress = service.start_quest(user_id, quest_id)
    except QuestboardError as e:
        raise_http_error(e)
    return ProgressInfo.from_core(progress)


@router.post(
    "/{quest_id}/tasks/{task_id}/complete",
    response_model=CompletionResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
def complete_quest_task(
    quest_id: str,
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuestService = Depends(get_quest_service),
) -> CompletionResponse:
    """
    퀘스트 태스크 완료

    이미 완료한 태스크는 아무 변화 없이 현재 진행 기록을 돌려줍니다.
    임계값에 도달하면 퀘스트가 완료되고 보상 배지가 지급됩니다.
    """
    try:
        outcome = service.complete_quest_task(user_id, quest_id, task_id)
    except QuestboardError as e:
        raise_http_error(e)
    return CompletionResponse(
        success=True,
        changed=outcome.changed,
        newly_completed=outcome.newly_completed,
        progress=ProgressInfo.from_core(outcome.progress),
        badge_awarded=BadgeAwardInfo.from_core(outcome.award) if outcome.award else None,
    )


@router.get(
    "/{quest_id}/progress",
    response_model=QuestProgressResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_quest_progress(
    quest_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuestService = Depends(get_quest_service),
) -> QuestProgressResponse:
    """내 진행 상태 조회"""
    try:
        state = service.get_state(user_id, quest_id)
        progress = service.get_progress(user_id, quest_id)
    except QuestboardError as e:
        raise_http_error(e)
    return QuestProgressResponse(
        quest_id=quest_id,
        state=state.value,
        progress=ProgressInfo.from_core(progress) if progress else None,
    )
