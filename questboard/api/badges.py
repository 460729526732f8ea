"""Badge API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response

from questboard.api.deps import (
    get_badge_service,
    get_current_user_id,
    raise_http_error,
)
from questboard.api.schemas import (
    BadgeAwardInfo,
    BadgeInfo,
    BadgeRequest,
    EarnedBadgeInfo,
    ErrorResponse,
)
from questboard.core.errors import QuestboardError
from questboard.services.badge_service import BadgeService

router = APIRouter(tags=["badges"])


@router.post(
    "/badges",
    response_model=BadgeInfo,
    status_code=201,
    responses={422: {"model": ErrorResponse}},
)
def create_badge(
    request: BadgeRequest,
    user_id: str = Depends(get_current_user_id),
    service: BadgeService = Depends(get_badge_service),
) -> BadgeInfo:
    """배지 생성"""
    try:
        badge = service.create_badge(
            user_id, request.title, request.description, request.image_url
        )
    except QuestboardError as e:
        raise_http_error(e)
    return BadgeInfo.from_core(badge)


@router.get("/badges", response_model=list[BadgeInfo])
def list_badges(
    service: BadgeService = Depends(get_badge_service),
) -> list[BadgeInfo]:
    """전체 배지 목록 (제목순)"""
    try:
        badges = service.list_badges()
    except QuestboardError as e:
        raise_http_error(e)
    return [BadgeInfo.from_core(b) for b in badges]


@router.get(
    "/badges/{badge_id}",
    response_model=BadgeInfo,
    responses={404: {"model": ErrorResponse}},
)
def get_badge(
    badge_id: str,
    service: BadgeService = Depends(get_badge_service),
) -> BadgeInfo:
    """배지 조회"""
    try:
        badge = service.get_badge(badge_id)
    except QuestboardError as e:
        raise_http_error(e)
    if badge is None:
        raise HTTPException(status_code=404, detail="Badge not found")
    return BadgeInfo.from_core(badge)


@router.get(
    "/badges/{badge_id}/holders",
    response_model=list[BadgeAwardInfo],
    responses={404: {"model": ErrorResponse}},
)
def get_badge_holders(
    badge_id: str,
    service: BadgeService = Depends(get_badge_service),
) -> list[BadgeAwardInfo]:
    """배지 보유자 목록"""
    try:
        holders = service.get_badge_holders(badge_id)
    except QuestboardError as e:
        raise_http_error(e)
    return [BadgeAwardInfo.from_core(a) for a in holders]


@router.patch(
    "/badges/{badge_id}",
    response_model=BadgeInfo,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def update_badge(
    badge_id: str,
    request: BadgeRequest,
    user_id: str = Depends(get_current_user_id),
    service: BadgeService = Depends(get_badge_service),
) -> BadgeInfo:
    """배지 수정 (생성자만)"""
    try:
        badge = service.update_badge(
            user_id, badge_id, request.title, request.description, request.image_url
        )
    except QuestboardError as e:
        raise_http_error(e)
    return BadgeInfo.from_core(badge)


@router.delete(
    "/badges/{badge_id}",
    status_code=204,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def delete_badge(
    badge_id: str,
    user_id: str = Depends(get_current_user_id),
    service: BadgeService = Depends(get_badge_service),
) -> Response:
    """배지 삭제 (생성자만)"""
    try:
        service.delete_badge(user_id, badge_id)
    except QuestboardError as e:
        raise_http_error(e)
    return Response(status_code=204)


@router.get("/users/{user_id}/badges", response_model=list[EarnedBadgeInfo])
def list_user_badges(
    user_id: str,
    service: BadgeService = Depends(get_badge_service),
) -> list[EarnedBadgeInfo]:
    """유저가 획득한 배지 (최근 획득순)"""
    try:
        earned = service.list_user_badges(user_id)
    except QuestboardError as e:
        raise_http_error(e)
    return [EarnedBadgeInfo.from_core(item) for item in earned]
