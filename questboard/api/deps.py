"""Request-scoped dependencies shared by the routers."""

from typing import NoReturn, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from questboard.core.errors import QuestboardError
from questboard.core.event_bus import EventBus
from questboard.core.logging import get_logger
from questboard.db.database import get_db
from questboard.repositories.base import QuestRepository
from questboard.repositories.factory import get_repository
from questboard.services.badge_service import BadgeService
from questboard.services.quest_service import QuestService
from questboard.services.task_service import TaskService

logger = get_logger(__name__)

ERROR_STATUS: dict[str, int] = {
    "not_found": 404,
    "permission_denied": 403,
    "validation": 422,
    "conflict": 409,
    "backend": 503,
}


def raise_http_error(error: QuestboardError) -> NoReturn:
    """도메인 에러 → HTTPException. 메시지는 그대로 사용자에게 보여준다."""
    status_code = ERROR_STATUS.get(error.kind, 400)
    if status_code >= 500:
        logger.error("Request failed: %s", error.message)
    else:
        logger.warning("Request rejected (%s): %s", error.kind, error.message)
    raise HTTPException(status_code=status_code, detail=error.message)


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """호출자 ID. 인증은 외부 IdP가 처리하고 X-User-Id 헤더로 전달된다."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return x_user_id


def get_event_bus() -> EventBus:
    """요청 단위 EventBus"""
    return EventBus()


def get_quest_repository(db: Session = Depends(get_db)) -> QuestRepository:
    """설정된 백엔드의 QuestRepository (의존성 주입)"""
    return get_repository(db)


def get_quest_service(
    repository: QuestRepository = Depends(get_quest_repository),
    bus: EventBus = Depends(get_event_bus),
) -> QuestService:
    """QuestService 인스턴스 반환 (의존성 주입)"""
    return QuestService(repository, bus)


def get_badge_service(
    repository: QuestRepository = Depends(get_quest_repository),
    bus: EventBus = Depends(get_event_bus),
) -> BadgeService:
    """BadgeService 인스턴스 반환 (의존성 주입)"""
    return BadgeService(repository, bus)


def get_task_service(
    repository: QuestRepository = Depends(get_quest_repository),
    bus: EventBus = Depends(get_event_bus),
    badge_service: BadgeService = Depends(get_badge_service),
) -> TaskService:
    """TaskService 인스턴스 반환 (의존성 주입)

    badge_service는 같은 버스에 구독만 시켜 두면 된다.
    """
    return TaskService(repository, bus)
