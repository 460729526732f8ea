"""배지 Service: 배지 CRUD, 유저 배지 조회, 태스크 배지 지급

태스크 완료는 TaskService가 EventBus로 알려주고, 지급은 여기서 한다.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from questboard.core.badge.award_logic import build_task_award
from questboard.core.badge.models import Badge, BadgeAward, EarnedBadge
from questboard.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from questboard.core.event_bus import DomainEvent, EventBus
from questboard.core.event_types import EventTypes
from questboard.repositories.base import QuestRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BadgeService:
    """배지 정의 관리 + 지급"""

    def __init__(self, repository: QuestRepository, event_bus: EventBus):
        self._repo = repository
        self._bus = event_bus
        self._register_event_handlers()

    def _register_event_handlers(self) -> None:
        """EventBus 구독"""
        self._bus.subscribe(EventTypes.TASK_COMPLETED, self._on_task_completed)
        self._bus.subscribe(
            EventTypes.TASK_COMPLETION_VERIFIED, self._on_task_completion_verified
        )

    # === Badge 관리 ===

    def create_badge(
        self,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Badge:
        """배지 생성."""
        if not title or not title.strip():
            raise ValidationError("Badge title is required")

        now = _utcnow()
        badge = Badge(
            badge_id=f"badge_{uuid.uuid4().hex[:12]}",
            title=title.strip(),
            created_by=user_id,
            description=description or None,
            image_url=image_url or None,
            created_at=now,
            updated_at=now,
        )
        self._repo.add_badge(badge)
        logger.info("Badge created: %s (%s)", badge.badge_id, badge.title)
        return badge

    def get_badge(self, badge_id: str) -> Optional[Badge]:
        """배지 조회."""
        return self._repo.get_badge(badge_id)

    def list_badges(self) -> list[Badge]:
        """전체 배지 (제목순)."""
        return self._repo.list_badges()

    def update_badge(
        self,
        user_id: str,
        badge_id: str,
        title: str,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Badge:
        """배지 수정. 생성자만 가능."""
        badge = self._require_owned_badge(user_id, badge_id, "edit")
        if not title or not title.strip():
            raise ValidationError("Badge title is required")

        badge.title = title.strip()
        badge.description = description or None
        badge.image_url = image_url or None
        badge.updated_at = _utcnow()
        return self._repo.update_badge(badge)

    def delete_badge(self, user_id: str, badge_id: str) -> None:
        """배지 삭제. 지급 기록도 함께 사라진다."""
        self._require_owned_badge(user_id, badge_id, "delete")
        self._repo.delete_badge(badge_id)
        logger.info("Badge deleted: %s", badge_id)

    # === 지급 기록 ===

    def list_user_badges(self, user_id: str) -> list[EarnedBadge]:
        """유저가 획득한 배지 (최근 획득순)."""
        earned: list[EarnedBadge] = []
        for award in self._repo.list_user_badges(user_id):
            badge = self._repo.get_badge(award.badge_id)
            if badge is not None:
                earned.append(EarnedBadge(award=award, badge=badge))
        return earned

    def get_badge_holders(self, badge_id: str) -> list[BadgeAward]:
        """배지 보유자 목록."""
        if self._repo.get_badge(badge_id) is None:
            raise NotFoundError("Badge not found")
        return self._repo.list_badge_holders(badge_id)

    def award_task_badge(
        self, task_id: str, acting_user_id: str
    ) -> Optional[BadgeAward]:
        """태스크 배지 지급. 이미 보유 중이면 None."""
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found")

        award = build_task_award(task, acting_user_id, _utcnow())
        if award is None:
            return None

        stored = self._repo.award_badge(award)
        if stored is None:
            logger.debug(
                "Badge %s already held by %s, skipping", award.badge_id, award.user_id
            )
            return None

        logger.info(
            "Badge awarded: %s → %s (task %s)", stored.badge_id, stored.user_id, task_id
        )
        self._bus.emit(
            DomainEvent(
                event_type=EventTypes.BADGE_AWARDED,
                data={
                    "badge_id": stored.badge_id,
                    "user_id": stored.user_id,
                    "task_id": task_id,
                },
                source="badge_service",
            )
        )
        return stored

    # === EventBus 핸들러 ===

    def _on_task_completed(self, event: DomainEvent) -> None:
        """task_completed 수신. 검증이 필요 없는 경우에만 지급."""
        if not event.data.get("award_badge"):
            return
        task_id = event.data.get("task_id", "")
        user_id = event.data.get("user_id", "")
        if task_id and user_id:
            self.award_task_badge(task_id, user_id)

    def _on_task_completion_verified(self, event: DomainEvent) -> None:
        """task_completion_verified 수신. 생성자 승인 후 지급."""
        task_id = event.data.get("task_id", "")
        user_id = event.data.get("user_id", "")
        if task_id and user_id:
            self.award_task_badge(task_id, user_id)

    # === 내부 ===

    def _require_owned_badge(self, user_id: str, badge_id: str, action: str) -> Badge:
        badge = self._repo.get_badge(badge_id)
        if badge is None:
            raise NotFoundError("Badge not found")
        if badge.created_by != user_id:
            raise PermissionDeniedError(f"Only the badge creator can {action} this badge")
        return badge
