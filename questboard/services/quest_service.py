"""퀘스트 Service: Core↔Repository 연결, EventBus 통신

Service → Core, Service → Repository 허용
Service → Service 금지, EventBus 경유
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from questboard.config import settings
from questboard.core.badge.models import BadgeAward
from questboard.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from questboard.core.event_bus import DomainEvent, EventBus
from questboard.core.event_types import EventTypes
from questboard.core.quest.enums import ProgressResetMode, QuestState
from questboard.core.quest.filters import filter_quests
from questboard.core.quest.models import (
    CompletionOutcome,
    Progress,
    Quest,
    QuestDetail,
    QuestSummary,
)
from questboard.core.quest.progress_logic import (
    apply_task_completion,
    derive_state,
    reset_progress_for_edit,
    start_progress,
    validate_quest_definition,
)
from questboard.repositories.base import QuestRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestService:
    """배지 퀘스트 CRUD + 진행 상태 머신"""

    def __init__(
        self,
        repository: QuestRepository,
        event_bus: EventBus,
        reset_mode: Optional[str] = None,
    ):
        self._repo = repository
        self._bus = event_bus
        self._reset_mode = ProgressResetMode(reset_mode or settings.PROGRESS_RESET_ON_EDIT)

    # === Quest 관리 ===

    def create_quest(
        self,
        user_id: str,
        title: str,
        task_ids: list[str],
        required_tasks_count: int = 1,
        description: Optional[str] = None,
        badge_id: Optional[str] = None,
    ) -> Quest:
        """퀘스트 생성. 태스크 연결은 입력 순서대로 position 0..n-1."""
        validate_quest_definition(title, task_ids, required_tasks_count)
        self._require_tasks(task_ids)
        self._require_badge(badge_id)

        now = _utcnow()
        quest = Quest(
            quest_id=f"quest_{uuid.uuid4().hex[:12]}",
            title=title.strip(),
            created_by=user_id,
            required_tasks_count=required_tasks_count,
            description=description or None,
            badge_id=badge_id or None,
            created_at=now,
            updated_at=now,
        )
        self._repo.add_quest(quest, task_ids)

        logger.info(
            "Quest created: %s (%d tasks, %d required)",
            quest.quest_id,
            len(task_ids),
            required_tasks_count,
        )
        self._emit(EventTypes.QUEST_CREATED, {"quest_id": quest.quest_id})
        return quest

    def get_quest(self, quest_id: str) -> Optional[Quest]:
        """퀘스트 조회."""
        return self._repo.get_quest(quest_id)

    def get_quest_detail(self, quest_id: str, user_id: str) -> QuestDetail:
        """퀘스트 + 보상 배지 + 정렬된 태스크 + 유저 진행 기록."""
        quest = self._require_quest(quest_id)

        badge = None
        user_has_badge = False
        if quest.badge_id:
            badge = self._repo.get_badge(quest.badge_id)
            if badge is not None:
                user_has_badge = self._repo.has_badge(user_id, badge.badge_id)

        return QuestDetail(
            quest=quest,
            tasks=self._repo.get_quest_tasks(quest_id),
            badge=badge,
            progress=self._repo.get_progress(user_id, quest_id),
            user_has_badge=user_has_badge,
        )

    def list_quests(
        self,
        user_id: str,
        query: Optional[str] = None,
        created_by_me: bool = False,
        in_progress: bool = False,
        completed: bool = False,
    ) -> list[QuestSummary]:
        """퀘스트 목록 (최신순) + 태스크 수 + 유저 진행 기록, 필터 적용."""
        quests = self._repo.list_quests()
        if not quests:
            return []

        quest_ids = [q.quest_id for q in quests]
        counts = self._repo.count_quest_tasks(quest_ids)
        progress_by_quest = {
            p.quest_id: p for p in self._repo.list_progress_for_user(user_id, quest_ids)
        }
        badge_titles = {b.badge_id: b.title for b in self._repo.list_badges()}

        summaries = [
            QuestSummary(
                quest=q,
                task_count=counts.get(q.quest_id, 0),
                badge_title=badge_titles.get(q.badge_id) if q.badge_id else None,
                progress=progress_by_quest.get(q.quest_id),
            )
            for q in quests
        ]
        return filter_quests(
            summaries,
            query=query,
            user_id=user_id,
            created_by_me=created_by_me,
            in_progress=in_progress,
            completed=completed,
        )

    def update_quest(
        self,
        user_id: str,
        quest_id: str,
        title: str,
        task_ids: list[str],
        required_tasks_count: int,
        description: Optional[str] = None,
        badge_id: Optional[str] = None,
    ) -> Quest:
        """editQuest. 태스크 교체 + 임계값 변경 + 기존 진행 기록 리셋."""
        quest = self._require_quest(quest_id)
        if quest.created_by != user_id:
            raise PermissionDeniedError("Only the quest creator can edit this quest")

        validate_quest_definition(title, task_ids, required_tasks_count)
        self._require_tasks(task_ids)
        self._require_badge(badge_id)

        now = _utcnow()
        quest.title = title.strip()
        quest.description = description or None
        quest.badge_id = badge_id or None
        quest.required_tasks_count = required_tasks_count
        quest.updated_at = now

        progresses = []
        finished = []
        for existing in self._repo.list_progress_for_quest(quest_id):
            reset = reset_progress_for_edit(
                existing, task_ids, required_tasks_count, self._reset_mode, now
            )
            if not existing.is_completed and reset.is_completed:
                finished.append(reset.user_id)
            progresses.append(reset)

        awards = []
        if quest.badge_id:
            awards = [
                BadgeAward(
                    user_id=finished_user,
                    badge_id=quest.badge_id,
                    earned_at=now,
                    quest_id=quest_id,
                )
                for finished_user in finished
            ]
        stored = self._repo.save_quest_edit(quest, task_ids, progresses, awards)

        logger.info(
            "Quest updated: %s (%d tasks, %d required, %d progress records reset, mode=%s)",
            quest_id,
            len(task_ids),
            required_tasks_count,
            len(progresses),
            self._reset_mode.value,
        )
        self._emit(
            EventTypes.QUEST_UPDATED,
            {"quest_id": quest_id, "reset_count": len(progresses)},
        )
        for finished_user in finished:
            logger.info("Quest completed by edit: %s for %s", quest_id, finished_user)
            self._emit(
                EventTypes.QUEST_COMPLETED,
                {"quest_id": quest_id, "user_id": finished_user},
            )
        for award in stored:
            logger.info(
                "Badge awarded: %s → %s (quest %s)", award.badge_id, award.user_id, quest_id
            )
            self._emit(
                EventTypes.BADGE_AWARDED,
                {"badge_id": award.badge_id, "user_id": award.user_id, "quest_id": quest_id},
            )
        return quest

    def delete_quest(self, user_id: str, quest_id: str) -> None:
        """퀘스트 삭제. 생성자만 가능."""
        quest = self._require_quest(quest_id)
        if quest.created_by != user_id:
            raise PermissionDeniedError("Only the quest creator can delete this quest")

        self._repo.delete_quest(quest_id)
        logger.info("Quest deleted: %s", quest_id)
        self._emit(EventTypes.QUEST_DELETED, {"quest_id": quest_id})

    # === 진행 상태 ===

    def start_quest(self, user_id: str, quest_id: str) -> Progress:
        """startQuest. 빈 완료 목록, 0%로 시작."""
        if not user_id:
            raise ValidationError("A user is required to start a quest")
        self._require_quest(quest_id)

        existing = self._repo.get_progress(user_id, quest_id)
        progress = start_progress(
            progress_id=f"progress_{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            quest_id=quest_id,
            existing=existing,
            now=_utcnow(),
        )
        self._repo.add_progress(progress)

        logger.info("Quest started: %s by %s", quest_id, user_id)
        self._emit(
            EventTypes.QUEST_STARTED,
            {"quest_id": quest_id, "user_id": user_id},
        )
        return progress

    def complete_quest_task(
        self, user_id: str, quest_id: str, task_id: str
    ) -> CompletionOutcome:
        """completeTask. 진행 기록 갱신과 배지 지급은 한 트랜잭션."""
        quest = self._require_quest(quest_id)
        progress = self._repo.get_progress(user_id, quest_id)
        if progress is None:
            raise NotFoundError("Start the quest before completing its tasks")

        quest_task_ids = [qt.task_id for qt in self._repo.get_quest_tasks(quest_id)]
        outcome = apply_task_completion(quest, quest_task_ids, progress, task_id, _utcnow())
        if not outcome.changed:
            logger.debug(
                "Task completion ignored (already recorded): quest=%s task=%s user=%s",
                quest_id,
                task_id,
                user_id,
            )
            return outcome

        award = None
        if outcome.badge_due and quest.badge_id:
            award = BadgeAward(
                user_id=user_id,
                badge_id=quest.badge_id,
                earned_at=outcome.progress.updated_at or _utcnow(),
                quest_id=quest_id,
            )

        saved, stored = self._repo.mark_task_complete(outcome.progress, award)
        outcome.progress = saved
        outcome.award = stored

        logger.info(
            "Quest task completed: quest=%s task=%s user=%s (%d%%)",
            quest_id,
            task_id,
            user_id,
            saved.progress_percentage,
        )
        self._emit(
            EventTypes.QUEST_TASK_COMPLETED,
            {"quest_id": quest_id, "task_id": task_id, "user_id": user_id},
        )
        if outcome.newly_completed:
            self._emit(
                EventTypes.QUEST_COMPLETED,
                {"quest_id": quest_id, "user_id": user_id},
            )
        if stored is not None:
            logger.info("Badge awarded: %s → %s (quest %s)", stored.badge_id, user_id, quest_id)
            self._emit(
                EventTypes.BADGE_AWARDED,
                {"badge_id": stored.badge_id, "user_id": user_id, "quest_id": quest_id},
            )
        return outcome

    def get_progress(self, user_id: str, quest_id: str) -> Optional[Progress]:
        """유저 진행 기록 조회."""
        return self._repo.get_progress(user_id, quest_id)

    def get_state(self, user_id: str, quest_id: str) -> QuestState:
        """NotStarted / InProgress / Completed."""
        self._require_quest(quest_id)
        return derive_state(self._repo.get_progress(user_id, quest_id))

    # === 내부 ===

    def _require_quest(self, quest_id: str) -> Quest:
        quest = self._repo.get_quest(quest_id)
        if quest is None:
            raise NotFoundError("Quest not found")
        return quest

    def _require_tasks(self, task_ids: list[str]) -> None:
        found = {t.task_id for t in self._repo.get_tasks(task_ids)}
        missing = [t for t in task_ids if t not in found]
        if missing:
            raise NotFoundError(f"Task not found: {', '.join(missing)}")

    def _require_badge(self, badge_id: Optional[str]) -> None:
        if badge_id and self._repo.get_badge(badge_id) is None:
            raise NotFoundError("Badge not found")

    def _emit(self, event_type: str, data: dict) -> None:
        self._bus.emit(
            DomainEvent(event_type=event_type, data=data, source="quest_service")
        )
