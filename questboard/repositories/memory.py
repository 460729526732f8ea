"""In-memory QuestRepository for tests and the "memory" backend.

Stores copies so callers never share mutable state with the store.
"""

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional, TypeVar

from questboard.core.badge.models import Badge, BadgeAward, Task
from questboard.core.errors import ConflictError, NotFoundError
from questboard.core.quest.models import Progress, Quest, QuestTask
from questboard.repositories.base import QuestRepository

T = TypeVar("T")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _copy(value: T) -> T:
    return copy.deepcopy(value)


def _sort_key(moment: Optional[datetime]) -> datetime:
    if moment is None:
        return _EPOCH
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class InMemoryQuestRepository(QuestRepository):
    """Dict-backed store with the same contract as SqlQuestRepository."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._badges: dict[str, Badge] = {}
        self._tasks: dict[str, Task] = {}
        self._quests: dict[str, Quest] = {}
        self._quest_tasks: dict[str, list[QuestTask]] = {}
        self._progress: dict[tuple[str, str], Progress] = {}
        self._awards: dict[tuple[str, str], BadgeAward] = {}

    @property
    def name(self) -> str:
        return "memory"

    # === Badges ===

    def add_badge(self, badge: Badge) -> Badge:
        with self._lock:
            if badge.badge_id in self._badges:
                raise ConflictError("Badge already exists")
            self._badges[badge.badge_id] = _copy(badge)
        return badge

    def get_badge(self, badge_id: str) -> Optional[Badge]:
        with self._lock:
            return _copy(self._badges.get(badge_id))

    def list_badges(self) -> list[Badge]:
        with self._lock:
            badges = sorted(self._badges.values(), key=lambda b: b.title)
            return _copy(badges)

    def update_badge(self, badge: Badge) -> Badge:
        with self._lock:
            if badge.badge_id not in self._badges:
                raise NotFoundError("Badge not found")
            self._badges[badge.badge_id] = _copy(badge)
        return badge

    def delete_badge(self, badge_id: str) -> bool:
        with self._lock:
            if self._badges.pop(badge_id, None) is None:
                return False
            for key in [k for k in self._awards if k[1] == badge_id]:
                del self._awards[key]
            for task in self._tasks.values():
                if task.badge_id == badge_id:
                    task.badge_id = None
            for quest in self._quests.values():
                if quest.badge_id == badge_id:
                    quest.badge_id = None
        return True

    # === Tasks ===

    def add_task(self, task: Task) -> Task:
        with self._lock:
            if task.task_id in self._tasks:
                raise ConflictError("Task already exists")
            self._tasks[task.task_id] = _copy(task)
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._lock:
            return _copy(self._tasks.get(task_id))

    def get_tasks(self, task_ids: list[str]) -> list[Task]:
        with self._lock:
            return [_copy(self._tasks[t]) for t in task_ids if t in self._tasks]

    def update_task(self, task: Task) -> Task:
        with self._lock:
            if task.task_id not in self._tasks:
                raise NotFoundError("Task not found")
            self._tasks[task.task_id] = _copy(task)
        return task

    # === Quests ===

    def add_quest(self, quest: Quest, task_ids: list[str]) -> Quest:
        with self._lock:
            if quest.quest_id in self._quests:
                raise ConflictError("Quest already exists")
            self._quests[quest.quest_id] = _copy(quest)
            self._quest_tasks[quest.quest_id] = self._build_links(
                quest.quest_id, task_ids
            )
        return quest

    def get_quest(self, quest_id: str) -> Optional[Quest]:
        with self._lock:
            return _copy(self._quests.get(quest_id))

    def list_quests(self) -> list[Quest]:
        with self._lock:
            quests = sorted(self._quests.values(), key=lambda q: q.quest_id)
            quests.sort(key=lambda q: _sort_key(q.created_at), reverse=True)
            return _copy(quests)

    def delete_quest(self, quest_id: str) -> bool:
        with self._lock:
            if self._quests.pop(quest_id, None) is None:
                return False
            self._quest_tasks.pop(quest_id, None)
            for key in [k for k in self._progress if k[1] == quest_id]:
                del self._progress[key]
            for award in self._awards.values():
                if award.quest_id == quest_id:
                    award.quest_id = None
        return True

    def get_quest_tasks(self, quest_id: str) -> list[QuestTask]:
        with self._lock:
            links = sorted(
                self._quest_tasks.get(quest_id, []), key=lambda qt: qt.order_position
            )
            return [
                QuestTask(
                    quest_id=qt.quest_id,
                    task_id=qt.task_id,
                    order_position=qt.order_position,
                    task=_copy(self._tasks.get(qt.task_id)),
                )
                for qt in links
                if qt.task_id in self._tasks
            ]

    def count_quest_tasks(self, quest_ids: list[str]) -> dict[str, int]:
        with self._lock:
            return {
                qid: len(
                    [
                        qt
                        for qt in self._quest_tasks.get(qid, [])
                        if qt.task_id in self._tasks
                    ]
                )
                for qid in quest_ids
            }

    def save_quest_edit(
        self,
        quest: Quest,
        task_ids: list[str],
        progresses: list[Progress],
        awards: Optional[list[BadgeAward]] = None,
    ) -> list[BadgeAward]:
        awards = awards or []
        with self._lock:
            if quest.quest_id not in self._quests:
                raise NotFoundError("Quest not found")
            # 전부 검증한 뒤에 반영해서 부분 적용을 막는다
            for progress in progresses:
                self._check_version(progress)
            for award in awards:
                if award.badge_id not in self._badges:
                    raise NotFoundError("Badge not found")

            self._quests[quest.quest_id] = _copy(quest)
            self._quest_tasks[quest.quest_id] = self._build_links(
                quest.quest_id, task_ids
            )
            for progress in progresses:
                self._store_progress(progress)
            stored = [self._insert_award(award) for award in awards]
        return [award for award in stored if award is not None]

    def _build_links(self, quest_id: str, task_ids: list[str]) -> list[QuestTask]:
        return [
            QuestTask(quest_id=quest_id, task_id=task_id, order_position=position)
            for position, task_id in enumerate(task_ids)
        ]

    # === Progress ===

    def get_progress(self, user_id: str, quest_id: str) -> Optional[Progress]:
        with self._lock:
            return _copy(self._progress.get((user_id, quest_id)))

    def list_progress_for_user(
        self, user_id: str, quest_ids: Optional[list[str]] = None
    ) -> list[Progress]:
        with self._lock:
            return [
                _copy(p)
                for (uid, qid), p in self._progress.items()
                if uid == user_id and (quest_ids is None or qid in quest_ids)
            ]

    def list_progress_for_quest(self, quest_id: str) -> list[Progress]:
        with self._lock:
            return [_copy(p) for (_, qid), p in self._progress.items() if qid == quest_id]

    def add_progress(self, progress: Progress) -> Progress:
        with self._lock:
            key = (progress.user_id, progress.quest_id)
            if key in self._progress:
                raise ConflictError("You have already started this quest")
            if progress.quest_id not in self._quests:
                raise NotFoundError("Quest not found")
            self._progress[key] = _copy(progress)
        return progress

    def save_progress(self, progress: Progress) -> Progress:
        with self._lock:
            self._check_version(progress)
            return self._store_progress(progress)

    def _check_version(self, progress: Progress) -> None:
        stored = self._progress.get((progress.user_id, progress.quest_id))
        if stored is None or stored.progress_id != progress.progress_id:
            raise NotFoundError("Quest progress not found")
        if stored.version != progress.version:
            raise ConflictError(
                "This quest was updated in another session. Reload and try again."
            )

    def _store_progress(self, progress: Progress) -> Progress:
        saved = _copy(progress)
        saved.version = progress.version + 1
        self._progress[(progress.user_id, progress.quest_id)] = saved
        return _copy(saved)

    # === Badge awards ===

    def has_badge(self, user_id: str, badge_id: str) -> bool:
        with self._lock:
            return (user_id, badge_id) in self._awards

    def award_badge(self, award: BadgeAward) -> Optional[BadgeAward]:
        with self._lock:
            return self._insert_award(award)

    def _insert_award(self, award: BadgeAward) -> Optional[BadgeAward]:
        key = (award.user_id, award.badge_id)
        if key in self._awards:
            return None
        if award.badge_id not in self._badges:
            raise NotFoundError("Badge not found")
        stored = _copy(award)
        stored.award_id = stored.award_id or uuid.uuid4().hex
        self._awards[key] = stored
        return _copy(stored)

    def list_user_badges(self, user_id: str) -> list[BadgeAward]:
        with self._lock:
            awards = [a for (uid, _), a in self._awards.items() if uid == user_id]
            awards.sort(key=lambda a: _sort_key(a.earned_at), reverse=True)
            return _copy(awards)

    def list_badge_holders(self, badge_id: str) -> list[BadgeAward]:
        with self._lock:
            awards = [a for (_, bid), a in self._awards.items() if bid == badge_id]
            awards.sort(key=lambda a: _sort_key(a.earned_at))
            return _copy(awards)

    # === Compound writes ===

    def mark_task_complete(
        self, progress: Progress, award: Optional[BadgeAward] = None
    ) -> tuple[Progress, Optional[BadgeAward]]:
        with self._lock:
            self._check_version(progress)
            if award is not None and award.badge_id not in self._badges:
                raise NotFoundError("Badge not found")
            saved = self._store_progress(progress)
            stored = self._insert_award(award) if award is not None else None
        return saved, stored
