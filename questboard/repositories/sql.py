"""SQLAlchemy 기반 QuestRepository

ORM ↔ Core 변환은 이 모듈 안에서만 일어난다.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from questboard.core.badge.models import Badge, BadgeAward, Task
from questboard.core.errors import (
    BackendError,
    ConflictError,
    NotFoundError,
    QuestboardError,
)
from questboard.core.quest.models import Progress, Quest, QuestTask
from questboard.db.models import (
    BadgeModel,
    QuestModel,
    QuestProgressModel,
    QuestTaskModel,
    TaskModel,
    UserBadgeModel,
)
from questboard.repositories.base import QuestRepository

logger = logging.getLogger(__name__)


class SqlQuestRepository(QuestRepository):
    """세션 하나에 묶인 저장소. 쓰기 메서드마다 commit 또는 rollback."""

    def __init__(self, db: Session):
        self._db = db

    @property
    def name(self) -> str:
        return "sql"

    @contextmanager
    def _write(self, action: str) -> Iterator[None]:
        """쓰기 트랜잭션. 실패 시 전체 rollback."""
        try:
            yield
            self._db.commit()
        except QuestboardError:
            self._db.rollback()
            raise
        except IntegrityError as e:
            self._db.rollback()
            logger.warning("Integrity error while trying to %s: %s", action, e.orig)
            raise ConflictError(
                f"Could not {action}: the data was changed by someone else"
            ) from e
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.exception("Database error while trying to %s", action)
            raise BackendError(f"Could not {action}. Please try again.") from e

    @contextmanager
    def _read(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.exception("Database error while trying to %s", action)
            raise BackendError(f"Could not {action}. Please try again.") from e

    # === Badges ===

    def add_badge(self, badge: Badge) -> Badge:
        with self._write("create badge"):
            self._db.add(self._badge_to_orm(badge))
        return badge

    def get_badge(self, badge_id: str) -> Optional[Badge]:
        with self._read("load badge"):
            orm = self._db.get(BadgeModel, badge_id)
        return self._badge_to_core(orm) if orm is not None else None

    def list_badges(self) -> list[Badge]:
        with self._read("load badges"):
            orms = self._db.query(BadgeModel).order_by(BadgeModel.title.asc()).all()
        return [self._badge_to_core(o) for o in orms]

    def update_badge(self, badge: Badge) -> Badge:
        with self._write("update badge"):
            orm = self._db.get(BadgeModel, badge.badge_id)
            if orm is None:
                raise NotFoundError("Badge not found")
            orm.title = badge.title
            orm.description = badge.description
            orm.image_url = badge.image_url
            orm.updated_at = badge.updated_at
        return badge

    def delete_badge(self, badge_id: str) -> bool:
        with self._write("delete badge"):
            orm = self._db.get(BadgeModel, badge_id)
            if orm is None:
                return False
            # FK가 꺼진 DB에서도 참조가 남지 않도록 명시적으로 정리
            self._db.query(UserBadgeModel).filter(
                UserBadgeModel.badge_id == badge_id
            ).delete(synchronize_session=False)
            self._db.query(TaskModel).filter(TaskModel.badge_id == badge_id).update(
                {TaskModel.badge_id: None}, synchronize_session=False
            )
            self._db.query(QuestModel).filter(QuestModel.badge_id == badge_id).update(
                {QuestModel.badge_id: None}, synchronize_session=False
            )
            self._db.delete(orm)
        return True

    # === Tasks ===

    def add_task(self, task: Task) -> Task:
        with self._write("create task"):
            self._db.add(self._task_to_orm(task))
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._read("load task"):
            orm = self._db.get(TaskModel, task_id)
        return self._task_to_core(orm) if orm is not None else None

    def get_tasks(self, task_ids: list[str]) -> list[Task]:
        if not task_ids:
            return []
        with self._read("load tasks"):
            orms = self._db.query(TaskModel).filter(TaskModel.id.in_(task_ids)).all()
        return [self._task_to_core(o) for o in orms]

    def update_task(self, task: Task) -> Task:
        with self._write("update task"):
            orm = self._db.get(TaskModel, task.task_id)
            if orm is None:
                raise NotFoundError("Task not found")
            orm.title = task.title
            orm.description = task.description
            orm.status = task.status
            orm.assignees = list(task.assignees)
            orm.badge_id = task.badge_id
            orm.completion_verification = task.completion_verification
            orm.updated_at = task.updated_at
        return task

    # === Quests ===

    def add_quest(self, quest: Quest, task_ids: list[str]) -> Quest:
        with self._write("create quest"):
            self._db.add(self._quest_to_orm(quest))
            self._db.flush()
            self._add_quest_tasks(quest.quest_id, task_ids)
        return quest

    def get_quest(self, quest_id: str) -> Optional[Quest]:
        with self._read("load quest"):
            orm = self._db.get(QuestModel, quest_id)
        return self._quest_to_core(orm) if orm is not None else None

    def list_quests(self) -> list[Quest]:
        with self._read("load quests"):
            orms = (
                self._db.query(QuestModel)
                .order_by(QuestModel.created_at.desc(), QuestModel.id.asc())
                .all()
            )
        return [self._quest_to_core(o) for o in orms]

    def delete_quest(self, quest_id: str) -> bool:
        with self._write("delete quest"):
            orm = self._db.get(QuestModel, quest_id)
            if orm is None:
                return False
            self._db.query(UserBadgeModel).filter(
                UserBadgeModel.quest_id == quest_id
            ).update({UserBadgeModel.quest_id: None}, synchronize_session=False)
            # quest_tasks, progress_records는 relationship cascade로 삭제
            self._db.delete(orm)
        return True

    def get_quest_tasks(self, quest_id: str) -> list[QuestTask]:
        with self._read("load quest tasks"):
            orms = (
                self._db.query(QuestTaskModel)
                .options(joinedload(QuestTaskModel.task))
                .filter(QuestTaskModel.quest_id == quest_id)
                .order_by(QuestTaskModel.order_position.asc())
                .all()
            )
        return [
            QuestTask(
                quest_id=o.quest_id,
                task_id=o.task_id,
                order_position=o.order_position,
                task=self._task_to_core(o.task) if o.task is not None else None,
            )
            for o in orms
        ]

    def count_quest_tasks(self, quest_ids: list[str]) -> dict[str, int]:
        if not quest_ids:
            return {}
        with self._read("count quest tasks"):
            rows = (
                self._db.query(QuestTaskModel.quest_id, func.count(QuestTaskModel.id))
                .filter(QuestTaskModel.quest_id.in_(quest_ids))
                .group_by(QuestTaskModel.quest_id)
                .all()
            )
        counts = {qid: 0 for qid in quest_ids}
        counts.update({qid: n for qid, n in rows})
        return counts

    def save_quest_edit(
        self,
        quest: Quest,
        task_ids: list[str],
        progresses: list[Progress],
        awards: Optional[list[BadgeAward]] = None,
    ) -> list[BadgeAward]:
        stored: list[BadgeAward] = []
        with self._write("update quest"):
            orm = self._db.get(QuestModel, quest.quest_id)
            if orm is None:
                raise NotFoundError("Quest not found")
            orm.title = quest.title
            orm.description = quest.description
            orm.badge_id = quest.badge_id
            orm.required_tasks_count = quest.required_tasks_count
            orm.updated_at = quest.updated_at

            # 기존 연결 삭제 후 일괄 재삽입
            self._db.query(QuestTaskModel).filter(
                QuestTaskModel.quest_id == quest.quest_id
            ).delete(synchronize_session=False)
            self._db.flush()
            self._add_quest_tasks(quest.quest_id, task_ids)

            for progress in progresses:
                self._update_progress_row(progress)
            for award in awards or []:
                inserted = self._insert_award(award)
                if inserted is not None:
                    stored.append(inserted)
        return stored

    def _add_quest_tasks(self, quest_id: str, task_ids: list[str]) -> None:
        for position, task_id in enumerate(task_ids):
            self._db.add(
                QuestTaskModel(
                    quest_id=quest_id,
                    task_id=task_id,
                    order_position=position,
                )
            )

    # === Progress ===

    def get_progress(self, user_id: str, quest_id: str) -> Optional[Progress]:
        with self._read("load progress"):
            orm = (
                self._db.query(QuestProgressModel)
                .filter(
                    QuestProgressModel.user_id == user_id,
                    QuestProgressModel.quest_id == quest_id,
                )
                .first()
            )
        return self._progress_to_core(orm) if orm is not None else None

    def list_progress_for_user(
        self, user_id: str, quest_ids: Optional[list[str]] = None
    ) -> list[Progress]:
        with self._read("load progress"):
            query = self._db.query(QuestProgressModel).filter(
                QuestProgressModel.user_id == user_id
            )
            if quest_ids is not None:
                query = query.filter(QuestProgressModel.quest_id.in_(quest_ids))
            orms = query.all()
        return [self._progress_to_core(o) for o in orms]

    def list_progress_for_quest(self, quest_id: str) -> list[Progress]:
        with self._read("load progress"):
            orms = (
                self._db.query(QuestProgressModel)
                .filter(QuestProgressModel.quest_id == quest_id)
                .all()
            )
        return [self._progress_to_core(o) for o in orms]

    def add_progress(self, progress: Progress) -> Progress:
        try:
            with self._write("start quest"):
                self._db.add(self._progress_to_orm(progress))
        except ConflictError as e:
            raise ConflictError("You have already started this quest") from e
        return progress

    def save_progress(self, progress: Progress) -> Progress:
        with self._write("save progress"):
            saved = self._update_progress_row(progress)
        return saved

    def _update_progress_row(self, progress: Progress) -> Progress:
        """버전이 일치할 때만 UPDATE. 호출측 트랜잭션 안에서 실행된다."""
        next_version = progress.version + 1
        updated = (
            self._db.query(QuestProgressModel)
            .filter(
                QuestProgressModel.id == progress.progress_id,
                QuestProgressModel.version == progress.version,
            )
            .update(
                {
                    QuestProgressModel.completed_tasks: list(progress.completed_tasks),
                    QuestProgressModel.progress_percentage: progress.progress_percentage,
                    QuestProgressModel.updated_at: progress.updated_at,
                    QuestProgressModel.completed_at: progress.completed_at,
                    QuestProgressModel.version: next_version,
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            if self._db.get(QuestProgressModel, progress.progress_id) is None:
                raise NotFoundError("Quest progress not found")
            logger.warning(
                "Stale progress write rejected: %s (version=%d)",
                progress.progress_id,
                progress.version,
            )
            raise ConflictError(
                "This quest was updated in another session. Reload and try again."
            )

        return Progress(
            progress_id=progress.progress_id,
            user_id=progress.user_id,
            quest_id=progress.quest_id,
            completed_tasks=list(progress.completed_tasks),
            progress_percentage=progress.progress_percentage,
            started_at=progress.started_at,
            updated_at=progress.updated_at,
            completed_at=progress.completed_at,
            version=next_version,
        )

    # === Badge awards ===

    def has_badge(self, user_id: str, badge_id: str) -> bool:
        with self._read("check badge"):
            return self._has_badge(user_id, badge_id)

    def _has_badge(self, user_id: str, badge_id: str) -> bool:
        found = (
            self._db.query(UserBadgeModel.id)
            .filter(
                UserBadgeModel.user_id == user_id,
                UserBadgeModel.badge_id == badge_id,
            )
            .first()
        )
        return found is not None

    def award_badge(self, award: BadgeAward) -> Optional[BadgeAward]:
        with self._write("award badge"):
            stored = self._insert_award(award)
        return stored

    def _insert_award(self, award: BadgeAward) -> Optional[BadgeAward]:
        if self._has_badge(award.user_id, award.badge_id):
            return None
        award_id = award.award_id or uuid.uuid4().hex
        self._db.add(
            UserBadgeModel(
                id=award_id,
                user_id=award.user_id,
                badge_id=award.badge_id,
                task_id=award.task_id,
                quest_id=award.quest_id,
                earned_at=award.earned_at,
            )
        )
        self._db.flush()
        return BadgeAward(
            award_id=award_id,
            user_id=award.user_id,
            badge_id=award.badge_id,
            earned_at=award.earned_at,
            task_id=award.task_id,
            quest_id=award.quest_id,
        )

    def list_user_badges(self, user_id: str) -> list[BadgeAward]:
        with self._read("load badges"):
            orms = (
                self._db.query(UserBadgeModel)
                .filter(UserBadgeModel.user_id == user_id)
                .order_by(UserBadgeModel.earned_at.desc())
                .all()
            )
        return [self._award_to_core(o) for o in orms]

    def list_badge_holders(self, badge_id: str) -> list[BadgeAward]:
        with self._read("load badge holders"):
            orms = (
                self._db.query(UserBadgeModel)
                .filter(UserBadgeModel.badge_id == badge_id)
                .order_by(UserBadgeModel.earned_at.asc())
                .all()
            )
        return [self._award_to_core(o) for o in orms]

    # === Compound writes ===

    def mark_task_complete(
        self, progress: Progress, award: Optional[BadgeAward] = None
    ) -> tuple[Progress, Optional[BadgeAward]]:
        with self._write("complete task"):
            saved = self._update_progress_row(progress)
            stored = self._insert_award(award) if award is not None else None
        return saved, stored

    # === ORM ↔ Core 변환 ===

    def _badge_to_core(self, orm: BadgeModel) -> Badge:
        return Badge(
            badge_id=orm.id,
            title=orm.title,
            created_by=orm.created_by,
            description=orm.description,
            image_url=orm.image_url,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    def _badge_to_orm(self, core: Badge) -> BadgeModel:
        return BadgeModel(
            id=core.badge_id,
            title=core.title,
            description=core.description,
            image_url=core.image_url,
            created_by=core.created_by,
            created_at=core.created_at,
            updated_at=core.updated_at,
        )

    def _task_to_core(self, orm: TaskModel) -> Task:
        return Task(
            task_id=orm.id,
            title=orm.title,
            created_by=orm.created_by,
            description=orm.description,
            status=orm.status,
            assignees=list(orm.assignees or []),
            badge_id=orm.badge_id,
            completion_verification=bool(orm.completion_verification),
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    def _task_to_orm(self, core: Task) -> TaskModel:
        return TaskModel(
            id=core.task_id,
            title=core.title,
            description=core.description,
            status=core.status,
            created_by=core.created_by,
            assignees=list(core.assignees),
            badge_id=core.badge_id,
            completion_verification=core.completion_verification,
            created_at=core.created_at,
            updated_at=core.updated_at,
        )

    def _quest_to_core(self, orm: QuestModel) -> Quest:
        return Quest(
            quest_id=orm.id,
            title=orm.title,
            created_by=orm.created_by,
            required_tasks_count=orm.required_tasks_count,
            description=orm.description,
            badge_id=orm.badge_id,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    def _quest_to_orm(self, core: Quest) -> QuestModel:
        return QuestModel(
            id=core.quest_id,
            title=core.title,
            description=core.description,
            created_by=core.created_by,
            badge_id=core.badge_id,
            required_tasks_count=core.required_tasks_count,
            created_at=core.created_at,
            updated_at=core.updated_at,
        )

    def _progress_to_core(self, orm: QuestProgressModel) -> Progress:
        return Progress(
            progress_id=orm.id,
            user_id=orm.user_id,
            quest_id=orm.quest_id,
            completed_tasks=list(orm.completed_tasks or []),
            progress_percentage=orm.progress_percentage,
            started_at=orm.started_at,
            updated_at=orm.updated_at,
            completed_at=orm.completed_at,
            version=orm.version,
        )

    def _progress_to_orm(self, core: Progress) -> QuestProgressModel:
        return QuestProgressModel(
            id=core.progress_id,
            user_id=core.user_id,
            quest_id=core.quest_id,
            completed_tasks=list(core.completed_tasks),
            progress_percentage=core.progress_percentage,
            started_at=core.started_at,
            updated_at=core.updated_at,
            completed_at=core.completed_at,
            version=core.version,
        )

    def _award_to_core(self, orm: UserBadgeModel) -> BadgeAward:
        return BadgeAward(
            award_id=orm.id,
            user_id=orm.user_id,
            badge_id=orm.badge_id,
            earned_at=orm.earned_at,
            task_id=orm.task_id,
            quest_id=orm.quest_id,
        )
