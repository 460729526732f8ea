"""태스크 Service: 생성, 완료 처리, 완료 검증

배지 지급은 BadgeService가 EventBus 이벤트를 받아 처리한다.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from questboard.core.badge.award_logic import (
    needs_verification,
    resolve_recipient,
    should_award,
)
from questboard.core.badge.models import Task, TaskCompletion
from questboard.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from questboard.core.event_bus import DomainEvent, EventBus
from questboard.core.event_types import EventTypes
from questboard.core.quest.enums import TaskStatus
from questboard.repositories.base import QuestRepository

logger = logging.getLogger(__name__)


class TaskService:
    """태스크 CRUD 일부 + 완료/검증"""

    def __init__(self, repository: QuestRepository, event_bus: EventBus):
        self._repo = repository
        self._bus = event_bus

    def create_task(
        self,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        assignees: Optional[list[str]] = None,
        badge_id: Optional[str] = None,
        completion_verification: bool = False,
    ) -> Task:
        """태스크 생성."""
        if not title or not title.strip():
            raise ValidationError("Task title is required")
        if badge_id and self._repo.get_badge(badge_id) is None:
            raise NotFoundError("Badge not found")

        now = datetime.now(timezone.utc)
        task = Task(
            task_id=f"task_{uuid.uuid4().hex[:12]}",
            title=title.strip(),
            created_by=user_id,
            description=description or None,
            status=TaskStatus.TODO.value,
            assignees=list(assignees or []),
            badge_id=badge_id or None,
            completion_verification=completion_verification,
            created_at=now,
            updated_at=now,
        )
        self._repo.add_task(task)
        logger.info("Task created: %s", task.task_id)
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        """태스크 조회."""
        return self._repo.get_task(task_id)

    def complete_task(self, user_id: str, task_id: str) -> TaskCompletion:
        """태스크 완료 처리. 검증 불필요하면 배지 지급 이벤트까지."""
        task = self._require_task(task_id)

        task.status = TaskStatus.DONE.value
        task.updated_at = datetime.now(timezone.utc)
        self._repo.update_task(task)

        pending = task.badge_id is not None and needs_verification(task, user_id)
        logger.info(
            "Task completed: %s by %s%s",
            task_id,
            user_id,
            " (verification pending)" if pending else "",
        )

        self._bus.emit(
            DomainEvent(
                event_type=EventTypes.TASK_COMPLETED,
                data={
                    "task_id": task_id,
                    "user_id": user_id,
                    "award_badge": should_award(task, user_id),
                },
                source="task_service",
            ),
            raise_errors=True,
        )
        return self._completion_result(task, user_id, pending)

    def verify_task_completion(
        self, user_id: str, task_id: str, approved: bool
    ) -> TaskCompletion:
        """생성자의 완료 승인/거절. 승인 시 배지 지급 이벤트 발행."""
        task = self._require_task(task_id)
        if task.created_by != user_id:
            raise PermissionDeniedError("Only the task creator can verify completion")
        if task.status != TaskStatus.DONE.value:
            raise ValidationError("Task has not been completed yet")
        if task.badge_id is None:
            raise ValidationError("This task has no badge to award")

        if approved:
            self._bus.emit(
                DomainEvent(
                    event_type=EventTypes.TASK_COMPLETION_VERIFIED,
                    data={"task_id": task_id, "user_id": user_id},
                    source="task_service",
                ),
                raise_errors=True,
            )
        logger.info(
            "Task completion %s: %s by %s",
            "approved" if approved else "rejected",
            task_id,
            user_id,
        )
        return self._completion_result(task, user_id, pending=False)

    def _completion_result(
        self, task: Task, user_id: str, pending: bool
    ) -> TaskCompletion:
        recipient = resolve_recipient(task, user_id)
        awarded = task.badge_id is not None and self._repo.has_badge(
            recipient, task.badge_id
        )
        return TaskCompletion(
            task=task,
            recipient_id=recipient,
            verification_pending=pending,
            badge_awarded=awarded,
        )

    def _require_task(self, task_id: str) -> Task:
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        return task
