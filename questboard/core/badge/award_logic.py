"""태스크 단위 배지 지급 규칙"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from questboard.core.badge.models import BadgeAward, Task


def resolve_recipient(task: Task, acting_user_id: str) -> str:
    """배지 수령자: 첫 번째 담당자, 없으면 완료 처리한 유저."""
    if task.assignees:
        return task.assignees[0]
    return acting_user_id


def needs_verification(task: Task, acting_user_id: str) -> bool:
    """검증 필요 태스크를 생성자가 아닌 유저가 완료한 경우."""
    return task.completion_verification and task.created_by != acting_user_id


def should_award(task: Task, acting_user_id: str) -> bool:
    """완료 즉시 배지를 줄 수 있는지."""
    return task.badge_id is not None and not needs_verification(task, acting_user_id)


def build_task_award(
    task: Task, acting_user_id: str, now: datetime
) -> Optional[BadgeAward]:
    """태스크 배지 지급 레코드 생성. 배지 없는 태스크면 None."""
    if task.badge_id is None:
        return None
    return BadgeAward(
        user_id=resolve_recipient(task, acting_user_id),
        badge_id=task.badge_id,
        earned_at=now,
        task_id=task.task_id,
    )
