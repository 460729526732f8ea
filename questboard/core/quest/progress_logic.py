"""퀘스트 진행 상태 머신

NotStarted → InProgress → Completed(종료)

모든 함수는 입력 Progress를 수정하지 않고 새 객체를 반환한다.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from questboard.core.errors import ConflictError, ValidationError
from questboard.core.quest.enums import ProgressResetMode, QuestState
from questboard.core.quest.models import CompletionOutcome, Progress, Quest

logger = logging.getLogger(__name__)

MAX_PERCENTAGE = 100


def calculate_percentage(completed_count: int, required_count: int) -> int:
    """완료율 = round_half_up(completed / required * 100), [0, 100] 클램프."""
    if required_count < 1:
        raise ValidationError("Required tasks count must be at least 1")
    if completed_count <= 0:
        return 0
    percentage = (200 * completed_count + required_count) // (2 * required_count)
    return min(MAX_PERCENTAGE, percentage)


def derive_state(progress: Optional[Progress]) -> QuestState:
    """Progress 레코드로부터 상태 판정."""
    if progress is None:
        return QuestState.NOT_STARTED
    if progress.is_completed:
        return QuestState.COMPLETED
    return QuestState.IN_PROGRESS


def start_progress(
    progress_id: str,
    user_id: str,
    quest_id: str,
    existing: Optional[Progress],
    now: datetime,
) -> Progress:
    """startQuest. 이미 레코드가 있으면 거부."""
    if existing is not None:
        raise ConflictError("You have already started this quest")

    return Progress(
        progress_id=progress_id,
        user_id=user_id,
        quest_id=quest_id,
        completed_tasks=[],
        progress_percentage=0,
        started_at=now,
        updated_at=now,
    )


def apply_task_completion(
    quest: Quest,
    quest_task_ids: Iterable[str],
    progress: Progress,
    task_id: str,
    now: datetime,
) -> CompletionOutcome:
    """completeTask. 이미 완료된 퀘스트는 no-op.

    같은 태스크 재완료도 no-op이지만, 퀘스트 수정으로 임계값이 내려가
    완료 목록이 이미 임계값 이상이면 이때 완료 처리한다.
    """
    if task_id not in set(quest_task_ids):
        raise ValidationError(f"Task {task_id} is not part of quest '{quest.title}'")

    if progress.is_completed:
        return CompletionOutcome(progress=progress)

    required = quest.required_tasks_count
    if task_id in progress.completed_tasks:
        if len(progress.completed_tasks) < required:
            return CompletionOutcome(progress=progress)
        completed = list(progress.completed_tasks)
    else:
        completed = [*progress.completed_tasks, task_id]
    reached = len(completed) >= required

    updated = replace(
        progress,
        completed_tasks=completed,
        progress_percentage=calculate_percentage(len(completed), required),
        updated_at=now,
        completed_at=now if reached else None,
    )

    if reached:
        logger.info(
            "Quest threshold reached: quest=%s user=%s (%d/%d)",
            quest.quest_id,
            progress.user_id,
            len(completed),
            required,
        )

    return CompletionOutcome(
        progress=updated,
        changed=True,
        newly_completed=reached,
        badge_due=reached and quest.badge_id is not None,
    )


def validate_quest_definition(
    title: str,
    task_ids: list[str],
    required_count: int,
) -> None:
    """퀘스트 생성/수정 입력 검증. 범위 밖 required_count는 클램프하지 않고 거부."""
    if not title or not title.strip():
        raise ValidationError("Quest title is required")
    if not task_ids:
        raise ValidationError("Please select at least one task for the quest")
    if len(set(task_ids)) != len(task_ids):
        raise ValidationError("A task can only be added to a quest once")
    if required_count < 1:
        raise ValidationError("Required tasks count must be at least 1")
    if required_count > len(task_ids):
        raise ValidationError(
            "Required tasks count cannot be greater than the number of "
            f"selected tasks ({len(task_ids)})"
        )


def reset_progress_for_edit(
    progress: Progress,
    quest_task_ids: Iterable[str],
    required_count: int,
    mode: ProgressResetMode,
    now: datetime,
) -> Progress:
    """퀘스트 태스크 교체 시 기존 진행 기록 처리.

    PERCENTAGE: 완료율만 0으로, 완료 목록은 그대로.
    RECOMPUTE: 새 태스크에 없는 완료 항목 제거 후 완료율 재계산.
        남은 완료 항목이 새 임계값 이상이면 이 시점에 완료 처리한다.
    어느 쪽이든 기존 completed_at은 유지한다 (Completed는 종료 상태).
    """
    if mode == ProgressResetMode.PERCENTAGE:
        return replace(progress, progress_percentage=0, updated_at=now)

    task_ids = set(quest_task_ids)
    kept = [t for t in progress.completed_tasks if t in task_ids]
    completed_at = progress.completed_at
    if completed_at is None and len(kept) >= required_count:
        completed_at = now
    if completed_at is not None:
        percentage = MAX_PERCENTAGE
    else:
        percentage = calculate_percentage(len(kept), required_count)

    return replace(
        progress,
        completed_tasks=kept,
        progress_percentage=percentage,
        updated_at=now,
        completed_at=completed_at,
    )
