"""퀘스트 도메인 모델 (DB 무관)"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from questboard.core.badge.models import Badge, BadgeAward, Task


@dataclass
class Quest:
    """배지 퀘스트 본체"""

    quest_id: str
    title: str
    created_by: str
    required_tasks_count: int = 1
    description: Optional[str] = None
    badge_id: Optional[str] = None  # 완료 보상 배지
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class QuestTask:
    """퀘스트 ↔ 태스크 연결. order_position은 0부터"""

    quest_id: str
    task_id: str
    order_position: int = 0
    task: Optional[Task] = None  # 조회 시 join 결과


@dataclass
class Progress:
    """(user, quest) 진행 기록"""

    progress_id: str
    user_id: str
    quest_id: str
    completed_tasks: list[str] = field(default_factory=list)
    progress_percentage: int = 0
    started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int = 0  # 낙관적 동시성 체크용

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


@dataclass
class CompletionOutcome:
    """completeTask 결과"""

    progress: Progress
    changed: bool = False  # 완료 목록이 바뀌었는지
    newly_completed: bool = False  # 이번 호출로 Completed 전이
    badge_due: bool = False  # 보상 배지 지급 대상
    award: Optional[BadgeAward] = None  # 실제 지급된 배지 (서비스가 채움)


@dataclass
class QuestSummary:
    """목록 화면용 요약"""

    quest: Quest
    task_count: int = 0
    badge_title: Optional[str] = None
    progress: Optional[Progress] = None


@dataclass
class QuestDetail:
    """상세 화면용 묶음"""

    quest: Quest
    tasks: list[QuestTask] = field(default_factory=list)
    badge: Optional[Badge] = None
    progress: Optional[Progress] = None
    user_has_badge: bool = False
