"""API request/response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from questboard.core.badge.models import Badge, BadgeAward, EarnedBadge, Task
from questboard.core.quest.models import Progress, Quest, QuestSummary, QuestTask
from questboard.core.quest.progress_logic import derive_state


# === Request Schemas ===


class BadgeRequest(BaseModel):
    """배지 생성/수정 요청"""

    title: str = Field(..., min_length=1, max_length=200, description="배지 제목")
    description: Optional[str] = None
    image_url: Optional[str] = None


class TaskCreateRequest(BaseModel):
    """태스크 생성 요청"""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    assignees: list[str] = Field(default_factory=list, description="담당자 ID (순서 유지)")
    badge_id: Optional[str] = None
    completion_verification: bool = Field(
        default=False, description="배지 지급 전 생성자 승인 필요 여부"
    )


class TaskVerifyRequest(BaseModel):
    """태스크 완료 승인/거절"""

    approved: bool


class QuestRequest(BaseModel):
    """퀘스트 생성/수정 요청"""

    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    badge_id: Optional[str] = None
    task_ids: list[str] = Field(default_factory=list, description="순서대로 position 0..n-1")
    required_tasks_count: int = Field(default=1, description="완료에 필요한 태스크 수")


# === Response Schemas ===


class BadgeInfo(BaseModel):
    """배지 정보"""

    badge_id: str
    title: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_by: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_core(cls, badge: Badge) -> "BadgeInfo":
        return cls(
            badge_id=badge.badge_id,
            title=badge.title,
            description=badge.description,
            image_url=badge.image_url,
            created_by=badge.created_by,
            created_at=badge.created_at,
        )


class BadgeAwardInfo(BaseModel):
    """배지 지급 기록"""

    award_id: Optional[str] = None
    user_id: str
    badge_id: str
    earned_at: datetime
    task_id: Optional[str] = None
    quest_id: Optional[str] = None

    @classmethod
    def from_core(cls, award: BadgeAward) -> "BadgeAwardInfo":
        return cls(
            award_id=award.award_id,
            user_id=award.user_id,
            badge_id=award.badge_id,
            earned_at=award.earned_at,
            task_id=award.task_id,
            quest_id=award.quest_id,
        )


class EarnedBadgeInfo(BaseModel):
    """유저 배지 목록 항목"""

    badge: BadgeInfo
    earned_at: datetime
    task_id: Optional[str] = None
    quest_id: Optional[str] = None

    @classmethod
    def from_core(cls, earned: EarnedBadge) -> "EarnedBadgeInfo":
        return cls(
            badge=BadgeInfo.from_core(earned.badge),
            earned_at=earned.award.earned_at,
            task_id=earned.award.task_id,
            quest_id=earned.award.quest_id,
        )


class TaskInfo(BaseModel):
    """태스크 정보"""

    task_id: str
    title: str
    description: Optional[str] = None
    status: str
    created_by: str
    assignees: list[str] = []
    badge_id: Optional[str] = None
    completion_verification: bool = False

    @classmethod
    def from_core(cls, task: Task) -> "TaskInfo":
        return cls(
            task_id=task.task_id,
            title=task.title,
            description=task.description,
            status=task.status,
            created_by=task.created_by,
            assignees=list(task.assignees),
            badge_id=task.badge_id,
            completion_verification=task.completion_verification,
        )


class TaskCompletionResponse(BaseModel):
    """태스크 완료/검증 응답"""

    success: bool
    task: TaskInfo
    recipient_id: str
    verification_pending: bool = False
    badge_awarded: bool = False


class QuestInfo(BaseModel):
    """퀘스트 정보"""

    quest_id: str
    title: str
    description: Optional[str] = None
    created_by: str
    badge_id: Optional[str] = None
    required_tasks_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_core(cls, quest: Quest) -> "QuestInfo":
        return cls(
            quest_id=quest.quest_id,
            title=quest.title,
            description=quest.description,
            created_by=quest.created_by,
            badge_id=quest.badge_id,
            required_tasks_count=quest.required_tasks_count,
            created_at=quest.created_at,
            updated_at=quest.updated_at,
        )


class QuestTaskInfo(BaseModel):
    """퀘스트에 묶인 태스크"""

    task_id: str
    order_position: int
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_core(cls, quest_task: QuestTask) -> "QuestTaskInfo":
        task = quest_task.task
        return cls(
            task_id=quest_task.task_id,
            order_position=quest_task.order_position,
            title=task.title if task else None,
            description=task.description if task else None,
            status=task.status if task else None,
        )


class ProgressInfo(BaseModel):
    """유저 진행 기록"""

    progress_id: str
    user_id: str
    quest_id: str
    state: str
    completed_tasks: list[str] = []
    progress_percentage: int
    started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_core(cls, progress: Progress) -> "ProgressInfo":
        return cls(
            progress_id=progress.progress_id,
            user_id=progress.user_id,
            quest_id=progress.quest_id,
            state=derive_state(progress).value,
            completed_tasks=list(progress.completed_tasks),
            progress_percentage=progress.progress_percentage,
            started_at=progress.started_at,
            updated_at=progress.updated_at,
            completed_at=progress.completed_at,
        )


class QuestSummaryInfo(BaseModel):
    """퀘스트 목록 항목"""

    quest: QuestInfo
    task_count: int
    badge_title: Optional[str] = None
    progress: Optional[ProgressInfo] = None

    @classmethod
    def from_core(cls, summary: QuestSummary) -> "QuestSummaryInfo":
        return cls(
            quest=QuestInfo.from_core(summary.quest),
            task_count=summary.task_count,
            badge_title=summary.badge_title,
            progress=ProgressInfo.from_core(summary.progress)
            if summary.progress
            else None,
        )


class QuestDetailResponse(BaseModel):
    """퀘스트 상세 응답"""

    quest: QuestInfo
    state: str
    tasks: list[QuestTaskInfo] = []
    badge: Optional[BadgeInfo] = None
    progress: Optional[ProgressInfo] = None
    user_has_badge: bool = False


class QuestProgressResponse(BaseModel):
    """퀘스트 진행 상태 응답"""

    quest_id: str
    state: str
    progress: Optional[ProgressInfo] = None


class CompletionResponse(BaseModel):
    """퀘스트 태스크 완료 응답"""

    success: bool
    changed: bool
    newly_completed: bool
    progress: ProgressInfo
    badge_awarded: Optional[BadgeAwardInfo] = None


class ErrorResponse(BaseModel):
    """에러 응답"""

    detail: str
