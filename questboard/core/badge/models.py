"""배지/태스크 도메인 모델 (DB 무관)"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Badge:
    """획득 가능한 배지 정의"""

    badge_id: str
    title: str
    created_by: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class BadgeAward:
    """유저에게 지급된 배지. (user_id, badge_id) 당 최대 1건"""

    user_id: str
    badge_id: str
    earned_at: datetime
    award_id: Optional[str] = None
    task_id: Optional[str] = None  # 태스크 완료로 지급된 경우
    quest_id: Optional[str] = None  # 퀘스트 완료로 지급된 경우


@dataclass
class Task:
    """퀘스트에 묶이는 작업 단위. 배지 규칙에 필요한 필드만 가진다"""

    task_id: str
    title: str
    created_by: str
    description: Optional[str] = None
    status: str = "todo"  # TaskStatus 값
    assignees: list[str] = field(default_factory=list)
    badge_id: Optional[str] = None
    completion_verification: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class EarnedBadge:
    """유저 배지 목록 항목"""

    award: BadgeAward
    badge: Badge


@dataclass
class TaskCompletion:
    """태스크 완료 처리 결과"""

    task: Task
    recipient_id: str
    verification_pending: bool = False  # 생성자 승인 대기
    badge_awarded: bool = False  # 수령자가 배지를 보유 중인지
