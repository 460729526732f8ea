"""배지 Core 패키지"""

from questboard.core.badge.award_logic import (
    build_task_award,
    needs_verification,
    resolve_recipient,
    should_award,
)
from questboard.core.badge.models import (
    Badge,
    BadgeAward,
    EarnedBadge,
    Task,
    TaskCompletion,
)

__all__ = [
    "Badge",
    "BadgeAward",
    "Task",
    "EarnedBadge",
    "TaskCompletion",
    "resolve_recipient",
    "needs_verification",
    "should_award",
    "build_task_award",
]
