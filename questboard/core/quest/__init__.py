"""배지 퀘스트 Core 패키지"""

from questboard.core.quest.enums import ProgressResetMode, QuestState, TaskStatus
from questboard.core.quest.filters import filter_quests, matches_query
from questboard.core.quest.models import (
    CompletionOutcome,
    Progress,
    Quest,
    QuestDetail,
    QuestSummary,
    QuestTask,
)
from questboard.core.quest.progress_logic import (
    apply_task_completion,
    calculate_percentage,
    derive_state,
    reset_progress_for_edit,
    start_progress,
    validate_quest_definition,
)

__all__ = [
    # enums
    "QuestState",
    "TaskStatus",
    "ProgressResetMode",
    # models
    "Quest",
    "QuestTask",
    "Progress",
    "CompletionOutcome",
    "QuestSummary",
    "QuestDetail",
    # progress
    "calculate_percentage",
    "derive_state",
    "start_progress",
    "apply_task_completion",
    "validate_quest_definition",
    "reset_progress_for_edit",
    # filters
    "filter_quests",
    "matches_query",
]
