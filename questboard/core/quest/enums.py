"""퀘스트 관련 열거형"""

from enum import Enum


class QuestState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class ProgressResetMode(str, Enum):
    PERCENTAGE = "percentage"
    RECOMPUTE = "recompute"
