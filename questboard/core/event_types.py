"""이벤트 유형 상수"""


class EventTypes:
    """이벤트 유형 문자열 상수"""

    # task
    TASK_COMPLETED = "task_completed"
    TASK_COMPLETION_VERIFIED = "task_completion_verified"

    # quest
    QUEST_CREATED = "quest_created"
    QUEST_UPDATED = "quest_updated"
    QUEST_DELETED = "quest_deleted"
    QUEST_STARTED = "quest_started"
    QUEST_TASK_COMPLETED = "quest_task_completed"
    QUEST_COMPLETED = "quest_completed"

    # badge
    BADGE_AWARDED = "badge_awarded"
