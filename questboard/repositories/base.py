"""Abstract base class for quest data access."""

from abc import ABC, abstractmethod
from typing import Optional

from questboard.core.badge.models import Badge, BadgeAward, Task
from questboard.core.quest.models import Progress, Quest, QuestTask


class QuestRepository(ABC):
    """Typed data-access boundary for badges, tasks, quests and progress.

    Services only talk to this interface, so the SQL implementation and the
    in-memory one are interchangeable. Write methods either fully apply or
    raise; a failed write leaves nothing visible.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the backend name."""
        ...

    # === Badges ===

    @abstractmethod
    def add_badge(self, badge: Badge) -> Badge:
        ...

    @abstractmethod
    def get_badge(self, badge_id: str) -> Optional[Badge]:
        ...

    @abstractmethod
    def list_badges(self) -> list[Badge]:
        """All badges ordered by title."""
        ...

    @abstractmethod
    def update_badge(self, badge: Badge) -> Badge:
        ...

    @abstractmethod
    def delete_badge(self, badge_id: str) -> bool:
        """Delete a badge. Awards go with it; quest and task references are cleared."""
        ...

    # === Tasks ===

    @abstractmethod
    def add_task(self, task: Task) -> Task:
        ...

    @abstractmethod
    def get_task(self, task_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    def get_tasks(self, task_ids: list[str]) -> list[Task]:
        """Existing tasks among task_ids. Missing ids are skipped."""
        ...

    @abstractmethod
    def update_task(self, task: Task) -> Task:
        ...

    # === Quests ===

    @abstractmethod
    def add_quest(self, quest: Quest, task_ids: list[str]) -> Quest:
        """Insert a quest and its task links (positions 0..n-1) together."""
        ...

    @abstractmethod
    def get_quest(self, quest_id: str) -> Optional[Quest]:
        ...

    @abstractmethod
    def list_quests(self) -> list[Quest]:
        """All quests, newest first."""
        ...

    @abstractmethod
    def delete_quest(self, quest_id: str) -> bool:
        """Delete a quest with its task links and progress records."""
        ...

    @abstractmethod
    def get_quest_tasks(self, quest_id: str) -> list[QuestTask]:
        """Task links ordered by position, each with its Task attached."""
        ...

    @abstractmethod
    def count_quest_tasks(self, quest_ids: list[str]) -> dict[str, int]:
        ...

    @abstractmethod
    def save_quest_edit(
        self,
        quest: Quest,
        task_ids: list[str],
        progresses: list[Progress],
        awards: Optional[list[BadgeAward]] = None,
    ) -> list[BadgeAward]:
        """Update the quest row, replace its task links, save the given
        progress records and insert any badge awards in a single transaction.

        Returns the awards actually stored; users who already hold the badge
        are skipped.
        """
        ...

    # === Progress ===

    @abstractmethod
    def get_progress(self, user_id: str, quest_id: str) -> Optional[Progress]:
        ...

    @abstractmethod
    def list_progress_for_user(
        self, user_id: str, quest_ids: Optional[list[str]] = None
    ) -> list[Progress]:
        ...

    @abstractmethod
    def list_progress_for_quest(self, quest_id: str) -> list[Progress]:
        ...

    @abstractmethod
    def add_progress(self, progress: Progress) -> Progress:
        """Insert a new record. ConflictError if (user, quest) already has one."""
        ...

    @abstractmethod
    def save_progress(self, progress: Progress) -> Progress:
        """Write progress if the stored version still equals progress.version.

        Returns the saved record with its version incremented. Raises
        ConflictError when another write got there first.
        """
        ...

    # === Badge awards ===

    @abstractmethod
    def has_badge(self, user_id: str, badge_id: str) -> bool:
        ...

    @abstractmethod
    def award_badge(self, award: BadgeAward) -> Optional[BadgeAward]:
        """Insert the award unless the user already holds the badge.

        Returns the stored award, or None when nothing was inserted.
        """
        ...

    @abstractmethod
    def list_user_badges(self, user_id: str) -> list[BadgeAward]:
        """Awards for a user, most recent first."""
        ...

    @abstractmethod
    def list_badge_holders(self, badge_id: str) -> list[BadgeAward]:
        ...

    # === Compound writes ===

    @abstractmethod
    def mark_task_complete(
        self, progress: Progress, award: Optional[BadgeAward] = None
    ) -> tuple[Progress, Optional[BadgeAward]]:
        """Save a progress update and, optionally, a badge award atomically.

        The award is skipped (None returned) if the user already holds the
        badge; the progress write still happens.
        """
        ...
