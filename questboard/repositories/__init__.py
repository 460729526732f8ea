"""Quest data access module."""

from questboard.repositories.base import QuestRepository
from questboard.repositories.factory import get_memory_repository, get_repository
from questboard.repositories.memory import InMemoryQuestRepository
from questboard.repositories.sql import SqlQuestRepository

__all__ = [
    "QuestRepository",
    "InMemoryQuestRepository",
    "SqlQuestRepository",
    "get_memory_repository",
    "get_repository",
]
