"""Factory for creating repository instances."""

from typing import Optional

from sqlalchemy.orm import Session

from questboard.config import settings
from questboard.core.logging import get_logger
from questboard.repositories.base import QuestRepository
from questboard.repositories.memory import InMemoryQuestRepository
from questboard.repositories.sql import SqlQuestRepository

logger = get_logger(__name__)

# "memory" 백엔드는 프로세스 전체에서 하나만 사용
_memory_repository: Optional[InMemoryQuestRepository] = None


def get_memory_repository() -> InMemoryQuestRepository:
    """Return the process-wide in-memory repository, creating it on first use."""
    global _memory_repository
    if _memory_repository is None:
        logger.info("Creating in-memory quest repository")
        _memory_repository = InMemoryQuestRepository()
    return _memory_repository


def get_repository(
    db: Optional[Session] = None, backend: Optional[str] = None
) -> QuestRepository:
    """Get a repository instance.

    Args:
        db: Session for the SQL backend.
        backend: Optional backend name. If not specified,
                 uses REPOSITORY_BACKEND from config.

    Returns:
        A QuestRepository instance.
    """
    name = backend or settings.REPOSITORY_BACKEND

    if name == "memory":
        return get_memory_repository()

    if name == "sql":
        if db is None:
            raise ValueError("The sql repository backend needs a database session")
        return SqlQuestRepository(db)

    raise ValueError(f"Unknown repository backend: {name}")
