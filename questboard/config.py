"""Application configuration loaded from environment variables and .env file."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from environment variables first,
    then from a .env file in the project root as fallback.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    DATABASE_URL: str = "sqlite:///./questboard.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Data access backend: "sql" (SQLAlchemy) or "memory" (process-local dicts)
    REPOSITORY_BACKEND: Literal["sql", "memory"] = "sql"

    # What happens to existing progress when a quest's tasks are replaced.
    # "percentage": percentage reset to 0, completed set kept as-is
    # "recompute": completed set pruned to the new tasks, percentage recomputed
    PROGRESS_RESET_ON_EDIT: Literal["percentage", "recompute"] = "percentage"


settings = Settings()
