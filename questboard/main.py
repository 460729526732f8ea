"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from questboard.api.badges import router as badges_router
from questboard.api.health import router as health_router
from questboard.api.quests import router as quests_router
from questboard.api.tasks import router as tasks_router
from questboard.config import settings
from questboard.core import __version__
from questboard.core.logging import get_logger, setup_logging
from questboard.db.database import engine as db_engine
from questboard.db.models import Base

setup_logging(settings.LOG_LEVEL, sql_echo=settings.DEBUG)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # DB 테이블 생성
    if settings.REPOSITORY_BACKEND == "sql":
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=db_engine)
        logger.info("Database tables created.")

    logger.info(
        "Questboard started (repository=%s, reset_on_edit=%s)",
        settings.REPOSITORY_BACKEND,
        settings.PROGRESS_RESET_ON_EDIT,
    )

    yield

    logger.info("Shutting down...")
    db_engine.dispose()


app = FastAPI(title="Questboard", version=__version__, lifespan=lifespan)

app.include_router(health_router)
app.include_router(badges_router)
app.include_router(tasks_router)
app.include_router(quests_router)
