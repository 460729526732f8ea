"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from questboard.config import settings
from questboard.core.logging import get_logger
from questboard.db.database import get_db

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db)) -> dict[str, str]:
    """Return application, database and repository backend status."""
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.warning("Health check database probe failed: %s", e)
        database = "disconnected"
    return {
        "status": "ok" if database == "connected" else "error",
        "database": database,
        "repository": settings.REPOSITORY_BACKEND,
    }
