"""Database engine and session configuration."""

from collections.abc import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from questboard.config import settings


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """Turn on FK enforcement (ON DELETE CASCADE / SET NULL) for SQLite."""

    @event.listens_for(target, "connect")
    def _set_fk(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine; SQLite gets thread and FK settings."""
    is_sqlite = url.startswith("sqlite")
    eng = create_engine(
        url,
        connect_args={"check_same_thread": False} if is_sqlite else {},
        echo=echo,
    )
    if is_sqlite:
        enable_sqlite_foreign_keys(eng)
    return eng


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure it is closed after use.

    Usage as a FastAPI dependency::

        @app.get("/quests")
        def list_quests(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
