from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from steward.core.config import settings

engine = create_engine(
    settings.APP_DATABASE_DSN,
    connect_args=({"check_same_thread": False} if "sqlite" in settings.APP_DATABASE_DSN else {}),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def open_session() -> Session:
    """Open a session outside of a request, for worker tasks.

    Looks up ``SessionLocal`` at call time so tests can swap the factory.
    """
    return SessionLocal()


def init_db() -> None:
    """Create all tables registered on ``Base``."""
    import steward.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
