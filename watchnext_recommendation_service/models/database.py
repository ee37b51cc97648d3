"""Engine and session factory for the interaction store."""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from watchnext_recommendation_service.config import get_database_url
from watchnext_recommendation_service.models.base import Base

DATABASE_URL = get_database_url()

if DATABASE_URL is None:
    raise ValueError("DATABASE_URL is not configured. Set the DATABASE_URL environment variable.")

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=3600,
    echo=False  # Set to True for SQL debugging
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Yield a session that is always closed; callers commit explicitly."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create any missing tables."""
    # Import models so their tables are registered on Base.metadata
    from watchnext_recommendation_service.models import interaction, user  # noqa: F401

    Base.metadata.create_all(bind=engine)
