from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from subscribe.core.config import settings


def _connect_args(dsn: str) -> dict[str, Any]:
    # The API and the worker share connections across threads
    if dsn.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.APP_DATABASE_DSN, connect_args=_connect_args(settings.APP_DATABASE_DSN)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session, closed once the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create the plans, services and invoices tables if they are missing.

    Alembic revisions under ``subscribe/alembic/versions`` are the source of
    truth for deployed databases; this is for local runs and tests.
    """
    import subscribe.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
