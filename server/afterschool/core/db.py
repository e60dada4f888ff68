from __future__ import annotations

from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from afterschool.core.config import settings


def engine_options(database_url: str) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` suited to the URL's backend."""

    options: dict[str, Any] = {"future": True, "pool_pre_ping": True}
    if make_url(database_url).get_backend_name() == "sqlite":
        # Request handlers run on a threadpool; SQLite connections default to one thread.
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; uncommitted work is discarded on close."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
