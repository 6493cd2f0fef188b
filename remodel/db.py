# remodel/db.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from remodel.config import get_settings
from remodel.errors import ConflictError, StorageError

logger = logging.getLogger("remodel.db")


def build_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine, refusing to run without a connection string."""
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set; refusing to start without storage")

    # SQLite needs a special connect arg; others (e.g., Postgres) don't.
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    eng = create_engine(
        database_url,
        echo=False,  # set True to see SQL in console
        connect_args=connect_args,
    )
    # Log which DB URL is actually in use (password masked by SQLAlchemy).
    logger.info("DB URL in use: %s", eng.url)
    return eng


settings = get_settings()
engine = build_engine(settings.database_url)


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency: yields a database session and closes it afterwards."""
    with Session(engine) as session:
        yield session


def create_db_and_tables(bind: Engine | None = None) -> None:
    """
    Create missing tables. Idempotent; called on startup.
    Alembic migrations remain the way to change an existing schema.
    """
    import remodel.models  # noqa: F401  # registers tables on SQLModel.metadata

    SQLModel.metadata.create_all(bind or engine)


@contextmanager
def storage_guard(session: Session, action: str) -> Iterator[None]:
    """
    Wrap a unit of storage work.
    Unique-constraint hits become ConflictError, any other driver failure is
    rolled back, logged in full and surfaced as a generic StorageError.
    """
    try:
        yield
    except IntegrityError as ex:
        session.rollback()
        logger.warning("Integrity error while %s: %s", action, ex.orig)
        raise ConflictError(f"Duplicate value while {action}") from ex
    except SQLAlchemyError as ex:
        session.rollback()
        logger.exception("Storage failure while %s", action)
        raise StorageError("Storage is unavailable, please retry") from ex
