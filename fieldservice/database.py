"""
Database engine, session dependency and the transaction helper used by every
multi-row operation.
"""
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterator

from sqlalchemy.engine import make_url
from sqlmodel import Session, SQLModel, create_engine

from . import config
from .logger import logger


def _build_engine(database_url: str):
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        database_url,
        echo=config.DB_ECHO,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    logger.info(f"Database engine initialized: {url.get_backend_name()}")
    return engine


engine = _build_engine(config.DATABASE_URL)


def init_db() -> None:
    """Create all tables that don't exist yet."""
    # registers the table classes on SQLModel.metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    with Session(engine) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """
    All-or-nothing block: commits when the body finishes, rolls back and
    re-raises on any exception.

    Usage:
        with atomic(session):
            session.add(a)
            session.add(b)
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
