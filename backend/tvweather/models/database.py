"""SQLite engine and session factory for paired devices and their settings."""

from typing import Callable

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import settings


class Base(DeclarativeBase):
    pass


def create_sqlite_engine(url: str) -> Engine:
    """Engine shared by the API handlers and every device's poll task.

    An in-memory URL gets a single static connection so all sessions see
    the same database.
    """
    kwargs = {}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(url, connect_args={"check_same_thread": False}, **kwargs)


def create_session_factory(bind: Engine) -> Callable[[], Session]:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False)


engine = create_sqlite_engine(settings.database_url)
SessionLocal = create_session_factory(engine)


def create_tables(bind: Engine) -> None:
    # Models must be imported before create_all() so they register with Base.metadata
    from . import device  # noqa: F401
    from . import device_setting  # noqa: F401
    Base.metadata.create_all(bind=bind)


def init_database() -> None:
    """Create the devices and device_settings tables on the app database."""
    create_tables(engine)

    # WAL lets the API read settings while a poll is writing last_response
    with engine.connect() as conn:
        conn.execute(text("PRAGMA journal_mode=WAL"))
        conn.commit()
