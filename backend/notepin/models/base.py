from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine
from notepin.config import Settings

_settings = Settings()


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def make_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


engine: Engine = make_engine(_settings.database_url)


def init_db(bind: Engine | None = None) -> None:
    bind = bind or engine
    # Enable WAL on SQLite files
    if bind.url.get_backend_name() == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        with bind.begin() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
            conn.exec_driver_sql("PRAGMA synchronous=NORMAL;")
    # Import table models so they register with the metadata
    from notepin.models import event, note_action, recording, share  # noqa: F401

    SQLModel.metadata.create_all(bind)
