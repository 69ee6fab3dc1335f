from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _is_sqlite_memory(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


def _is_postgres(database_url: str) -> bool:
    return database_url.startswith("postgresql")


def _ensure_sqlite_dir(database_url: str) -> None:
    """
    Ensure the parent folder exists for SQLite file-based DB URLs like:
      sqlite:///./data/kaosekai.sqlite
      sqlite:////absolute/path/to/db.sqlite
    """
    if not database_url.startswith("sqlite:///") or _is_sqlite_memory(database_url):
        return

    path = database_url.replace("sqlite:///", "", 1)
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)


def _sqlite_pragmas(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")
        cursor.execute("PRAGMA foreign_keys=ON;")  # cascades for party members/posts
        cursor.execute("PRAGMA busy_timeout=5000;")
        cursor.close()


def _postgres_session_settings(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_postgres_settings(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("SET statement_timeout = 30000;")
        cursor.close()


def get_engine(database_url: str, *, echo: bool = False) -> Engine:
    """
    Create and return the SQLAlchemy engine for database_url.

    - SQLite gets pragmas + check_same_thread=False for FastAPI's threadpool
    - in-memory SQLite shares one connection (StaticPool) so every session
      sees the same database
    - Postgres works by just changing DATABASE_URL
    """
    kwargs = {"echo": echo, "pool_pre_ping": True}

    if _is_sqlite(database_url):
        _ensure_sqlite_dir(database_url)
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_sqlite_memory(database_url):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)

    if _is_sqlite(database_url):
        _sqlite_pragmas(engine)

    if _is_postgres(database_url):
        _postgres_session_settings(engine)

    return engine


def register_models() -> None:
    """
    Central place to import ALL models so SQLModel registers them.
    """
    from .models.user import User  # noqa: F401
    from .models.token import Token  # noqa: F401
    from .models.character import Character  # noqa: F401
    from .models.party import Party, PartyMember  # noqa: F401
    from .models.post import Post  # noqa: F401
    from .models.document import Document  # noqa: F401


def init_db(engine: Engine, create_tables: bool = True) -> None:
    """
    Register models, then create missing tables.
    Non-destructive: create_all will not drop or alter existing tables.
    """
    register_models()
    if create_tables:
        SQLModel.metadata.create_all(engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency:
        def route(db: Session = Depends(get_db)):
            ...
    The engine is the one create_app() attached to app.state.
    """
    with Session(request.app.state.engine) as session:
        yield session


@contextmanager
def session_scope(engine: Engine) -> Generator[Session, None, None]:
    """
    Context manager for scripts that need commit/rollback safety.

    Usage:
        with session_scope(engine) as db:
            db.add(...)
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
