"""Engine, sessions and schema bootstrap for MindMesh.

`DATABASE_URL` selects the backend. Development and tests run on SQLite;
deployments point it at PostgreSQL and apply Alembic revisions.
"""

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.pool import StaticPool
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./mindmesh.db")


def _is_sqlite_url(database_url: str) -> bool:
    return "sqlite" in (database_url or "")


def _is_memory_sqlite(database_url: str) -> bool:
    return _is_sqlite_url(database_url) and (":memory:" in database_url or database_url.rstrip("/") == "sqlite:")


def get_engine_kwargs(database_url: str) -> dict:
    """Build create_engine keyword arguments for a URL without connecting.

    Pool sizes for server databases come from DB_POOL_SIZE, DB_MAX_OVERFLOW
    and DB_POOL_TIMEOUT_SEC.
    """
    kwargs: dict = {
        "echo": os.getenv("DEBUG", "False").lower() == "true",
        "pool_pre_ping": True,
    }

    if _is_sqlite_url(database_url):
        # Route handlers run on FastAPI's threadpool.
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(database_url):
            # One shared connection, otherwise each session sees an empty database.
            kwargs["poolclass"] = StaticPool
        return kwargs

    kwargs["pool_size"] = int(os.getenv("DB_POOL_SIZE", "5"))
    kwargs["max_overflow"] = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    kwargs["pool_timeout"] = int(os.getenv("DB_POOL_TIMEOUT_SEC", "30"))
    return kwargs


def build_engine(database_url: str) -> Engine:
    return create_engine(database_url, **get_engine_kwargs(database_url))


engine = build_engine(DATABASE_URL)


@event.listens_for(Engine, "connect")
def set_sqlite_pragmas(dbapi_conn, connection_record):
    """Turn on foreign keys and WAL for SQLite connections.

    Decided per connection, so a SQLite engine built for another URL than
    DATABASE_URL gets the pragmas too. Foreign keys must be on for the
    `SET NULL` on child tasks and the mapping cascade to fire.
    """
    if isinstance(dbapi_conn, sqlite3.Connection):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Session:
    """Request-scoped session (FastAPI dependency)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work outside a request, such as the timer sync pass."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create or upgrade the schema.

    With RUN_MIGRATIONS=true on a non-SQLite database this runs
    `alembic upgrade head`; otherwise it calls `create_all()`.
    """
    from mindmesh.database import models  # noqa: F401  (registers tables)

    run_migrations = os.getenv("RUN_MIGRATIONS", "False").lower() == "true"
    if run_migrations and not _is_sqlite_url(DATABASE_URL):
        from alembic import command
        from alembic.config import Config

        alembic_cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
        alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL)
        command.upgrade(alembic_cfg, "head")
        return

    Base.metadata.create_all(bind=engine)
