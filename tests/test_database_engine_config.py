import os


def test_get_engine_kwargs_sqlite_has_check_same_thread(monkeypatch):
    # Import lazily so monkeypatch can affect env usage deterministically.
    from mindmesh.database import database as db

    kwargs = db.get_engine_kwargs("sqlite:///./mindmesh.db")
    assert "connect_args" in kwargs
    assert kwargs["connect_args"]["check_same_thread"] is False
    # SQLite should not require pool sizing knobs.
    assert "pool_size" not in kwargs
    assert "max_overflow" not in kwargs
    assert kwargs["pool_pre_ping"] is True


def test_get_engine_kwargs_postgres_has_conservative_pooling(monkeypatch):
    from mindmesh.database import database as db

    monkeypatch.setenv("DB_POOL_SIZE", "3")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "2")
    monkeypatch.setenv("DB_POOL_TIMEOUT_SEC", "15")

    kwargs = db.get_engine_kwargs("postgresql+psycopg://u:p@localhost:5432/db")
    assert "connect_args" not in kwargs
    assert kwargs["pool_pre_ping"] is True
    assert kwargs["pool_size"] == 3
    assert kwargs["max_overflow"] == 2
    assert kwargs["pool_timeout"] == 15


def test_sqlite_url_detection():
    from mindmesh.database import database as db

    assert db._is_sqlite_url("sqlite:///./mindmesh.db") is True
    assert db._is_sqlite_url("postgresql+psycopg://u:p@localhost/db") is False


def test_init_db_creates_all_tables_for_sqlite(tmp_path):
    from sqlalchemy import create_engine, inspect
    from mindmesh.database import database as db
    from mindmesh.database import models  # noqa: F401

    engine = create_engine(f"sqlite:///{tmp_path / 'fresh.db'}", connect_args={"check_same_thread": False})
    db.Base.metadata.create_all(bind=engine)

    tables = set(inspect(engine).get_table_names())
    assert {
        "tasks",
        "mood_entries",
        "reminders",
        "focus_sessions",
        "brain_dumps",
        "user_integrations",
        "sync_mappings",
    } <= tables


def test_migration_matches_model_tables():
    """The initial Alembic revision creates every mapped table."""
    from mindmesh.database.database import Base
    from mindmesh.database import models  # noqa: F401

    path = os.path.join(os.path.dirname(__file__), "..", "alembic", "versions",
                        "4e1a7c2b9d05_initial_mindmesh_schema.py")
    with open(path, encoding="utf-8") as f:
        source = f.read()
    for table in Base.metadata.tables:
        assert f'"{table}"' in source


def test_in_memory_sqlite_shares_one_connection():
    from sqlalchemy.pool import StaticPool
    from mindmesh.database import database as db

    assert db.get_engine_kwargs("sqlite:///:memory:")["poolclass"] is StaticPool
    assert "poolclass" not in db.get_engine_kwargs("sqlite:///./mindmesh.db")


def test_sqlite_pragmas_follow_the_connection_not_the_default_url(monkeypatch, tmp_path):
    """A SQLite engine gets foreign keys even when DATABASE_URL names another backend."""
    from sqlalchemy import create_engine, text
    from mindmesh.database import database as db

    monkeypatch.setattr(db, "DATABASE_URL", "postgresql+psycopg://u:p@localhost:5432/db")
    engine = create_engine(f"sqlite:///{tmp_path / 'pragmas.db'}")

    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
    engine.dispose()
