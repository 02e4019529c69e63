"""Pytest fixtures and configuration for MindMesh tests."""

import os

# Must be set before mindmesh.database.database builds its engine.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest
import uuid
from datetime import datetime
from cryptography.fernet import Fernet
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from mindmesh.database.database import Base, get_db
from mindmesh.database.repository import TaskRepository
from mindmesh.models.task import Task, TaskStatus, TaskPriority


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    Foreign keys are enabled by the engine-wide connect listener.
    """
    from mindmesh.database import models  # noqa: F401

    # Create engine with StaticPool for in-memory database
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def token_encryption_key(monkeypatch):
    """Every test gets a fresh Fernet key for token storage."""
    key = Fernet.generate_key().decode("utf-8")
    monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", key)
    return key


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def test_user_id():
    """Test user ID for multi-user testing."""
    return "test-user-123"


@pytest.fixture
def other_user_id():
    """A second user for isolation tests."""
    return "other-user-456"


@pytest.fixture
def sample_task_base(test_user_id):
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    now = datetime.utcnow()
    return {
        "id": str(uuid.uuid4()),
        "user_id": test_user_id,
        "source_type": "api",
        "title": "Test Task",
        "description": "Test description",
        "status": TaskStatus.PENDING,
        "priority": TaskPriority.MEDIUM,
        "due_date": None,
        "parent_task_id": None,
        "recurrence_pattern": None,
        "recurrence_end_date": None,
        "task_order": 0,
        "tags": [],
        "complexity": 3,
        "created_at": now,
        "updated_at": now,
        "completed_at": None,
    }


@pytest.fixture
def sample_task(sample_task_base):
    """Create a sample Task object for testing."""
    return Task(**sample_task_base)


@pytest.fixture
def make_task(sample_task_base):
    """Factory for tasks with overrides and a fresh id."""
    def _make(**overrides):
        return Task(**{**sample_task_base, "id": str(uuid.uuid4()), **overrides})
    return _make


@pytest.fixture
def test_user(test_user_id):
    """Create a test user object."""
    from mindmesh.auth.dependencies import CurrentUser
    return CurrentUser(id=test_user_id, email="test@example.com")


class FakeAI:
    """Stand-in for OpenAIClient returning queued replies.

    Each queued item is either a dict/None (returned from complete_json) or an
    exception instance (raised).
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def complete_json(self, prompt, temperature=0.7, max_tokens=2048):
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else None
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def test_client(db_session: Session, test_user, fake_ai, tmp_path):
    """Create a FastAPI test client with overridden database, AI, state and authentication."""
    from mindmesh.api.app import app, get_ai_client, get_state_dir
    from mindmesh.auth.dependencies import get_current_user

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    # Override authentication to return test user
    def override_get_current_user():
        return test_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_ai_client] = lambda: fake_ai
    app.dependency_overrides[get_state_dir] = lambda: str(tmp_path)

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
