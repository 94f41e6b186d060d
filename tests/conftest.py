"""Pytest fixtures and configuration for studybuddy tests."""

import os

# Keep the app's startup hook off the developer's database file
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
import uuid

from studybuddy.database.database import Base
from studybuddy.database.repository import TaskRepository
from studybuddy.errors import DatastoreError
from studybuddy.models.task import Task, TaskStatus, TaskCategory
from studybuddy.models.task_factory import new_task_id
from studybuddy.engine.dedup import natural_key


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_session(test_user_id):
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    Also creates a test user in the database.
    """
    from studybuddy.database.models import UserDB

    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    # Create test user (required for foreign key constraints)
    now = datetime.utcnow()
    session.add(
        UserDB(
            id=test_user_id,
            email="test@example.com",
            name="Test User",
            created_at=now,
            updated_at=now,
        )
    )
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def task_repository(db_session: Session):
    """Create a TaskRepository instance for testing."""
    return TaskRepository(db_session)


@pytest.fixture
def test_user_id():
    return "test-user-123"


@pytest.fixture
def today():
    return date(2026, 3, 10)


@pytest.fixture
def sample_task_base(test_user_id):
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    return {
        "id": str(uuid.uuid4()),
        "user_id": test_user_id,
        "title": "Problem Set 1",
        "category": TaskCategory.ASSIGNMENT,
        "status": TaskStatus.UPCOMING,
        "due": "2026-03-12",
        "notes": "Chapters 1-3",
        "subtasks": [],
        "completed_at": None,
        "source": "manual",
        "created_at": datetime(2026, 3, 1, 9, 0, 0),
    }


@pytest.fixture
def sample_task(sample_task_base):
    return Task(**sample_task_base)


@pytest.fixture
def make_task(sample_task_base):
    """Factory for Task objects with overrides."""
    def _make(**overrides) -> Task:
        data = {**sample_task_base, "id": str(uuid.uuid4()), **overrides}
        if data["status"] == TaskStatus.COMPLETED and data.get("completed_at") is None:
            data["completed_at"] = datetime(2026, 3, 5, 12, 0, 0)
        return Task(**data)
    return _make


class FakeTaskDatastore:
    """In-memory async datastore with switchable failures."""

    def __init__(self, tasks: Optional[List[Task]] = None):
        self.rows: Dict[str, Task] = {t.id: t for t in (tasks or [])}
        self.fail_with: Optional[BaseException] = None
        self.calls: List[str] = []

    def _maybe_fail(self, op: str) -> None:
        self.calls.append(op)
        if self.fail_with is not None:
            raise self.fail_with

    async def list_tasks(self, user_id: str, today: Optional[date] = None) -> List[Task]:
        self._maybe_fail("list")
        return [t for t in self.rows.values() if t.user_id == user_id]

    async def list_natural_keys(self, user_id: str):
        self._maybe_fail("keys")
        return [
            natural_key(t.title, t.due, t.category)
            for t in self.rows.values()
            if t.user_id == user_id
        ]

    async def insert_task(self, task: Task) -> Task:
        self._maybe_fail("insert")
        saved = task.model_copy(update={"id": new_task_id()})
        self.rows[saved.id] = saved
        return saved

    async def insert_tasks(self, tasks: List[Task]) -> List[Task]:
        self._maybe_fail("insert_many")
        for t in tasks:
            self.rows[t.id] = t
        return list(tasks)

    async def update_task(self, user_id: str, task_id: str, fields: Dict[str, Any]) -> Task:
        self._maybe_fail("update")
        updated = self.rows[task_id].model_copy(update=fields)
        self.rows[task_id] = updated
        return updated

    async def update_tasks(self, user_id: str, task_ids: List[str], fields: Dict[str, Any]) -> int:
        self._maybe_fail("update_many")
        for task_id in task_ids:
            self.rows[task_id] = self.rows[task_id].model_copy(update=fields)
        return len(task_ids)

    async def delete_tasks(self, user_id: str, task_ids: List[str]) -> int:
        self._maybe_fail("delete")
        deleted = 0
        for task_id in task_ids:
            if self.rows.pop(task_id, None) is not None:
                deleted += 1
        return deleted


@pytest.fixture
def fake_datastore():
    return FakeTaskDatastore()


@pytest.fixture
def datastore_error():
    return DatastoreError("permission denied for table tasks", code="42501")


class FakeDispatcher:
    """Records dispatched events; fails for titles listed in fail_titles."""

    def __init__(self, fail_titles=()):
        self.fail_titles = set(fail_titles)
        self.events: List[Dict[str, Any]] = []

    async def create_event(self, event_body: Dict[str, Any]) -> Dict[str, Any]:
        from studybuddy.errors import CalendarInsertError

        self.events.append(event_body)
        if any(event_body["summary"].endswith(title) for title in self.fail_titles):
            raise CalendarInsertError(400, '{"error": {"message": "Invalid start time"}}')
        return {"id": f"evt-{len(self.events)}", **event_body}


@pytest.fixture
def fake_dispatcher():
    return FakeDispatcher()


@pytest.fixture
def test_user(test_user_id):
    """Create a test user object."""
    from studybuddy.models.user import User
    now = datetime.utcnow()
    return User(
        id=test_user_id,
        email="test@example.com",
        name="Test User",
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def test_client(db_session: Session, test_user, fake_dispatcher):
    """Create a FastAPI test client with overridden database, authentication and calendar."""
    from studybuddy.api.app import app, get_calendar_dispatcher, task_stores
    from studybuddy.database.database import get_db
    from studybuddy.auth.dependencies import get_current_user

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    def override_get_current_user():
        return test_user

    def override_get_calendar_dispatcher():
        return fake_dispatcher

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_calendar_dispatcher] = override_get_calendar_dispatcher
    task_stores.clear()

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    task_stores.clear()
