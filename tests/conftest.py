from datetime import datetime, timedelta, timezone

import pytest

from taskboard.adapters.memory.cache import InMemoryCache
from taskboard.adapters.memory.entity_store import InMemoryEntityStore
from taskboard.domain.enums import TaskPriority, UserRole
from taskboard.domain.task import NewTask
from taskboard.services.history_recorder import HistoryRecorder
from taskboard.services.project_service import ProjectService
from taskboard.services.report_service import ReportService
from taskboard.services.task_limit_guard import TaskLimitGuard
from taskboard.services.task_service import TaskService
from taskboard.services.user_service import UserService

DUE = datetime(2030, 6, 30, 17, 0, 0, tzinfo=timezone.utc)


class FakeIdProvider:
    def __init__(self):
        self.counter = 0

    def new_id(self) -> str:
        self.counter += 1
        return f"id-{self.counter:03d}"


class FakeClock:
    def __init__(self, fixed: datetime | None = None):
        # without `fixed` it always returns the same "now"
        self.fixed = fixed or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.fixed

    def advance(self, **kwargs) -> None:
        self.fixed = self.fixed + timedelta(**kwargs)


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def ids():
    return FakeIdProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache():
    return InMemoryCache(ttl_seconds=None)


@pytest.fixture
def history(store, ids, clock):
    return HistoryRecorder(store, ids, clock)


@pytest.fixture
def guard(store):
    return TaskLimitGuard(store, limit=20)


@pytest.fixture
def users(store, ids, clock):
    return UserService(store, ids, clock)


@pytest.fixture
def projects(store, ids, clock, history, guard):
    return ProjectService(store, ids, clock, history=history, limit_guard=guard)


@pytest.fixture
def tasks(store, ids, clock, history, guard):
    return TaskService(store, ids, clock, history=history, limit_guard=guard)


@pytest.fixture
def reports(store, clock):
    return ReportService(store, clock)


@pytest.fixture
def actor(users):
    return users.create_user("Ana", "ana@example.com")


@pytest.fixture
def manager(users):
    return users.create_user("Marta", "marta@example.com", UserRole.MANAGER)


@pytest.fixture
def project(projects, actor):
    return projects.create_project(actor.user_id, "Website", "Relaunch")


@pytest.fixture
def new_task():
    def make(title: str = "Draft outline", priority=TaskPriority.HIGH, description: str | None = "first draft"):
        return NewTask(title=title, due_date=DUE, priority=priority, description=description)
    return make
