from datetime import datetime, timedelta, timezone

import pytest

from taskboard.adapters.sql.entity_store import SqlEntityStore
from taskboard.domain.enums import ChangeType, Collection, HistoryField, TaskPriority, TaskStatus, UserRole
from taskboard.domain.errors import EntityAlreadyExistsError, StoreUnavailableError
from taskboard.domain.history import HistoryEntry, HistoryId
from taskboard.domain.project import Project, ProjectId
from taskboard.domain.task import Task, TaskId
from taskboard.domain.user import User, UserId

T0 = datetime(2025, 1, 1, 12, 0, 0, 250000, tzinfo=timezone.utc)


@pytest.fixture
def sql_store(tmp_path):
    return SqlEntityStore(tmp_path / "taskboard.db")


def make_task(task_id: str, project_id: str = "p-1", status=TaskStatus.PENDING, seconds: int = 0) -> Task:
    return Task(
        task_id=TaskId(task_id),
        project_id=ProjectId(project_id),
        title=f"task {task_id}",
        priority=TaskPriority.HIGH,
        due_date=datetime(2030, 6, 30, 17, 0, tzinfo=timezone.utc),
        created_at=T0 + timedelta(seconds=seconds),
        updated_at=T0 + timedelta(seconds=seconds),
        status=status,
    )


def test_entities_round_trip(sql_store):
    # Arrange
    user = User(UserId("u-1"), "Ana", "ana@example.com", T0, UserRole.MANAGER)
    project = Project(ProjectId("p-1"), "Website", "Relaunch", user.user_id, T0, T0)
    task = make_task("t-1")
    entry = HistoryEntry(
        history_id=HistoryId("h-1"),
        task_id=task.task_id,
        user_id=user.user_id,
        change_type=ChangeType.UPDATE,
        change_date=T0,
        field_name=HistoryField.STATUS,
        old_value="Pending",
        new_value="InProgress",
    )

    # Act
    sql_store.insert(Collection.USERS, user)
    sql_store.insert(Collection.PROJECTS, project)
    sql_store.insert(Collection.TASKS, task)
    sql_store.insert(Collection.HISTORY, entry)

    # Assert
    assert sql_store.find_by_id(Collection.USERS, "u-1") == user
    assert sql_store.find_by_id(Collection.PROJECTS, "p-1") == project
    assert sql_store.find_by_id(Collection.TASKS, "t-1") == task
    assert sql_store.find_by_id(Collection.HISTORY, "h-1") == entry
    assert sql_store.find_by_id(Collection.TASKS, "missing") is None


def test_comment_entry_keeps_nulls(sql_store):
    entry = HistoryEntry(HistoryId("h-1"), TaskId("t-1"), UserId("u-1"), ChangeType.COMMENT, T0, comment="")

    sql_store.insert(Collection.HISTORY, entry)

    loaded = sql_store.find_where(Collection.HISTORY, {"task_id": "t-1", "field_name": None})
    assert loaded == [entry]
    assert loaded[0].comment == ""


def test_find_where_orders_and_filters(sql_store):
    for t in [make_task("b", seconds=1), make_task("c"), make_task("a", seconds=1), make_task("x", "p-2")]:
        sql_store.insert(Collection.TASKS, t)

    found = sql_store.find_where(Collection.TASKS, {"project_id": "p-1"})

    assert [t.task_id for t in found] == ["c", "b", "a"]


def test_membership_predicate_and_count(sql_store):
    sql_store.insert(Collection.TASKS, make_task("1", status=TaskStatus.PENDING))
    sql_store.insert(Collection.TASKS, make_task("2", status=TaskStatus.IN_PROGRESS))
    sql_store.insert(Collection.TASKS, make_task("3", status=TaskStatus.COMPLETED))

    active = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)

    assert sql_store.count_where(Collection.TASKS, {"status": active}) == 2
    assert sql_store.count_where(Collection.TASKS, {"status": TaskStatus.COMPLETED}) == 1
    assert sql_store.count_where(Collection.TASKS) == 3


def test_unique_email_and_duplicate_id(sql_store):
    sql_store.insert(Collection.USERS, User(UserId("u-1"), "Ana", "ana@example.com", T0))

    with pytest.raises(EntityAlreadyExistsError):
        sql_store.insert(Collection.USERS, User(UserId("u-2"), "Ana 2", "ana@example.com", T0))
    with pytest.raises(EntityAlreadyExistsError):
        sql_store.insert(Collection.USERS, User(UserId("u-1"), "Ana 3", "ana3@example.com", T0))


def test_update_by_id(sql_store):
    sql_store.insert(Collection.TASKS, make_task("1"))
    later = T0 + timedelta(hours=1)

    updated = sql_store.update_by_id(Collection.TASKS, "1", {"status": TaskStatus.COMPLETED, "updated_at": later})

    assert updated.status == TaskStatus.COMPLETED
    assert updated.updated_at == later
    assert updated.priority == TaskPriority.HIGH
    assert sql_store.update_by_id(Collection.TASKS, "1", {}) == updated
    assert sql_store.update_by_id(Collection.TASKS, "missing", {"title": "x"}) is None


def test_delete_by_id_and_delete_many(sql_store):
    for t in [make_task("1"), make_task("2"), make_task("3", "p-2")]:
        sql_store.insert(Collection.TASKS, t)

    removed = sql_store.delete_by_id(Collection.TASKS, "3")

    assert removed.task_id == "3"
    assert sql_store.delete_by_id(Collection.TASKS, "3") is None
    assert sql_store.delete_many(Collection.TASKS, {"task_id": ["1", "2", "zzz"]}) == 2
    assert sql_store.count_where(Collection.TASKS) == 0


def test_data_survives_a_new_store_instance(tmp_path):
    path = tmp_path / "taskboard.db"
    SqlEntityStore(path).insert(Collection.TASKS, make_task("1"))

    reopened = SqlEntityStore(f"sqlite:///{path}")

    assert reopened.find_by_id(Collection.TASKS, "1") == make_task("1")


def test_unreachable_database_raises_store_unavailable(tmp_path):
    missing_dir = tmp_path / "does" / "not" / "exist" / "taskboard.db"

    with pytest.raises(StoreUnavailableError):
        SqlEntityStore(missing_dir)
