from datetime import timedelta

from taskboard.domain.enums import ChangeType, Collection, HistoryField
from taskboard.domain.task import TaskId
from taskboard.domain.user import UserId


def test_record_persists_entry_with_server_timestamp(history, store, clock):
    # Act
    entry = history.record(
        TaskId("t-1"),
        UserId("u-1"),
        ChangeType.UPDATE,
        field_name=HistoryField.TITLE,
        old_value="a",
        new_value="b",
    )

    # Assert
    assert entry.change_date == clock.fixed
    assert store.find_by_id(Collection.HISTORY, entry.history_id) == entry
    assert entry.comment is None


def test_record_does_not_deduplicate(history):
    first = history.record(TaskId("t-1"), UserId("u-1"), ChangeType.COMMENT, comment="same")
    second = history.record(TaskId("t-1"), UserId("u-1"), ChangeType.COMMENT, comment="same")

    assert first.history_id != second.history_id
    assert len(history.list_for_task(TaskId("t-1"))) == 2


def test_list_for_task_is_oldest_first_and_scoped(history, clock):
    history.record(TaskId("t-1"), UserId("u-1"), ChangeType.CREATE, new_value="created")
    clock.advance(seconds=-30)
    earlier = history.record(TaskId("t-1"), UserId("u-1"), ChangeType.COMMENT, comment="back-dated")
    history.record(TaskId("t-2"), UserId("u-1"), ChangeType.CREATE, new_value="other")

    entries = history.list_for_task(TaskId("t-1"))

    assert [e.history_id for e in entries][0] == earlier.history_id
    assert all(e.task_id == "t-1" for e in entries)
    assert entries[1].change_date - entries[0].change_date == timedelta(seconds=30)


def test_purge_tasks_removes_only_given_tasks(history, store):
    for task_id in ("t-1", "t-1", "t-2", "t-3"):
        history.record(TaskId(task_id), UserId("u-1"), ChangeType.COMMENT, comment="x")

    removed = history.purge_tasks([TaskId("t-1"), TaskId("t-2")])

    assert removed == 3
    assert store.count_where(Collection.HISTORY) == 1
    assert history.purge_tasks([]) == 0
