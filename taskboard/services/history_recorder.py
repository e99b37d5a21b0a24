import logging
from typing import Iterable

from taskboard.domain.enums import ChangeType, Collection, HistoryField
from taskboard.domain.history import HistoryEntry, HistoryId
from taskboard.domain.task import TaskId
from taskboard.domain.user import UserId
from taskboard.ports.clock import Clock
from taskboard.ports.entity_store import EntityStore
from taskboard.ports.id_provider import IdProvider

logger = logging.getLogger(__name__)


class HistoryRecorder:
    """
    Append-only writer of task history entries.

    The recorder never merges or deduplicates: whoever calls `record` has already
    decided that the entry is needed. Entries are only removed together with their task.

    :param store: EntityStore port implementation.
    :param id_provider: Source of entry ids.
    :param clock: Source of `change_date` (server-assigned).
    """
    def __init__(self, store: EntityStore, id_provider: IdProvider, clock: Clock) -> None:
        self.store = store
        self.id_provider = id_provider
        self.clock = clock

    def record(
        self,
        task_id: TaskId,
        user_id: UserId,
        change_type: ChangeType,
        field_name: HistoryField | None = None,
        old_value: str | None = None,
        new_value: str | None = None,
        comment: str | None = None,
    ) -> HistoryEntry:
        """
        Builds one entry stamped with `clock.now()` and inserts it.

        :return: The persisted `HistoryEntry`.
        """
        entry = HistoryEntry(
            history_id=HistoryId(self.id_provider.new_id()),
            task_id=task_id,
            user_id=user_id,
            change_type=change_type,
            change_date=self.clock.now(),
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            comment=comment,
        )
        self.store.insert(Collection.HISTORY, entry)
        logger.debug("History %s recorded for task %s (%s)", change_type, task_id, field_name or "-")
        return entry

    def list_for_task(self, task_id: TaskId) -> list[HistoryEntry]:
        """Audit trail of one task, oldest first."""
        return self.store.find_where(Collection.HISTORY, {"task_id": task_id})

    def purge_tasks(self, task_ids: Iterable[TaskId]) -> int:
        """Deletes the history of the given tasks. Only used by task/project deletion."""
        ids = list(task_ids)
        if not ids:
            return 0
        removed = self.store.delete_many(Collection.HISTORY, {"task_id": ids})
        logger.debug("Purged %d history entries for %d task(s)", removed, len(ids))
        return removed
