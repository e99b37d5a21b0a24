from typing import NewType
from dataclasses import dataclass
from datetime import datetime

from taskboard.domain.enums import ChangeType, HistoryField
from taskboard.domain.task import TaskId
from taskboard.domain.user import UserId

HistoryId = NewType("HistoryId", str)


@dataclass(frozen=True)
class HistoryEntry:
    """
    One append-only audit record for a task.

    - `field_name`, `old_value`, `new_value` are set for Update entries,
    - `new_value` carries the creation message for Create entries,
    - `comment` is set only for Comment entries.
    """
    history_id: HistoryId
    task_id: TaskId
    user_id: UserId
    change_type: ChangeType
    change_date: datetime
    field_name: HistoryField | None = None
    old_value: str | None = None
    new_value: str | None = None
    comment: str | None = None
