from typing import NewType, Mapping
from datetime import datetime
from dataclasses import dataclass

from taskboard.domain.enums import TaskStatus, TaskPriority
from taskboard.domain.errors import ValidationError
from taskboard.domain.project import ProjectId
from taskboard.domain.timefmt import parse_utc

TaskId = NewType("TaskId", str)


@dataclass(frozen=True)
class Task:
    """
    Domain model of a single task; immutable; `priority` is fixed at creation
    and no service path replaces it. Times are aware UTC, supplied by the service.
    """
    task_id: TaskId
    project_id: ProjectId
    title: str
    priority: TaskPriority
    due_date: datetime
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    status: TaskStatus = TaskStatus.PENDING


@dataclass(frozen=True)
class NewTask:
    """Input of the create operation. `status` is not accepted: new tasks start as Pending."""
    title: str
    due_date: datetime
    priority: TaskPriority | str
    description: str | None = None


# Keys accepted by TaskPatch.from_dict -> attribute name.
_PATCH_KEYS = {
    "title": "title",
    "description": "description",
    "due_date": "due_date",
    "dueDate": "due_date",
    "status": "status",
}


@dataclass(frozen=True)
class TaskPatch:
    """
    Partial update of the mutable task attributes.

    `None` means "not present". There is deliberately no `priority` field;
    `status` stays raw until the service validates it, so a bad value is
    reported as an invalid status rather than a type error.

    Text is normalised on the way in, the same as at creation: `title` and
    `description` are stripped of surrounding whitespace before they are
    compared and stored, so history records the stripped value. An empty
    `description` after stripping is a real value, not "absent".
    """
    title: str | None = None
    description: str | None = None
    due_date: datetime | None = None
    status: TaskStatus | str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "TaskPatch":
        """
        Builds a patch from an untyped mapping (request body, CLI options).

        - `priority` and unknown keys are dropped,
        - `dueDate`/`due_date` is parsed as ISO 8601 UTC.

        :raises ValidationError: When the due date cannot be parsed.
        """
        values: dict[str, object] = {}
        for key, raw in data.items():
            attr = _PATCH_KEYS.get(key)
            if attr is None or raw is None:
                continue
            if attr == "due_date":
                try:
                    raw = parse_utc(raw)
                except (TypeError, ValueError) as e:
                    raise ValidationError("due_date", str(e))
            values[attr] = raw
        return cls(**values)

    def is_empty(self) -> bool:
        return all(v is None for v in (self.title, self.description, self.due_date, self.status))
