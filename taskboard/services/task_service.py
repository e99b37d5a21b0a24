import logging
from datetime import datetime
from enum import Enum
from typing import Mapping

from taskboard.domain.enums import ChangeType, Collection, HistoryField, TaskStatus
from taskboard.domain.errors import ProjectNotFoundError, TaskNotFoundError, ValidationError
from taskboard.domain.history import HistoryEntry
from taskboard.domain.project import ProjectId
from taskboard.domain.task import NewTask, Task, TaskId, TaskPatch
from taskboard.domain.timefmt import encode_utc, parse_utc
from taskboard.domain.user import UserId
from taskboard.domain.validation import parse_priority, require_text, validate_status_transition
from taskboard.ports.cache import PERFORMANCE_REPORT_KEY, Cache
from taskboard.ports.clock import Clock
from taskboard.ports.entity_store import EntityStore
from taskboard.ports.id_provider import IdProvider
from taskboard.services.history_recorder import HistoryRecorder
from taskboard.services.task_limit_guard import TaskLimitGuard

logger = logging.getLogger(__name__)


### COMMENTS
# ==========================================================
# Task mutation engine (services/task_service.py).
# ==========================================================
# Every mutating use case runs: fetch -> validate -> diff -> write task -> write history.
# - All checks run before the first write; a failed check leaves the store untouched.
# - History is written after the task, so an entry never describes a write that did
#   not happen. Losing history after a successful task write is the accepted gap.
# - `priority` is set once in `create_task`; no other path puts it into a write.
# - Field changes are recorded one entry per field, in the order
#   Title, Description, DueDate, Status; unchanged fields record nothing.
# - The cached performance report is dropped whenever Completed entries may
#   have appeared or vanished: on a Status change and when history is purged.
# - The actor id is resolved and checked by the caller (UserService.resolve_actor).

# (history field, Task attribute), in audit order
_PATCH_FIELDS = (
    (HistoryField.TITLE, "title"),
    (HistoryField.DESCRIPTION, "description"),
    (HistoryField.DUE_DATE, "due_date"),
    (HistoryField.STATUS, "status"),
)


def _render(value: object) -> str | None:
    """String form of a field value as stored in history."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return encode_utc(value)
    if isinstance(value, Enum):
        return value.value
    return str(value)


class TaskService:
    """
    Use cases that create, change and remove tasks, plus their read side.

    :param store: EntityStore port implementation.
    :param id_provider: Source of task ids.
    :param clock: Source of `created_at`/`updated_at`.
    :param history: Recorder for audit entries (built from the same ports when omitted).
    :param limit_guard: Per-project task cap (default limit when omitted).
    :param cache: Optional cache; the performance report key is dropped on status changes
        and on task deletion.
    """
    def __init__(
        self,
        store: EntityStore,
        id_provider: IdProvider,
        clock: Clock,
        *,
        history: HistoryRecorder | None = None,
        limit_guard: TaskLimitGuard | None = None,
        cache: Cache | None = None,
    ) -> None:
        self.store = store
        self.id_provider = id_provider
        self.clock = clock
        self.history = history or HistoryRecorder(store, id_provider, clock)
        self.limit_guard = limit_guard or TaskLimitGuard(store)
        self.cache = cache

    def _require_task(self, task_id: TaskId) -> Task:
        task = self.store.find_by_id(Collection.TASKS, task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _invalidate_report(self) -> None:
        if self.cache is not None:
            self.cache.invalidate(PERFORMANCE_REPORT_KEY)

    def create_task(self, actor_id: UserId, project_id: ProjectId, data: NewTask) -> Task:
        """
        Creates a task in a project and records its Create entry.

        - Validation: non-blank title, due date required, priority Low/Medium/High.
        - The project must exist and hold fewer tasks than the limit.
        - Status starts as Pending; `priority` is fixed from here on.

        :raises ValidationError: When the input is malformed.
        :raises ProjectNotFoundError: When the project does not exist.
        :raises TaskLimitReachedError: When the project is full (nothing is written).
        :return: The created `Task`.
        """
        title = require_text("title", data.title)
        description = data.description.strip() if data.description is not None else None
        if data.due_date is None:
            raise ValidationError("due_date", "is required")
        try:
            due_date = parse_utc(data.due_date)
        except (TypeError, ValueError) as e:
            raise ValidationError("due_date", str(e))
        priority = parse_priority(data.priority)

        if self.store.find_by_id(Collection.PROJECTS, project_id) is None:
            raise ProjectNotFoundError(project_id)
        self.limit_guard.ensure_capacity(project_id)

        now = self.clock.now()
        task = Task(
            task_id=TaskId(self.id_provider.new_id()),
            project_id=project_id,
            title=title,
            description=description,
            priority=priority,
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )
        self.store.insert(Collection.TASKS, task)
        self.history.record(
            task.task_id,
            actor_id,
            ChangeType.CREATE,
            new_value=f"Task '{task.title}' was created.",
        )
        logger.info("Task %s created in project %s by %s", task.task_id, project_id, actor_id)
        return task

    def update_fields(self, actor_id: UserId, task_id: TaskId, patch: TaskPatch | Mapping[str, object]) -> Task:
        """
        Applies a partial update of title, description, due date and status.

        - A mapping is turned into a `TaskPatch`; a `priority` key in it is dropped.
        - `status`, when present, goes through `validate_status_transition` first;
          an invalid value or transition rejects the whole patch.
        - Each present field whose value differs records one Update entry
          (old/new rendered as strings); equal or absent fields record nothing.
        - `title` and `description` are compared and stored stripped, so padding
          alone never counts as a change (see `TaskPatch`).

        :raises TaskNotFoundError: When the task does not exist.
        :raises InvalidStatusError: When `status` is not a known value.
        :raises InvalidTransitionError: When a completed task would be reopened.
        :raises ValidationError: When a present title is blank.
        :return: The updated `Task`.
        """
        if not isinstance(patch, TaskPatch):
            if "priority" in patch:
                logger.debug("Ignoring priority in update of task %s: priority is immutable", task_id)
            patch = TaskPatch.from_dict(patch)

        task = self._require_task(task_id)

        proposed: dict[str, object] = {}
        if patch.title is not None:
            proposed["title"] = require_text("title", patch.title)
        if patch.description is not None:
            proposed["description"] = patch.description.strip()
        if patch.due_date is not None:
            try:
                proposed["due_date"] = parse_utc(patch.due_date)
            except (TypeError, ValueError) as e:
                raise ValidationError("due_date", str(e))
        if patch.status is not None:
            proposed["status"] = validate_status_transition(patch.status, task.status)

        changes = []
        for field_name, attr in _PATCH_FIELDS:
            if attr not in proposed:
                continue
            old, new = getattr(task, attr), proposed[attr]
            if old != new:
                changes.append((field_name, attr, old, new))

        values = {attr: new for _, attr, _, new in changes}
        values["updated_at"] = self.clock.now()
        updated = self.store.update_by_id(Collection.TASKS, task_id, values)
        if updated is None:
            raise TaskNotFoundError(task_id)

        for field_name, _, old, new in changes:
            self.history.record(
                task_id,
                actor_id,
                ChangeType.UPDATE,
                field_name=field_name,
                old_value=_render(old),
                new_value=_render(new),
            )
        if any(attr == "status" for _, attr, _, _ in changes):
            self._invalidate_report()

        logger.info(
            "Task %s updated by %s: %s",
            task_id,
            actor_id,
            ", ".join(str(f) for f, _, _, _ in changes) or "no changes",
        )
        return updated

    def update_status(self, actor_id: UserId, task_id: TaskId, new_status: TaskStatus | str) -> Task:
        """
        Moves a task to `new_status`.

        - Same status as now: no write, no history, the task is returned as is.
        - Otherwise one Update entry with field Status.

        :raises TaskNotFoundError: When the task does not exist.
        :raises InvalidStatusError: When `new_status` is not a known value.
        :raises InvalidTransitionError: When the task is Completed and `new_status` is not.
        :return: The (possibly unchanged) `Task`.
        """
        task = self._require_task(task_id)
        status = validate_status_transition(new_status, task.status)
        if status == task.status:
            return task

        updated = self.store.update_by_id(
            Collection.TASKS, task_id, {"status": status, "updated_at": self.clock.now()}
        )
        if updated is None:
            raise TaskNotFoundError(task_id)

        self.history.record(
            task_id,
            actor_id,
            ChangeType.UPDATE,
            field_name=HistoryField.STATUS,
            old_value=_render(task.status),
            new_value=_render(status),
        )
        self._invalidate_report()
        logger.info("Task %s status %s -> %s by %s", task_id, task.status, status, actor_id)
        return updated

    def add_comment(self, actor_id: UserId, task_id: TaskId, comment: str) -> Task:
        """
        Appends a Comment entry. The text is stored verbatim, blank text included.

        The task itself only gets its `updated_at` refreshed.

        :raises TaskNotFoundError: When the task does not exist.
        :raises ValidationError: When `comment` is missing (None).
        :return: The touched `Task`.
        """
        if comment is None:
            raise ValidationError("comment", "is required")
        self._require_task(task_id)

        updated = self.store.update_by_id(Collection.TASKS, task_id, {"updated_at": self.clock.now()})
        if updated is None:
            raise TaskNotFoundError(task_id)
        self.history.record(task_id, actor_id, ChangeType.COMMENT, comment=comment)
        logger.info("Comment added to task %s by %s", task_id, actor_id)
        return updated

    def delete_task(self, actor_id: UserId, task_id: TaskId) -> None:
        """
        Removes a task together with its history.

        History goes first: an interruption leaves orphaned entries, never a task
        whose audit trail was partly removed.

        :raises TaskNotFoundError: When the task does not exist.
        """
        self._require_task(task_id)
        removed = self.history.purge_tasks([task_id])
        if removed:
            self._invalidate_report()
        if self.store.delete_by_id(Collection.TASKS, task_id) is None:
            raise TaskNotFoundError(task_id)
        logger.info("Task %s deleted by %s (%d history entries)", task_id, actor_id, removed)

    def get_task(self, task_id: TaskId) -> Task:
        """
        :raises TaskNotFoundError: When the task does not exist.
        """
        return self._require_task(task_id)

    def list_project_tasks(self, project_id: ProjectId) -> list[Task]:
        """Tasks of one project, oldest first."""
        if self.store.find_by_id(Collection.PROJECTS, project_id) is None:
            raise ProjectNotFoundError(project_id)
        return self.store.find_where(Collection.TASKS, {"project_id": project_id})

    def get_task_history(self, task_id: TaskId) -> list[HistoryEntry]:
        self._require_task(task_id)
        return self.history.list_for_task(task_id)
