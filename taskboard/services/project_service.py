import logging

from taskboard.domain.enums import Collection, TaskStatus
from taskboard.domain.errors import ProjectHasActiveTasksError, ProjectNotFoundError
from taskboard.domain.project import Project, ProjectDetails, ProjectId, ProjectSummary, summarize
from taskboard.domain.user import UserId
from taskboard.domain.validation import require_text
from taskboard.ports.cache import PERFORMANCE_REPORT_KEY, Cache
from taskboard.ports.clock import Clock
from taskboard.ports.entity_store import EntityStore
from taskboard.ports.id_provider import IdProvider
from taskboard.services.history_recorder import HistoryRecorder
from taskboard.services.task_limit_guard import TaskLimitGuard

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)


class ProjectService:
    """
    Use cases for projects.

    :param store: EntityStore port implementation.
    :param history: Used to purge the history of tasks removed with a project.
    :param limit_guard: Provides the live task count shown in summaries.
    :param cache: Optional cache; the performance report key is dropped when a deletion purges history.
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

    def _require_project(self, project_id: ProjectId) -> Project:
        project = self.store.find_by_id(Collection.PROJECTS, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def create_project(self, actor_id: UserId, name: str, description: str) -> Project:
        """
        Creates a project owned by `actor_id`.

        :raises ValidationError: When `name` or `description` is blank.
        """
        name = require_text("name", name)
        description = require_text("description", description)
        now = self.clock.now()
        project = Project(
            project_id=ProjectId(self.id_provider.new_id()),
            name=name,
            description=description,
            owner_id=actor_id,
            created_at=now,
            updated_at=now,
        )
        self.store.insert(Collection.PROJECTS, project)
        logger.info("Project %s created by %s", project.project_id, actor_id)
        return project

    def list_projects(self, actor_id: UserId) -> list[ProjectSummary]:
        """Projects owned by `actor_id`, each with its current task count."""
        projects = self.store.find_where(Collection.PROJECTS, {"owner_id": actor_id})
        return [summarize(p, self.limit_guard.count_tasks(p.project_id)) for p in projects]

    def get_project(self, project_id: ProjectId) -> ProjectDetails:
        project = self._require_project(project_id)
        tasks = self.store.find_where(Collection.TASKS, {"project_id": project_id})
        return ProjectDetails(project=project, tasks=tuple(tasks))

    def count_tasks(self, project_id: ProjectId) -> int:
        self._require_project(project_id)
        return self.limit_guard.count_tasks(project_id)

    def update_project(
        self,
        project_id: ProjectId,
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> Project:
        """
        Renames or re-describes a project. Owner and id never change.

        :raises ProjectNotFoundError: When the project does not exist.
        :raises ValidationError: When a present value is blank.
        """
        self._require_project(project_id)
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = require_text("name", name)
        if description is not None:
            changes["description"] = require_text("description", description)
        changes["updated_at"] = self.clock.now()

        updated = self.store.update_by_id(Collection.PROJECTS, project_id, changes)
        if updated is None:
            raise ProjectNotFoundError(project_id)
        return updated

    def delete_project(self, project_id: ProjectId) -> Project:
        """
        Removes a project with all of its tasks and their history.

        :raises ProjectNotFoundError: When the project does not exist.
        :raises ProjectHasActiveTasksError: When a task is still Pending or InProgress.
        :return: The removed `Project`.
        """
        self._require_project(project_id)
        active = self.store.count_where(
            Collection.TASKS, {"project_id": project_id, "status": ACTIVE_STATUSES}
        )
        if active:
            logger.warning("Project %s not removed: %d active task(s)", project_id, active)
            raise ProjectHasActiveTasksError(project_id)

        task_ids = [t.task_id for t in self.store.find_where(Collection.TASKS, {"project_id": project_id})]
        purged = self.history.purge_tasks(task_ids)
        if purged and self.cache is not None:
            self.cache.invalidate(PERFORMANCE_REPORT_KEY)
        self.store.delete_many(Collection.TASKS, {"project_id": project_id})
        removed = self.store.delete_by_id(Collection.PROJECTS, project_id)
        if removed is None:
            raise ProjectNotFoundError(project_id)
        logger.info("Project %s deleted with %d task(s)", project_id, len(task_ids))
        return removed
