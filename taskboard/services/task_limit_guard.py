import logging

from taskboard.config import DEFAULT_TASK_LIMIT
from taskboard.domain.enums import Collection
from taskboard.domain.errors import TaskLimitReachedError
from taskboard.domain.project import ProjectId
from taskboard.ports.entity_store import EntityStore

logger = logging.getLogger(__name__)


class TaskLimitGuard:
    """
    Caps the number of tasks per project.

    The count is read live from the store on every call, never cached.
    Check and insert are two separate steps (read then decide): two concurrent
    creates may both see `limit - 1` and both succeed.
    """
    def __init__(self, store: EntityStore, limit: int = DEFAULT_TASK_LIMIT) -> None:
        self.store = store
        self.limit = limit

    def count_tasks(self, project_id: ProjectId) -> int:
        return self.store.count_where(Collection.TASKS, {"project_id": project_id})

    def ensure_capacity(self, project_id: ProjectId) -> int:
        """
        :raises TaskLimitReachedError: When the project already holds `limit` tasks.
        :return: The current task count.
        """
        count = self.count_tasks(project_id)
        if count >= self.limit:
            logger.warning("Project %s rejected a new task: %d/%d tasks", project_id, count, self.limit)
            raise TaskLimitReachedError(project_id, self.limit)
        return count
