import pytest

from taskboard.domain.enums import Collection, TaskStatus
from taskboard.domain.errors import (
    BusinessRuleViolation,
    ProjectHasActiveTasksError,
    ProjectNotFoundError,
    ValidationError,
)
from taskboard.domain.project import ProjectId
from taskboard.ports.cache import PERFORMANCE_REPORT_KEY
from taskboard.services.project_service import ProjectService
from taskboard.services.report_service import ReportService


def test_create_project_is_owned_by_actor(projects, actor, clock):
    project = projects.create_project(actor.user_id, " Website ", "Relaunch")

    assert project.owner_id == actor.user_id
    assert project.name == "Website"
    assert project.created_at == clock.fixed


@pytest.mark.parametrize("name, description", [("", "desc"), ("name", "  ")])
def test_create_project_requires_name_and_description(projects, actor, name, description):
    with pytest.raises(ValidationError):
        projects.create_project(actor.user_id, name, description)


def test_list_projects_shows_live_task_count(projects, tasks, actor, manager, project, new_task):
    # Arrange
    tasks.create_task(actor.user_id, project.project_id, new_task())
    tasks.create_task(actor.user_id, project.project_id, new_task(title="two"))
    projects.create_project(manager.user_id, "Not mine", "Owned by someone else")

    # Act
    summaries = projects.list_projects(actor.user_id)

    # Assert
    assert len(summaries) == 1
    assert summaries[0].project_id == project.project_id
    assert summaries[0].task_count == 2
    assert projects.count_tasks(project.project_id) == 2


def test_get_project_includes_tasks(projects, tasks, actor, project, new_task):
    task = tasks.create_task(actor.user_id, project.project_id, new_task())

    details = projects.get_project(project.project_id)

    assert details.project == project
    assert [t.task_id for t in details.tasks] == [task.task_id]


def test_get_missing_project_raises_not_found(projects):
    with pytest.raises(ProjectNotFoundError):
        projects.get_project(ProjectId("missing"))


def test_update_project_changes_only_given_fields(projects, project, clock):
    clock.advance(minutes=3)

    updated = projects.update_project(project.project_id, description="New scope")

    assert updated.name == project.name
    assert updated.description == "New scope"
    assert updated.owner_id == project.owner_id
    assert updated.updated_at > project.updated_at


def test_delete_project_is_blocked_by_active_tasks(projects, tasks, actor, project, new_task, store):
    task = tasks.create_task(actor.user_id, project.project_id, new_task())
    tasks.update_status(actor.user_id, task.task_id, TaskStatus.IN_PROGRESS)

    with pytest.raises(BusinessRuleViolation) as exc:
        projects.delete_project(project.project_id)

    assert isinstance(exc.value, ProjectHasActiveTasksError)
    assert store.find_by_id(Collection.PROJECTS, project.project_id) is not None


def test_delete_project_cascades_tasks_and_history(projects, tasks, actor, project, new_task, store):
    # Arrange
    t1 = tasks.create_task(actor.user_id, project.project_id, new_task())
    t2 = tasks.create_task(actor.user_id, project.project_id, new_task(title="two"))
    tasks.update_status(actor.user_id, t1.task_id, TaskStatus.COMPLETED)
    tasks.update_status(actor.user_id, t2.task_id, TaskStatus.COMPLETED)
    other = projects.create_project(actor.user_id, "Other", "Stays")
    survivor = tasks.create_task(actor.user_id, other.project_id, new_task())

    # Act
    removed = projects.delete_project(project.project_id)

    # Assert
    assert removed.project_id == project.project_id
    assert store.find_by_id(Collection.PROJECTS, project.project_id) is None
    assert store.count_where(Collection.TASKS) == 1
    assert store.count_where(Collection.HISTORY, {"task_id": [t1.task_id, t2.task_id]}) == 0
    assert store.count_where(Collection.HISTORY, {"task_id": survivor.task_id}) == 1


def test_delete_empty_project(projects, project, store):
    projects.delete_project(project.project_id)

    assert store.count_where(Collection.PROJECTS) == 0


def test_deleting_a_project_drops_cached_report(store, ids, clock, cache, history, tasks, actor, manager, new_task):
    # Arrange
    service = ProjectService(store, ids, clock, history=history, cache=cache)
    cached_reports = ReportService(store, clock, cache=cache)
    doomed = service.create_project(actor.user_id, "Old site", "Retired")
    task = tasks.create_task(actor.user_id, doomed.project_id, new_task())
    tasks.update_status(actor.user_id, task.task_id, TaskStatus.COMPLETED)
    assert cached_reports.get_performance_report(manager.user_id).total_tasks_completed == 1

    # Act
    service.delete_project(doomed.project_id)

    # Assert
    with_cache = cached_reports.get_performance_report(manager.user_id)
    without_cache = ReportService(store, clock).get_performance_report(manager.user_id)
    assert with_cache == without_cache
    assert with_cache.total_tasks_completed == 0


def test_deleting_an_empty_project_keeps_cached_report(store, ids, clock, cache, project):
    service = ProjectService(store, ids, clock, cache=cache)
    cache.set(PERFORMANCE_REPORT_KEY, "cached")

    service.delete_project(project.project_id)

    assert cache.get(PERFORMANCE_REPORT_KEY) == "cached"
