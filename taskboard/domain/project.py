from typing import NewType
from dataclasses import dataclass
from datetime import datetime

from taskboard.domain.user import UserId

ProjectId = NewType("ProjectId", str)


@dataclass(frozen=True)
class Project:
    """
    A project owned by one user. Tasks point back to it through `project_id`;
    the number of tasks is never stored here, it is counted on demand.
    """
    project_id: ProjectId
    name: str
    description: str
    owner_id: UserId
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ProjectSummary:
    project_id: ProjectId
    name: str
    task_count: int


@dataclass(frozen=True)
class ProjectDetails:
    project: Project
    tasks: tuple


def summarize(project: Project, task_count: int) -> ProjectSummary:
    return ProjectSummary(project_id=project.project_id, name=project.name, task_count=task_count)
