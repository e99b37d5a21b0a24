import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterator, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from taskboard.adapters.memory.cache import InMemoryCache
from taskboard.adapters.memory.entity_store import InMemoryEntityStore
from taskboard.adapters.sql.entity_store import SqlEntityStore
from taskboard.adapters.system.clock_system import SystemClock
from taskboard.adapters.system.id_provider_uuid import UuidIdProvider
from taskboard.api.colors import StatusColor
from taskboard.config import Settings
from taskboard.domain.enums import ChangeType, TaskPriority, TaskStatus, UserRole
from taskboard.domain.errors import (
    BusinessRuleViolation,
    DomainError,
    InvalidStatusError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from taskboard.domain.history import HistoryEntry
from taskboard.domain.project import ProjectId
from taskboard.domain.task import NewTask, Task, TaskId
from taskboard.domain.timefmt import encode_utc, parse_utc
from taskboard.domain.user import UserId
from taskboard.logging_setup import setup_logging
from taskboard.services.history_recorder import HistoryRecorder
from taskboard.services.project_service import ProjectService
from taskboard.services.report_service import ReportService
from taskboard.services.task_limit_guard import TaskLimitGuard
from taskboard.services.task_service import TaskService
from taskboard.services.user_service import UserService


### COMMENTS
# ==========================================================
# CLI (Typer + Rich) - the request-handling layer of taskboard.
# ==========================================================
# - Maps commands onto service calls; no business logic here.
# - Resolves the actor (--actor / TASKBOARD_ACTOR) before every task,
#   project and report command.
# - Catches DomainError, prints a red panel and exits with code 1.
# - Dependencies are built once per process in the callback.


app = Typer(help="Taskboard: projects, tasks and their audit history")
user_app = Typer(help="Manage users")
project_app = Typer(help="Manage projects")
task_app = Typer(help="Manage tasks, comments and history")
report_app = Typer(help="Reports built from the task history")
app.add_typer(user_app, name="user")
app.add_typer(project_app, name="project")
app.add_typer(task_app, name="task")
app.add_typer(report_app, name="report")

console = Console()


@dataclass
class Services:
    users: UserService
    projects: ProjectService
    tasks: TaskService
    reports: ReportService


services: Services | None = None  # set in the callback
actor_id: str | None = None


def build_services(settings: Settings) -> Services:
    """Wires the adapters chosen by the settings.
    - No database URL -> InMemory store (lives as long as the process)
    - Database URL -> SQL store (persistent)
    """
    if settings.database_url:
        store = SqlEntityStore(settings.database_url)
    else:
        store = InMemoryEntityStore()
    cache = InMemoryCache(settings.cache_ttl_seconds) if settings.cache_enabled else None
    clock, ids = SystemClock(), UuidIdProvider()

    history = HistoryRecorder(store, ids, clock)
    guard = TaskLimitGuard(store, settings.task_limit)
    return Services(
        users=UserService(store, ids, clock, cache=cache),
        projects=ProjectService(store, ids, clock, history=history, limit_guard=guard, cache=cache),
        tasks=TaskService(store, ids, clock, history=history, limit_guard=guard, cache=cache),
        reports=ReportService(store, clock, cache=cache, window_days=settings.report_window_days),
    )


@app.callback()
def main(
    db: Optional[str] = Option(
        None,
        "--db",
        help="SQLAlchemy database URL, e.g. sqlite:///taskboard.db (enables persistence)",
    ),
    actor: Optional[str] = Option(
        None,
        "--actor",
        "-a",
        envvar="TASKBOARD_ACTOR",
        help="ID of the user on whose behalf the command runs",
    ),
) -> None:
    """Bootstrap dependencies at process start."""
    global services, actor_id
    settings = Settings.from_env()
    if db:
        settings = replace(settings, database_url=db)
    setup_logging(settings.log_level, log_file=settings.log_file)
    services = build_services(settings)
    actor_id = actor


@contextmanager
def domain_errors() -> Iterator[None]:
    """Turns DomainError into a red panel and exit code 1."""
    try:
        yield
    except NotFoundError as e:
        _fail("Not found", e, "Use a 'list' command to find a valid ID")
    except BusinessRuleViolation as e:
        _fail("Not allowed", e)
    except (InvalidStatusError, InvalidTransitionError) as e:
        _fail("Invalid status", e, f"Allowed: {', '.join(s.value for s in TaskStatus)}")
    except ValidationError as e:
        _fail("Validation error", e)
    except DomainError as e:
        _fail("Domain error", e)


def _fail(title: str, error: Exception, hint: str | None = None) -> None:
    body = f"❌ {error}" + (f"\n[dim]{hint}[/]" if hint else "")
    console.print(Panel.fit(body, title=title, border_style="red"))
    raise Exit(code=1)


def _success(body: str, title: str = "Success", border_style: str = "green") -> None:
    console.print(Panel.fit(body, title=title, border_style=border_style))


def current_actor() -> UserId:
    """Resolves --actor into an existing user id (raises DomainError otherwise)."""
    return services.users.resolve_actor(actor_id).user_id


def short_id(entity_id: str, n: int = 8) -> str:
    """Shortened UUID for tables (first 8 characters)."""
    return entity_id[:n]


def color_status(status: TaskStatus) -> str:
    """Status as Rich markup with a color."""
    match status:
        case TaskStatus.PENDING:
            return f"{StatusColor.YELLOW}Pending{StatusColor.RESET}"
        case TaskStatus.IN_PROGRESS:
            return f"{StatusColor.BLUE}InProgress{StatusColor.RESET}"
        case TaskStatus.COMPLETED:
            return f"{StatusColor.GREEN}Completed{StatusColor.RESET}"
        case _:
            return str(status)


def color_priority(priority: TaskPriority) -> str:
    match priority:
        case TaskPriority.HIGH:
            return f"{StatusColor.RED}High{StatusColor.RESET}"
        case TaskPriority.MEDIUM:
            return f"{StatusColor.MAGENTA}Medium{StatusColor.RESET}"
        case _:
            return str(priority)


def _fmt_dt(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M")


def render_tasks(items: list[Task]) -> None:
    table = Table(show_lines=True, header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Title")
    table.add_column("Due", no_wrap=True, style="dim")
    table.add_column("Priority", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    for t in items:
        table.add_row(short_id(t.task_id), t.title, _fmt_dt(t.due_date), color_priority(t.priority), color_status(t.status))
    console.print(table)
    console.print(f"[dim]Total: {len(items)}[/dim]")


def render_task(task: Task) -> str:
    return "\n".join([
        f"ID: {task.task_id}",
        f"Title: {task.title}",
        f"Description: {task.description or '[dim]none[/]'}",
        f"Project: {task.project_id}",
        f"Due: {encode_utc(task.due_date)}",
        f"Priority: {color_priority(task.priority)}",
        f"Status: {color_status(task.status)}",
        f"Updated: {encode_utc(task.updated_at)}",
    ])


def describe_entry(entry: HistoryEntry) -> str:
    match entry.change_type:
        case ChangeType.CREATE:
            return entry.new_value or ""
        case ChangeType.COMMENT:
            return f"💬 {entry.comment}"
        case _:
            return f"{entry.field_name}: {entry.old_value} → {entry.new_value}"


def render_history(entries: list[HistoryEntry]) -> None:
    table = Table(show_lines=True, header_style="bold")
    table.add_column("When", no_wrap=True, style="dim")
    table.add_column("User", no_wrap=True, style="cyan")
    table.add_column("Type", no_wrap=True)
    table.add_column("Change")
    for h in entries:
        table.add_row(_fmt_dt(h.change_date), short_id(h.user_id), str(h.change_type), describe_entry(h))
    console.print(table)


def _parse_due(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return parse_utc(value)
    except ValueError as e:
        raise ValidationError("due_date", f"{value!r} is not an ISO 8601 date: {e}")


# ---------------------------------------------------------------- users

@user_app.command("add")
def user_add(
    name: str,
    email: str,
    role: UserRole = Option(UserRole.USER, "--role", "-r", case_sensitive=False),
) -> None:
    """Registers a user."""
    with domain_errors():
        user = services.users.create_user(name, email, role)
        _success(f"✅ User registered\n[cyan]ID:[/cyan] {user.user_id}\n[dim]Role:[/dim] {user.role}")


@user_app.command("list")
def user_list() -> None:
    with domain_errors():
        users = services.users.list_users()
    table = Table(header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Role", no_wrap=True)
    for u in users:
        table.add_row(u.user_id, u.name, u.email, str(u.role))
    console.print(table)


@user_app.command("update")
def user_update(
    user_id: str,
    name: str | None = Option(None, "--name"),
    email: str | None = Option(None, "--email"),
    role: UserRole | None = Option(None, "--role", case_sensitive=False),
) -> None:
    with domain_errors():
        user = services.users.update_user(UserId(user_id), name=name, email=email, role=role)
        _success(f"✅ User updated\n{user.name} <{user.email}> ({user.role})")


@user_app.command("rm")
def user_rm(user_id: str) -> None:
    with domain_errors():
        services.users.delete_user(UserId(user_id))
        _success(f"🟡 User removed\nID: {user_id}", title="Removed", border_style="yellow")


# ---------------------------------------------------------------- projects

@project_app.command("add")
def project_add(name: str, desc: str = Option(..., "--desc", "-d")) -> None:
    """Creates a project owned by the actor."""
    with domain_errors():
        project = services.projects.create_project(current_actor(), name, desc)
        _success(f"✅ Project created\n[cyan]ID:[/cyan] {project.project_id}\n[dim]Name:[/dim] {project.name}")


@project_app.command("list")
def project_list() -> None:
    """Lists the actor's projects with their task counts."""
    with domain_errors():
        summaries = services.projects.list_projects(current_actor())
    table = Table(header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Name")
    table.add_column("Tasks", justify="right")
    for s in summaries:
        table.add_row(s.project_id, s.name, str(s.task_count))
    console.print(table)


@project_app.command("show")
def project_show(project_id: str) -> None:
    with domain_errors():
        current_actor()
        details = services.projects.get_project(ProjectId(project_id))
    p = details.project
    console.print(Panel.fit(
        f"ID: {p.project_id}\nName: {p.name}\nDescription: {p.description}\nOwner: {p.owner_id}",
        title="Project",
        border_style="cyan",
    ))
    render_tasks(list(details.tasks))


@project_app.command("update")
def project_update(
    project_id: str,
    name: str | None = Option(None, "--name"),
    desc: str | None = Option(None, "--desc", "-d"),
) -> None:
    with domain_errors():
        current_actor()
        project = services.projects.update_project(ProjectId(project_id), name=name, description=desc)
        _success(f"✅ Project updated\n[dim]Name:[/dim] {project.name}")


@project_app.command("rm")
def project_rm(project_id: str) -> None:
    """Removes a project; refused while it has pending or in-progress tasks."""
    with domain_errors():
        current_actor()
        services.projects.delete_project(ProjectId(project_id))
        _success(f"🟡 Project removed\nID: {project_id}", title="Removed", border_style="yellow")


# ---------------------------------------------------------------- tasks

@task_app.command("add")
def task_add(
    project_id: str,
    title: str,
    due: str = Option(..., "--due", help="Due date, ISO 8601 (e.g. 2025-12-31T23:59:59Z)"),
    priority: TaskPriority = Option(TaskPriority.MEDIUM, "--priority", "-p", case_sensitive=False),
    desc: str | None = Option(None, "--desc", "-d"),
) -> None:
    """Creates a task (max tasks per project applies)."""
    with domain_errors():
        actor = current_actor()
        task = services.tasks.create_task(
            actor,
            ProjectId(project_id),
            NewTask(title=title, due_date=_parse_due(due), priority=priority, description=desc),
        )
        _success(f"✅ Task created\n[cyan]ID:[/cyan] {task.task_id}\n[dim]Title:[/dim] {task.title}")


@task_app.command("list")
def task_list(project_id: str) -> None:
    with domain_errors():
        current_actor()
        render_tasks(services.tasks.list_project_tasks(ProjectId(project_id)))


@task_app.command("show")
def task_show(task_id: str) -> None:
    with domain_errors():
        current_actor()
        task = services.tasks.get_task(TaskId(task_id))
    console.print(Panel.fit(render_task(task), title="Task", border_style="cyan"))


@task_app.command("update")
def task_update(
    task_id: str,
    title: str | None = Option(None, "--title"),
    desc: str | None = Option(None, "--desc", "-d"),
    due: str | None = Option(None, "--due"),
    status: str | None = Option(None, "--status", "-s"),
    priority: str | None = Option(None, "--priority", help="Ignored: priority is fixed at creation"),
) -> None:
    """Updates title, description, due date and/or status."""
    with domain_errors():
        actor = current_actor()
        data = {"title": title, "description": desc, "dueDate": _parse_due(due), "status": status}
        if priority is not None:
            data["priority"] = priority
            console.print("[dim]Priority cannot be changed after creation; ignoring --priority.[/]")
        task = services.tasks.update_fields(actor, TaskId(task_id), data)
        console.print(Panel.fit(render_task(task), title="Task updated", border_style="green"))


@task_app.command("status")
def task_status(task_id: str, status: str = Argument(..., help="Pending, InProgress or Completed")) -> None:
    with domain_errors():
        task = services.tasks.update_status(current_actor(), TaskId(task_id), status)
        _success(f"✅ {task.title}\nStatus: {color_status(task.status)}")


@task_app.command("comment")
def task_comment(task_id: str, text: str) -> None:
    with domain_errors():
        task = services.tasks.add_comment(current_actor(), TaskId(task_id), text)
        _success(f"💬 Comment added to {short_id(task.task_id)} ({task.title})")


@task_app.command("history")
def task_history(task_id: str) -> None:
    with domain_errors():
        current_actor()
        render_history(services.tasks.get_task_history(TaskId(task_id)))


@task_app.command("rm")
def task_rm(task_id: str) -> None:
    """Removes a task and its history."""
    with domain_errors():
        services.tasks.delete_task(current_actor(), TaskId(task_id))
        _success(f"🟡 Task removed\nID: {short_id(task_id)}", title="Removed", border_style="yellow")


# ---------------------------------------------------------------- reports

@report_app.command("performance")
def report_performance() -> None:
    """Tasks completed in the report window (Managers only)."""
    with domain_errors():
        report = services.reports.get_performance_report(current_actor())
    table = Table(title="Performance", header_style="bold")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Tasks completed", str(report.total_tasks_completed))
    table.add_row("Users who completed tasks", str(report.distinct_users_who_completed_tasks))
    table.add_row("Average per user", f"{report.average_tasks_completed_per_user:.2f}")
    console.print(table)
    console.print(f"[dim]Generated at {encode_utc(report.generated_at)}[/dim]")


@app.command("demo")
def demo() -> None:
    """
    Walk-through in one process:
    - registers a manager and a user,
    - creates a project with 3 tasks,
    - changes fields (priority change is ignored), completes and comments,
    - shows the history and the performance report.
    """
    console.print(Panel.fit("🚀 Demo start", border_style="cyan"))
    with domain_errors():
        run = uuid.uuid4().hex[:8]  # unique emails when the demo runs against a persistent db
        manager = services.users.create_user("Maria Manager", f"manager-{run}@example.com", UserRole.MANAGER)
        dev = services.users.create_user("Dev One", f"dev-{run}@example.com")

        project = services.projects.create_project(dev.user_id, "Website", "Company website relaunch")
        due = parse_utc("2030-01-31T17:00:00Z")
        t1 = services.tasks.create_task(dev.user_id, project.project_id, NewTask("Design mockups", due, TaskPriority.HIGH))
        t2 = services.tasks.create_task(dev.user_id, project.project_id, NewTask("Write copy", due, TaskPriority.LOW))
        services.tasks.create_task(dev.user_id, project.project_id, NewTask("Set up hosting", due, TaskPriority.MEDIUM))

        console.print("\n📋 Tasks after creation:")
        render_tasks(services.tasks.list_project_tasks(project.project_id))

        services.tasks.update_fields(dev.user_id, t1.task_id, {"title": "Design mockups v2", "priority": "Low"})
        services.tasks.update_status(dev.user_id, t1.task_id, TaskStatus.IN_PROGRESS)
        services.tasks.update_status(dev.user_id, t1.task_id, TaskStatus.COMPLETED)
        services.tasks.update_status(dev.user_id, t2.task_id, TaskStatus.COMPLETED)
        services.tasks.add_comment(dev.user_id, t1.task_id, "Approved by the client")

        console.print("\n🧾 History of the first task:")
        render_history(services.tasks.get_task_history(t1.task_id))

        report = services.reports.get_performance_report(manager.user_id)
        console.print(Panel.fit(
            f"Completed: {report.total_tasks_completed}\n"
            f"Users: {report.distinct_users_who_completed_tasks}\n"
            f"Average: {report.average_tasks_completed_per_user:.2f}",
            title="Performance report",
            border_style="green",
        ))
    console.print(Panel.fit("🏁 Demo finished", border_style="cyan"))


if __name__ == "__main__":
    app()
