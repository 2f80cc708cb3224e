import asyncio
from dataclasses import replace
from datetime import datetime
from math import ceil
from typing import Optional

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from typer import Exit, Option, Typer

from taskmanager.adapters.sql.task_repo import SqlTaskRepository
from taskmanager.api.colors import TaskColor
from taskmanager.api.http.app import create_app
from taskmanager.core.config import load_settings
from taskmanager.core.logging_setup import setup_logging
from taskmanager.domain.enums import TaskPriority, TaskStatus
from taskmanager.domain.errors import (
    DomainError,
    TaskAuthorizationError,
    TaskNotFoundError,
    TaskValidationError,
)
from taskmanager.domain.filters import TaskFilters
from taskmanager.domain.task import Task
from taskmanager.services.task_service import MAX_PAGE_SIZE, UNSET, TaskPatch, TaskService


### COMMENTS
# ==========================================================
# CLI (Typer + Rich) — narzędzie operatorskie nad TaskService.
# ==========================================================
# Rola:
# - Mapuje komendy na metody TaskService (add/list/show/update/done/rm/stats).
# - `serve` uruchamia API HTTP (uvicorn).
# - Łapie DomainError i drukuje przyjazne komunikaty.
#
# Zasady:
# - Zero logiki biznesowej — deleguj do TaskService.
# - Każda komenda otwiera repozytorium SQL i zamyka je po sobie (async with).


app = Typer(help="Task Manager CLI")
console = Console()

_db_url: Optional[str] = None  # ustawiane w callbacku


@app.callback()
def main(
    db: Optional[str] = Option(
        None,
        "--db",
        help="URL bazy SQLAlchemy (domyślnie z TASKMANAGER_DATABASE_URL)",
    )
) -> None:
    """Wybór bazy na starcie procesu CLI."""
    global _db_url
    _db_url = db or load_settings().database_url


def run_with_service(operation):
    """Otwiera repozytorium, wykonuje `operation(service)` i zamyka połączenie."""
    async def runner():
        async with SqlTaskRepository(_db_url) as repo:
            return await operation(TaskService(repo))
    return asyncio.run(runner())


def color_status(status: TaskStatus) -> str:
    """Zwraca status w Rich-markup z kolorem."""
    match status:
        case TaskStatus.PENDING:
            return f"{TaskColor.RED}pending{TaskColor.RESET}"
        case TaskStatus.IN_PROGRESS:
            return f"{TaskColor.BLUE}in_progress{TaskColor.RESET}"
        case TaskStatus.COMPLETED:
            return f"{TaskColor.GREEN}completed{TaskColor.RESET}"
        case _:
            return str(status)


def color_priority(priority: TaskPriority) -> str:
    match priority:
        case TaskPriority.HIGH:
            return f"{TaskColor.RED}high{TaskColor.RESET}"
        case TaskPriority.LOW:
            return f"{TaskColor.DIM}low{TaskColor.RESET}"
        case _:
            return str(priority)


def format_due(task: Task) -> str:
    if task.due_date is None:
        return "-"
    due = task.due_date.strftime("%Y-%m-%d %H:%M")
    if task.is_overdue():
        return f"{TaskColor.RED}{due} !{TaskColor.RESET}"
    return due


def render_list(items: list[Task], total: int, page: int, page_size: int) -> None:
    """Renderuje tabelę Rich z kolumnami: ID, Title, Status, Priority, Due + stopką paginacji."""

    table = Table(show_lines=True, header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Title")
    table.add_column("Status", no_wrap=True)
    table.add_column("Priority", no_wrap=True)
    table.add_column("Due", no_wrap=True)
    table.add_column("Created At", no_wrap=True, style="dim")

    for t in items:
        table.add_row(
            str(t.id),
            t.title,
            color_status(t.status),
            color_priority(t.priority),
            format_due(t),
            t.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    pages = max(1, ceil(total / page_size)) if page_size > 0 else 1

    console.print(table)
    console.print(f"[dim]Page {page}/{pages} • Total: {total} • Page size: {page_size}[/dim]")


def print_error(e: DomainError) -> None:
    if isinstance(e, TaskValidationError):
        title = "Validation error"
    elif isinstance(e, TaskNotFoundError):
        title = "Not found"
    elif isinstance(e, TaskAuthorizationError):
        title = "Forbidden"
    else:
        title = "Domain error"
    console.print(Panel.fit(f"❌ {e}", title=title, border_style="red"))


def print_task(task: Task, heading: str, border_style: str = "green") -> None:
    lines = [
        f"[cyan]ID:[/cyan] {task.id}",
        f"[dim]Title:[/dim] {task.title}",
        f"[dim]Description:[/dim] {task.description or '[dim]-[/]'}",
        f"Status: {color_status(task.status)}",
        f"Priority: {color_priority(task.priority)}",
        f"Due: {format_due(task)}",
        f"[dim]Created:[/dim] {task.created_at.isoformat()}",
        f"[dim]Updated:[/dim] {task.updated_at.isoformat()}",
    ]
    console.print(Panel.fit("\n".join(lines), title=heading, border_style=border_style))


def _parse_due(due: Optional[str]) -> Optional[datetime]:
    if due is None:
        return None
    try:
        return datetime.fromisoformat(due)
    except ValueError:
        raise TaskValidationError("due_date", f"Invalid date '{due}', expected ISO 8601")


@app.command("add")
def add(
    title: str,
    user: int = Option(..., "--user", "-u"),
    desc: Optional[str] = Option(None, "--desc", "-d"),
    priority: Optional[str] = Option(None, "--priority", "-p"),
    due: Optional[str] = Option(None, "--due", help="ISO 8601, np. 2025-01-31T18:00"),
) -> None:
    """Dodaje nowe zadanie."""
    try:
        task = run_with_service(lambda s: s.create_task(
            title, user, description=desc, priority=priority, due_date=_parse_due(due)
        ))
        print_task(task, "Task created")
    except DomainError as e:
        print_error(e)
        raise Exit(1)


@app.command("list")
def list_cmd(
    user: int = Option(..., "--user", "-u"),
    status: Optional[str] = Option(None, "--status"),
    priority: Optional[str] = Option(None, "--priority"),
    overdue: bool = Option(False, "--overdue"),
    page: int = Option(1, "--page", min=1),
    page_size: int = Option(20, "--page-size", "-s", min=1, max=MAX_PAGE_SIZE),
) -> None:
    """Listuje zadania użytkownika z filtrami i paginacją."""
    try:
        filters = TaskFilters(status=status, priority=priority, overdue=overdue or None)
        items, total = run_with_service(
            lambda s: s.list_tasks_page(user, filters, page=page, page_size=page_size)
        )
        render_list(items, total, page, page_size)
    except DomainError as e:
        print_error(e)
        raise Exit(1)


@app.command("show")
def show(task_id: int, user: int = Option(..., "--user", "-u")) -> None:
    """Pokazuje szczegóły pojedynczego zadania."""
    try:
        task = run_with_service(lambda s: s.get_task(task_id, user))
        print_task(task, "Task details", border_style="cyan")
    except DomainError as e:
        print_error(e)
        raise Exit(1)


@app.command("update")
def update(
    task_id: int,
    user: int = Option(..., "--user", "-u"),
    title: Optional[str] = Option(None, "--title", "-t"),
    desc: Optional[str] = Option(None, "--desc", "-d"),
    status: Optional[str] = Option(None, "--status"),
    priority: Optional[str] = Option(None, "--priority", "-p"),
    due: Optional[str] = Option(None, "--due"),
    clear_due: bool = Option(False, "--clear-due"),
) -> None:
    """Aktualizuje podane pola zadania (pozostałe bez zmian)."""
    try:
        if clear_due and due is not None:
            raise TaskValidationError("due_date", "Use either --due or --clear-due, not both")
        patch = TaskPatch(
            title=title if title is not None else UNSET,
            description=desc if desc is not None else UNSET,
            status=status if status is not None else UNSET,
            priority=priority if priority is not None else UNSET,
            due_date=None if clear_due else (_parse_due(due) if due is not None else UNSET),
        )
        task = run_with_service(lambda s: s.update_task(task_id, user, patch))
        print_task(task, "Task updated")
    except DomainError as e:
        print_error(e)
        raise Exit(1)


@app.command("done")
def done(task_id: int, user: int = Option(..., "--user", "-u")) -> None:
    """Przełącza ukończenie zadania (completed ↔ pending)."""
    try:
        task = run_with_service(lambda s: s.toggle_complete(task_id, user))
        print_task(task, "Status changed", border_style="yellow")
    except DomainError as e:
        print_error(e)
        raise Exit(1)


@app.command("rm")
def rm(task_id: int, user: int = Option(..., "--user", "-u")) -> None:
    """Usuwa zadanie na stałe."""
    try:
        run_with_service(lambda s: s.delete_task(task_id, user))
        console.print(Panel.fit(f"🟡 Task deleted\nID: {task_id}", title="Deleted", border_style="yellow"))
    except DomainError as e:
        print_error(e)
        raise Exit(1)


@app.command("stats")
def stats(user: int = Option(..., "--user", "-u")) -> None:
    """Statystyki zadań użytkownika."""
    try:
        result = run_with_service(lambda s: s.get_task_stats(user))
    except DomainError as e:
        print_error(e)
        raise Exit(1)

    table = Table(header_style="bold")
    table.add_column("Total")
    table.add_column("Pending")
    table.add_column("In progress")
    table.add_column("Completed")
    table.add_column("Overdue")
    table.add_row(
        str(result.total),
        f"{TaskColor.RED}{result.pending}{TaskColor.RESET}",
        f"{TaskColor.BLUE}{result.in_progress}{TaskColor.RESET}",
        f"{TaskColor.GREEN}{result.completed}{TaskColor.RESET}",
        f"{TaskColor.YELLOW}{result.overdue}{TaskColor.RESET}",
    )
    console.print(table)


@app.command("serve")
def serve(
    host: Optional[str] = Option(None, "--host"),
    port: Optional[int] = Option(None, "--port"),
) -> None:
    """Uruchamia API HTTP (FastAPI + uvicorn)."""
    settings = replace(load_settings(), database_url=_db_url)
    setup_logging(log_dir=settings.log_dir, console_level=settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    app()
