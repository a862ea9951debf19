"""CLI commands for the todo list."""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence

import click
from rich.table import Table

from taskly.cli.common import console, error_console, get_data_dir, load_config
from taskly.cli.menu import ask_text, choose, label, menu_session
from taskly.todo.manager import TodoError, TodoManager, parse_deadline
from taskly.todo.models import DEADLINE_FORMAT, PRIORITIES, STATUSES, TodoTask
from taskly.tracking.models import ms_to_datetime

STATUS_STYLES = {"pending": "yellow", "done": "green", "in-progress": "blue"}
PRIORITY_STYLES = {"low": "green", "medium": "yellow", "high": "red"}

TODO_MENU = [
    "Add a Task",
    "List Tasks",
    "Mark As Done",
    "Delete Tasks",
    "Priority Tasks",
    "Search And Filters",
    "Back",
]


def status_label(status: str) -> str:
    return label(status, STATUS_STYLES.get(status, "white"))


def priority_label(priority: str) -> str:
    return label(priority, PRIORITY_STYLES.get(priority, "white"))


def get_manager(data_dir: Optional[Path] = None) -> TodoManager:
    """Get TodoManager instance with optional custom data directory."""
    return TodoManager(data_dir)


def print_tasks(tasks: Sequence[TodoTask], title: str = "Tasks") -> None:
    """Render tasks as a table."""
    table = Table(title=f"{title} ({len(tasks)})")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Task", style="bold")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Deadline")
    table.add_column("Created", style="dim")

    for task in tasks:
        table.add_row(
            str(task.id),
            label(task.task),
            status_label(task.status),
            priority_label(task.priority),
            task.last_day or "-",
            ms_to_datetime(task.time).strftime(DEADLINE_FORMAT) if task.time else "-",
        )

    console.print(table)


def _pick_task(manager: TodoManager, message: str, priority: bool = False) -> Optional[int]:
    tasks = manager.list_tasks()
    if not tasks:
        return None
    options = [
        f"{label(t.task)} ({priority_label(t.priority) if priority else status_label(t.status)})"
        for t in tasks
    ]
    return choose(message, options, values=[t.id for t in tasks])


def _ask_deadline() -> str:
    now = datetime.now()
    while True:
        answer = ask_text(
            f"Enter the deadline (YYYY-MM-DD HH:MM) (Now: {now.strftime(DEADLINE_FORMAT)})"
        )
        try:
            return parse_deadline(answer, now)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")


def todo_menu(obj: Optional[dict[str, Any]]) -> None:
    """Interactive todo menu; loops until Back."""
    data_dir = get_data_dir(obj)
    manager = get_manager(data_dir)

    while True:
        choice = choose("Todo Options", TODO_MENU)
        try:
            if choice == "Add a Task":
                text = ask_text("Enter a new task")
                priority = choose("Select Priority:", list(PRIORITIES))
                task = manager.add(text, priority, _ask_deadline())
                console.print(
                    f"[yellow]Task[/yellow] {label(task.task, 'green')} "
                    f"[yellow]added with[/yellow] {priority_label(priority)} [yellow]priority![/yellow]"
                )

            elif choice == "List Tasks":
                print_tasks(manager.list_tasks())

            elif choice == "Mark As Done":
                task_id = _pick_task(manager, "Select Task to mark As done")
                if task_id is None:
                    console.print("[red]No tasks Available to Mark As Done[/red]")
                    continue
                task = manager.mark_done(task_id)
                console.print(f'[green]Task "{label(task.task)}" marked as done[/green]')

            elif choice == "Delete Tasks":
                task_id = _pick_task(manager, "Select a task to delete")
                if task_id is None:
                    console.print("No tasks available for deletion.")
                    continue
                task = manager.delete(task_id)
                console.print(f"{label(task.task)} ({status_label(task.status)}) has been deleted.")

            elif choice == "Priority Tasks":
                task_id = _pick_task(manager, "Select a task to change the Priority", priority=True)
                if task_id is None:
                    console.print("No task Available")
                    continue
                priority = choose("Select Priority for The Task", list(PRIORITIES))
                task = manager.set_priority(task_id, priority)
                console.print(
                    f"{label(task.task, 'green')} priority has been updated to {priority_label(priority)}"
                )

            elif choice == "Search And Filters":
                search_tasks(data_dir, ask_text("Search your tasks"))

            else:
                return

        except (TodoError, ValueError) as e:
            error_console.print(f"[red]Error:[/red] {label(str(e))}")


def search_tasks(data_dir: Optional[Path], query: str, threshold: Optional[float] = None) -> None:
    """Fuzzy search tasks and print the matches."""
    manager = get_manager(data_dir)
    if threshold is None:
        threshold = load_config(data_dir).get("todo.search_threshold", 0.3)

    if not manager.list_tasks():
        console.print("No tasks available")
        return

    results = manager.search(query, threshold=threshold)
    if not results:
        console.print("[yellow]No matching tasks found.[/yellow]")
        return
    print_tasks(results, title=f'Matches for "{label(query)}"')


@click.group(invoke_without_command=True)
@click.pass_context
def todo(ctx: click.Context) -> None:
    """Manage the todo list.

    Without a subcommand, opens the interactive todo menu.
    """
    if ctx.invoked_subcommand is None:
        with menu_session():
            todo_menu(ctx.obj)


@todo.command("add")
@click.argument("task")
@click.option(
    "-p", "--priority", type=click.Choice(PRIORITIES), default="low", help="Task priority"
)
@click.option("-d", "--deadline", default="", help='Deadline "YYYY-MM-DD HH:MM"')
@click.pass_context
def todo_add(ctx: click.Context, task: str, priority: str, deadline: str) -> None:
    """Add a task.

    Example:
        taskly todo add "Write report" -p high -d "2030-01-31 17:00"
    """
    try:
        created = get_manager(get_data_dir(ctx.obj)).add(task, priority, deadline)
    except (TodoError, ValueError) as e:
        error_console.print(f"[red]Error:[/red] {label(str(e))}")
        sys.exit(1)

    console.print(
        f"[green]✓[/green] Task {created.id} added: {label(created.task)} "
        f"({priority_label(created.priority)})"
    )


@todo.command("list")
@click.option("-s", "--status", type=click.Choice(STATUSES), help="Only show this status")
@click.pass_context
def todo_list(ctx: click.Context, status: Optional[str]) -> None:
    """List tasks."""
    try:
        tasks = get_manager(get_data_dir(ctx.obj)).list_tasks()
    except TodoError as e:
        error_console.print(f"[red]Error:[/red] {label(str(e))}")
        sys.exit(1)

    if status:
        tasks = [t for t in tasks if t.status == status]
    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return
    print_tasks(tasks)


def _update(ctx: click.Context, action: str, task_id: int, *args: str) -> None:
    manager = get_manager(get_data_dir(ctx.obj))
    try:
        task = getattr(manager, action)(task_id, *args)
    except (TodoError, ValueError) as e:
        error_console.print(f"[red]Error:[/red] {label(str(e))}")
        sys.exit(1)
    console.print(
        f"[green]✓[/green] {label(task.task)} ({status_label(task.status)}, "
        f"{priority_label(task.priority)})"
    )


@todo.command("done")
@click.argument("task_id", type=int)
@click.pass_context
def todo_done(ctx: click.Context, task_id: int) -> None:
    """Mark a task as done."""
    _update(ctx, "mark_done", task_id)


@todo.command("status")
@click.argument("task_id", type=int)
@click.argument("status", type=click.Choice(STATUSES))
@click.pass_context
def todo_status(ctx: click.Context, task_id: int, status: str) -> None:
    """Set a task's status."""
    _update(ctx, "set_status", task_id, status)


@todo.command("priority")
@click.argument("task_id", type=int)
@click.argument("priority", type=click.Choice(PRIORITIES))
@click.pass_context
def todo_priority(ctx: click.Context, task_id: int, priority: str) -> None:
    """Change a task's priority."""
    _update(ctx, "set_priority", task_id, priority)


@todo.command("delete")
@click.argument("task_id", type=int)
@click.pass_context
def todo_delete(ctx: click.Context, task_id: int) -> None:
    """Delete a task."""
    try:
        task = get_manager(get_data_dir(ctx.obj)).delete(task_id)
    except TodoError as e:
        error_console.print(f"[red]Error:[/red] {label(str(e))}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Deleted: {label(task.task)}")


@todo.command("search")
@click.argument("query")
@click.option(
    "--threshold",
    type=click.FloatRange(0, 1),
    help="Match tolerance, 0 = exact substring only (default from config)",
)
@click.pass_context
def todo_search(ctx: click.Context, query: str, threshold: Optional[float]) -> None:
    """Fuzzy search tasks by text, status, priority or deadline."""
    try:
        search_tasks(get_data_dir(ctx.obj), query, threshold)
    except TodoError as e:
        error_console.print(f"[red]Error:[/red] {label(str(e))}")
        sys.exit(1)
