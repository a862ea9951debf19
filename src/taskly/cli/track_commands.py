"""CLI commands for background time tracking."""

import json
import sys
from pathlib import Path
from typing import Any, Optional

import click
from rich.panel import Panel
from rich.table import Table

from taskly.cli.common import (
    console,
    error_console,
    format_datetime,
    get_data_dir,
    load_config,
    time_format,
)
from taskly.cli.menu import ask_text, choose, label, menu_session
from taskly.tracking.errors import CorruptStateError, TrackingError
from taskly.tracking.inspector import SessionInspector, format_duration
from taskly.tracking.store import StateStore
from taskly.tracking.supervisor import SessionSupervisor

TRACKING_MENU = ["Start Tracking", "Stop Tracking", "Check Status", "View Log", "Back"]


def get_supervisor(data_dir: Optional[Path] = None) -> SessionSupervisor:
    """Get SessionSupervisor instance with optional custom data directory."""
    config = load_config(data_dir)
    return SessionSupervisor(
        StateStore(data_dir), stop_timeout=config.get("tracking.stop_timeout", 3.0)
    )


def get_inspector(data_dir: Optional[Path] = None) -> SessionInspector:
    """Get SessionInspector instance with optional custom data directory."""
    return SessionInspector(StateStore(data_dir))


def report_error(e: Exception) -> None:
    """Print a tracking error for the user."""
    error_console.print(f"[red]Error:[/red] {label(str(e))}")
    if isinstance(e, CorruptStateError):
        error_console.print("Run [cyan]taskly track repair[/cyan] to back it up and start fresh.")


def start_tracking(data_dir: Optional[Path], project: str) -> bool:
    """Start a session and report the outcome. Returns True on success."""
    try:
        handle = get_supervisor(data_dir).start(project)
    except (TrackingError, ValueError) as e:
        report_error(e)
        return False

    console.print(f"[green]✓[/green] Tracking started for: {label(handle.project, 'bold')}")
    console.print(f"  Started: {format_datetime(handle.started_at, time_format(data_dir))}")
    console.print(f"  Process: {handle.pid}")
    return True


def stop_tracking(data_dir: Optional[Path]) -> bool:
    """Stop the active session and report the outcome. Returns True on success."""
    try:
        result = get_supervisor(data_dir).stop()
    except TrackingError as e:
        report_error(e)
        return False

    if result.warning is not None:
        console.print(f"[yellow]Warning:[/yellow] {label(str(result.warning))}")

    session = result.session
    console.print(f"[green]✓[/green] Tracking stopped: {label(session.project, 'bold')}")
    console.print(f"  Duration: {session.duration} ({format_duration(session.duration_seconds)})")
    return True


def show_status(data_dir: Optional[Path]) -> bool:
    """Print the active session, if any. Returns False only on error."""
    try:
        view = get_inspector(data_dir).status()
    except TrackingError as e:
        report_error(e)
        return False

    if view is None:
        console.print("[yellow]No active tracking session.[/yellow]")
        console.print('\nStart tracking with: [cyan]taskly track start "project"[/cyan]')
        return True

    fmt = time_format(data_dir)
    heartbeat = format_datetime(view.last_heartbeat, fmt) if view.last_heartbeat else "none yet"
    content = f"""[bold]{label(view.project)}[/bold]

[dim]Started:[/dim] {format_datetime(view.started_at, fmt)}
[dim]Duration:[/dim] {view.elapsed}
[dim]Process:[/dim] {view.pid}
[dim]Last heartbeat:[/dim] {heartbeat}"""

    if not view.process_alive:
        content += (
            f"\n\n[yellow]Warning:[/yellow] tracking process {view.pid} is not running. "
            "Stop the session to record it."
        )

    console.print(Panel(content, title="Currently Tracking", border_style="green"))
    return True


def show_log(data_dir: Optional[Path], as_json: bool = False, summary: bool = False) -> bool:
    """Print completed sessions. Returns False only on error."""
    inspector = get_inspector(data_dir)
    try:
        entries = inspector.history()
    except TrackingError as e:
        report_error(e)
        return False

    if as_json:
        print(json.dumps([entry.to_dict() for entry in entries], indent=2))
        return True

    if not entries:
        console.print("[yellow]No logs found.[/yellow]")
        return True

    fmt = time_format(data_dir)
    table = Table(title=f"Tracking Log ({len(entries)} sessions)")
    table.add_column("Project", style="bold")
    table.add_column("Start", style="cyan")
    table.add_column("End", style="cyan")
    table.add_column("Duration", style="magenta", justify="right")

    for entry in entries:
        table.add_row(
            label(entry.project),
            format_datetime(entry.started_at, fmt),
            format_datetime(entry.ended_at, fmt),
            entry.duration,
        )
    console.print(table)

    if summary:
        totals = Table(title="Total by Project")
        totals.add_column("Project", style="bold")
        totals.add_column("Total", style="magenta", justify="right")
        for project, seconds in inspector.total_by_project().items():
            totals.add_row(label(project), format_duration(seconds))
        console.print(totals)

    return True


def tracking_menu(obj: Optional[dict[str, Any]]) -> None:
    """Interactive tracking menu; loops until Back."""
    data_dir = get_data_dir(obj)
    while True:
        action = choose("Choose an action:", TRACKING_MENU)

        if action == "Start Tracking":
            start_tracking(data_dir, ask_text("Enter project name"))
        elif action == "Stop Tracking":
            stop_tracking(data_dir)
        elif action == "Check Status":
            show_status(data_dir)
        elif action == "View Log":
            show_log(data_dir)
        else:
            return


@click.group(invoke_without_command=True)
@click.pass_context
def track(ctx: click.Context) -> None:
    """Track time on a project in the background.

    Without a subcommand, opens the interactive tracking menu.
    """
    if ctx.invoked_subcommand is None:
        with menu_session():
            tracking_menu(ctx.obj)


@track.command("start")
@click.argument("project")
@click.pass_context
def track_start(ctx: click.Context, project: str) -> None:
    """Start tracking PROJECT.

    A background process keeps a heartbeat until you stop it, so the
    session survives this command exiting.

    Example:
        taskly track start "writing-docs"
    """
    if not start_tracking(get_data_dir(ctx.obj), project):
        sys.exit(1)


@track.command("stop")
@click.pass_context
def track_stop(ctx: click.Context) -> None:
    """Stop the active session and record it in the log."""
    if not stop_tracking(get_data_dir(ctx.obj)):
        sys.exit(1)


@track.command("status")
@click.pass_context
def track_status(ctx: click.Context) -> None:
    """Show the active session."""
    if not show_status(get_data_dir(ctx.obj)):
        sys.exit(1)


@track.command("log")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--summary", is_flag=True, help="Also show totals per project")
@click.pass_context
def track_log(ctx: click.Context, as_json: bool, summary: bool) -> None:
    """List completed sessions.

    Example:
        taskly track log
        taskly track log --summary
    """
    if not show_log(get_data_dir(ctx.obj), as_json=as_json, summary=summary):
        sys.exit(1)


@track.command("repair")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--force", is_flag=True, help="Reset even if the state file is valid")
@click.pass_context
def track_repair(ctx: click.Context, yes: bool, force: bool) -> None:
    """Back up a corrupt tracking state file and start fresh."""
    store = StateStore(get_data_dir(ctx.obj))

    if not force:
        try:
            store.load()
            console.print("[green]✓[/green] Tracking state is valid, nothing to repair")
            return
        except CorruptStateError as e:
            console.print(f"[yellow]Warning:[/yellow] {label(str(e))}")

    if not yes and not click.confirm("Reset tracking state? The current file will be backed up"):
        console.print("Cancelled")
        return

    backup_path = store.reset(backup=True)
    if backup_path is not None:
        console.print(f"Backed up tracking state to {backup_path}")
    console.print("[green]✓[/green] Tracking state reset")
