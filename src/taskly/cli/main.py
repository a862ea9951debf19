"""Main CLI application."""

from typing import Optional

import click

from taskly import __version__
from taskly.cli.common import console, error_console
from taskly.cli.config_commands import config
from taskly.cli.menu import choose, menu_session
from taskly.cli.todo_commands import todo, todo_menu
from taskly.cli.track_commands import track, tracking_menu
from taskly.core.logs import setup_logging

MAIN_MENU = ["Todo", "Time tracking", "Exit"]


def main_menu(obj: dict) -> None:
    """Top-level interactive menu; loops until Exit."""
    while True:
        choice = choose("What do you want to do", MAIN_MENU)
        if choice == "Todo":
            todo_menu(obj)
        elif choice == "Time tracking":
            tracking_menu(obj)
        else:
            console.print("Goodbye")
            return


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option("--data-dir", help="Custom data directory", type=click.Path())
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(ctx: click.Context, data_dir: Optional[str], verbose: bool, no_color: bool) -> None:
    """Taskly - todo list and background time tracking.

    Run without a command for the interactive menu.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir

    setup_logging(level="DEBUG" if verbose else "WARNING", console=verbose)

    if no_color:
        console.no_color = True
        error_console.no_color = True

    if ctx.invoked_subcommand is None:
        with menu_session():
            main_menu(ctx.obj)


cli.add_command(track)
cli.add_command(todo)
cli.add_command(config)


if __name__ == "__main__":
    cli(obj={})
