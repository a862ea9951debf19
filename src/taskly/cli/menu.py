"""Interactive "pick one of N options" prompts."""

from contextlib import contextmanager
from typing import Iterator, Optional, Sequence, TypeVar

from rich.console import Console
from rich.markup import escape
from rich.prompt import IntPrompt, Prompt

from taskly.cli.common import console as default_console

T = TypeVar("T")


def choose(
    message: str,
    options: Sequence[str],
    values: Optional[Sequence[T]] = None,
    console: Optional[Console] = None,
) -> T:
    """Ask the user to pick one of ``options`` by number.

    Args:
        message: Question shown above the list
        options: Labels to display
        values: Values returned for each label (default: the labels)
        console: Console to use

    Returns:
        The value for the chosen option
    """
    console = console or default_console
    values = values if values is not None else options  # type: ignore[assignment]

    console.print(f"\n[bold]{message}[/bold]")
    for number, label in enumerate(options, start=1):
        console.print(f"  [cyan]{number}.[/cyan] {label}")

    answer = IntPrompt.ask(
        "Choose",
        choices=[str(n) for n in range(1, len(options) + 1)],
        show_choices=False,
        console=console,
    )
    return values[answer - 1]  # type: ignore[index]


def ask_text(message: str, console: Optional[Console] = None, default: str = "") -> str:
    """Ask for a line of text; blank answers are re-asked unless a default exists."""
    console = console or default_console
    while True:
        answer = Prompt.ask(message, default=default or None, console=console) or ""
        if answer.strip():
            return answer.strip()
        console.print("[red]Please enter a value[/red]")


@contextmanager
def menu_session(console: Optional[Console] = None) -> Iterator[None]:
    """End an interactive session quietly on Ctrl+C or end of input."""
    console = console or default_console
    try:
        yield
    except (EOFError, KeyboardInterrupt):
        console.print("\nGoodbye")


def label(text: str, style: Optional[str] = None) -> str:
    """Escape user text for rich markup, optionally styled."""
    if style:
        return f"[{style}]{escape(text)}[/{style}]"
    return escape(text)
