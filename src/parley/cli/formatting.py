"""Rich formatting helpers for the Parley CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def format_integrity(problems: list[str], entry_count: int, console: Console) -> None:
    """Display the result of a transcript integrity check."""
    if not problems:
        console.print(f"[green]OK[/green]: {entry_count} entries, no problems found.")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Problem")
    for i, problem in enumerate(problems, start=1):
        table.add_row(str(i), escape(problem))
    console.print(f"[red]{len(problems)} problem(s)[/red] in {entry_count} entries:")
    console.print(table)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
