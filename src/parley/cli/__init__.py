"""Parley CLI -- inspect transcripts saved as JSON.

This module is NEVER imported from parley/__init__.py.
It is only loaded via the ``parley`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install parley[cli]"
    ) from None

from parley.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    envvar="PARLEY_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level for parley loggers.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """Parley: transcript tooling for conversational agents."""
    ctx.ensure_object(dict)
    logging.basicConfig(level=log_level.upper())
    ctx.obj["log_level"] = log_level.upper()


@contextmanager
def _transcript_file(
    path: str, load: Callable[[str], Any] | None = None
) -> Iterator[tuple[Any, Console]]:
    """Load a transcript JSON file, yielding (loaded value, console).

    ``load`` turns the file text into the yielded value and defaults to
    :meth:`Transcript.from_json`. Unreadable, non-UTF-8, malformed or
    inconsistent files are reported as CLI errors and exit with status 1.
    """
    from parley.exceptions import ParleyError
    from parley.models.transcript import Transcript

    console = get_console()
    try:
        with open(path, encoding="utf-8") as fh:
            loaded = (load or Transcript.from_json)(fh.read())
    except (OSError, ValueError, ParleyError) as e:
        format_error(str(e), console)
        raise SystemExit(1) from None
    yield loaded, console


# Register subcommands after cli group is defined
from parley.cli.commands.check import check  # noqa: E402
from parley.cli.commands.show import show  # noqa: E402

cli.add_command(show)
cli.add_command(check)
