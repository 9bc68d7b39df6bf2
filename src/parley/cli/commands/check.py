"""parley check -- validate transcript ordering."""

from __future__ import annotations

import click

from parley.cli.formatting import format_integrity


@click.command()
@click.argument("path", type=click.Path(dir_okay=False))
def check(path: str) -> None:
    """Report reused entry ids, reused call ids and tool outputs without a call.

    Exits with status 1 when any problem is found.
    """
    from parley.cli import _transcript_file
    from parley.models.transcript import integrity_problems, parse_entries

    with _transcript_file(path, parse_entries) as (entries, console):
        problems = integrity_problems(entries)
        format_integrity(problems, len(entries), console)
    if problems:
        raise SystemExit(1)
