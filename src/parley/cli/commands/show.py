"""parley show -- pretty-print a transcript."""

from __future__ import annotations

import click


@click.command()
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("-a", "--abbreviate", is_flag=True, help="Truncate long entry content.")
def show(path: str, abbreviate: bool) -> None:
    """Print every entry of the transcript stored at PATH."""
    from parley.cli import _transcript_file
    from parley.formatting import pprint_transcript

    with _transcript_file(path) as (transcript, console):
        pprint_transcript(transcript, abbreviate=abbreviate, file=console.file)
