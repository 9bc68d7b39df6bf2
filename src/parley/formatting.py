"""Pretty-print support for parley output objects.

Uses rich library for formatted terminal output.
All functions accept their target object and print to a rich Console.

To avoid circular imports, this module does NOT import the session at
module level. Functions access object attributes dynamically.
"""
from __future__ import annotations

from typing import Any

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from parley.models.transcript import (
    PromptEntry,
    ReasoningEntry,
    ResponseEntry,
    StructuredSegment,
    ToolCallsEntry,
    ToolOutputEntry,
)

_STATUS_STYLES = {
    "completed": "green",
    "in_progress": "yellow",
    "incomplete": "red",
}


def _make_console(file: Any = None) -> Console:
    """Create a Console, optionally writing to a file-like object."""
    if file is not None:
        return Console(file=file, force_terminal=False, width=100)
    return Console()


def _clip(text: str, abbreviate: bool, limit: int = 200) -> str:
    if abbreviate and len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def _status(status: Any) -> Text:
    if status is None:
        return Text("")
    value = getattr(status, "value", str(status))
    return Text(f" [{value}]", style=_STATUS_STYLES.get(value, "white"))


def _entry_lines(entry: Any, abbreviate: bool) -> Text:
    line = Text()
    if isinstance(entry, PromptEntry):
        line.append("Prompt", style="bold blue")
        line.append(f" ({entry.id})\n", style="dim")
        line.append(_clip(entry.prompt or entry.input, abbreviate))
        if entry.sources:
            line.append(f"\n{len(entry.sources)} bytes of grounding", style="dim")
    elif isinstance(entry, ReasoningEntry):
        line.append("Reasoning", style="bold magenta")
        line.append(f" ({entry.id})", style="dim")
        line.append_text(_status(entry.status))
        for summary in entry.summary:
            line.append("\n" + _clip(summary, abbreviate), style="italic")
    elif isinstance(entry, ToolCallsEntry):
        line.append("ToolCalls", style="bold cyan")
        line.append(f" ({entry.id})", style="dim")
        for call in entry.calls:
            line.append(f"\n{call.tool_name}", style="cyan")
            line.append(f"({_clip(call.arguments, abbreviate, 80)})")
            line.append(f" call_id={call.call_id}", style="dim")
            line.append_text(_status(call.status))
    elif isinstance(entry, ToolOutputEntry):
        line.append("ToolOutput", style="bold cyan")
        line.append(f" ({entry.id}) {entry.tool_name} call_id={entry.call_id}", style="dim")
        line.append_text(_status(entry.status))
        line.append("\n" + _clip(entry.raw_content, abbreviate))
    elif isinstance(entry, ResponseEntry):
        line.append("Response", style="bold green")
        line.append(f" ({entry.id})", style="dim")
        line.append_text(_status(entry.status))
        for segment in entry.segments:
            if isinstance(segment, StructuredSegment):
                line.append(f"\n{segment.type_name}: ", style="green")
            else:
                line.append("\n")
            line.append(_clip(segment.content, abbreviate))
    return line


def pprint_transcript(transcript: Any, *, abbreviate: bool = False, file: Any = None) -> None:
    """Pretty-print a Transcript, one block per entry.

    Args:
        transcript: A Transcript instance.
        abbreviate: If True, truncate long text. Default False (show full).
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)
    if len(transcript) == 0:
        console.print("[dim]Empty transcript.[/dim]")
        return
    blocks = [_entry_lines(entry, abbreviate) for entry in transcript]
    parts: list[Any] = []
    for i, block in enumerate(blocks):
        if i:
            parts.append(Text(""))
        parts.append(block)
    console.print(Panel(Group(*parts), title=f"[bold]Transcript[/bold] ({len(blocks)} entries)"))


def pprint_token_usage(usage: Any, console: Console) -> None:
    reported = usage.to_dict()
    if not reported:
        return
    parts = [f"{escape(k)}={v}" for k, v in reported.items()]
    console.print(f"[dim]usage: {', '.join(parts)}[/dim]")


def pprint_agent_response(response: Any, *, abbreviate: bool = False, file: Any = None) -> None:
    """Pretty-print an AgentResponse.

    Args:
        response: An AgentResponse instance.
        abbreviate: If True, truncate long text. Default False (show full).
        file: Optional file-like object for output (used in tests).
    """
    console = _make_console(file)
    content = response.content
    if hasattr(content, "model_dump_json"):
        body = content.model_dump_json(indent=2)
    else:
        body = str(content) if content is not None else "(empty response)"
    console.print(Panel(
        Text(_clip(body, abbreviate)),
        title="[bold]Assistant[/bold]",
        border_style="green",
    ))
    pprint_token_usage(response.token_usage, console)
