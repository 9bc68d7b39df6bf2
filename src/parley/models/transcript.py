"""Transcript model for Parley.

A Transcript is the ordered conversation log of a session. Entries are
Pydantic models forming a discriminated union (Entry) keyed on
``entry_type``; response and tool-output payloads are Segments keyed on
``segment_type``.

The only mutation primitive is :meth:`Transcript.upsert`: an entry whose id
is already present replaces the stored entry in place, any other entry is
appended. Entries are never removed individually.
"""

from __future__ import annotations

import enum
import uuid
from typing import Annotated, Any, Callable, Iterable, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from parley.exceptions import (
    TranscriptIntegrityError,
    UnexpectedStructuredResponseError,
    UnexpectedTextResponseError,
)


def new_id() -> str:
    """Generate a fresh entry id."""
    return uuid.uuid4().hex


class Status(str, enum.Enum):
    """Lifecycle status of a streamed transcript item."""

    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    IN_PROGRESS = "in_progress"

    @property
    def is_terminal(self) -> bool:
        return self is not Status.IN_PROGRESS


_FROZEN = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class TextSegment(BaseModel):
    """Free text produced by the model."""

    model_config = _FROZEN

    segment_type: Literal["text"] = "text"
    id: str = Field(default_factory=new_id)
    content: str


class StructuredSegment(BaseModel):
    """Raw JSON produced for a named structured output type."""

    model_config = _FROZEN

    segment_type: Literal["structured"] = "structured"
    id: str = Field(default_factory=new_id)
    type_name: str
    content: str


Segment = Annotated[
    Union[TextSegment, StructuredSegment],
    Field(discriminator="segment_type"),
]


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


class PromptEntry(BaseModel):
    """The caller's input for one turn.

    ``sources`` holds grounding data encoded by the session's grounding
    codec; the transcript treats it as opaque bytes.
    """

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64", val_json_bytes="base64")

    entry_type: Literal["prompt"] = "prompt"
    id: str = Field(default_factory=new_id)
    input: str
    sources: bytes = b""
    prompt: str = ""

    @property
    def is_terminal(self) -> bool:
        return True


class ReasoningEntry(BaseModel):
    """Reasoning summary emitted by the model."""

    model_config = _FROZEN

    entry_type: Literal["reasoning"] = "reasoning"
    id: str = Field(default_factory=new_id)
    summary: tuple[str, ...] = ()
    encrypted_reasoning: str | None = None
    status: Status | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal


class ToolCall(BaseModel):
    """A single tool invocation requested by the model.

    ``arguments`` is the raw JSON text as streamed; it may be an incomplete
    fragment while ``status`` is in progress.
    """

    model_config = _FROZEN

    id: str = Field(default_factory=new_id)
    call_id: str
    tool_name: str
    arguments: str = ""
    status: Status = Status.COMPLETED


class ToolCallsEntry(BaseModel):
    """One or more tool calls requested in a single model step."""

    model_config = _FROZEN

    entry_type: Literal["tool_calls"] = "tool_calls"
    id: str = Field(default_factory=new_id)
    calls: tuple[ToolCall, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return bool(self.calls) and all(c.status.is_terminal for c in self.calls)


class ToolOutputEntry(BaseModel):
    """The result of executing a tool call, correlated by ``call_id``."""

    model_config = _FROZEN

    entry_type: Literal["tool_output"] = "tool_output"
    id: str = Field(default_factory=new_id)
    call_id: str
    tool_name: str
    segment: Segment
    status: Status | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is None or self.status.is_terminal

    @property
    def raw_content(self) -> str:
        """Output payload as JSON text.

        Text segments are treated as a JSON string value.
        """
        if isinstance(self.segment, StructuredSegment):
            return self.segment.content
        return _json_string(self.segment.content)


class ResponseEntry(BaseModel):
    """A model response made of text and/or structured segments."""

    model_config = _FROZEN

    entry_type: Literal["response"] = "response"
    id: str = Field(default_factory=new_id)
    segments: tuple[Segment, ...] = ()
    status: Status = Status.COMPLETED

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def text_segments(self) -> list[TextSegment]:
        return [s for s in self.segments if isinstance(s, TextSegment)]

    @property
    def structured_segments(self) -> list[StructuredSegment]:
        return [s for s in self.segments if isinstance(s, StructuredSegment)]

    @property
    def text(self) -> str:
        """Text segments joined by newlines."""
        return "\n".join(s.content for s in self.text_segments)


Entry = Annotated[
    Union[PromptEntry, ReasoningEntry, ToolCallsEntry, ToolOutputEntry, ResponseEntry],
    Field(discriminator="entry_type"),
]

_entries_adapter: TypeAdapter[list[Entry]] = TypeAdapter(list[Entry])
_string_adapter: TypeAdapter[str] = TypeAdapter(str)


def _json_string(value: str) -> str:
    return _string_adapter.dump_json(value).decode("utf-8")


def parse_entries(data: str | bytes) -> list[Entry]:
    """Validate a JSON array of entries, keeping entries that share an id.

    Raises:
        pydantic.ValidationError: If the data is not a valid entry list.
    """
    return _entries_adapter.validate_json(data)


def integrity_problems(entries: Iterable[Entry]) -> list[str]:
    """Describe every ordering violation in a sequence of entries.

    Reports entry ids used more than once, call ids reused across tool
    calls, and tool outputs whose call does not appear at or before them.
    """
    problems: list[str] = []
    seen_ids: dict[str, int] = {}
    seen_calls: set[str] = set()
    for position, entry in enumerate(entries):
        if entry.id in seen_ids:
            problems.append(
                f"entry {position} ({entry.id}): duplicate entry id, first used at "
                f"entry {seen_ids[entry.id]}"
            )
        else:
            seen_ids[entry.id] = position
        if isinstance(entry, ToolCallsEntry):
            for call in entry.calls:
                if call.call_id in seen_calls:
                    problems.append(
                        f"entry {position} ({entry.id}): duplicate call_id {call.call_id!r}"
                    )
                seen_calls.add(call.call_id)
        elif isinstance(entry, ToolOutputEntry) and entry.call_id not in seen_calls:
            problems.append(
                f"entry {position} ({entry.id}): tool output for unknown call_id "
                f"{entry.call_id!r}"
            )
    return problems


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------


class Transcript:
    """Ordered, id-addressed log of conversation entries.

    Example::

        t = Transcript()
        t.upsert(ResponseEntry(id="r1", segments=[TextSegment(content="Hi")],
                               status=Status.IN_PROGRESS))
        t.upsert(ResponseEntry(id="r1", segments=[TextSegment(content="Hi!")]))
        assert len(t) == 1
    """

    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        self._entries: list[Entry] = []
        self._positions: dict[str, int] = {}
        for entry in entries:
            self.upsert(entry)

    # -- mutation -----------------------------------------------------------

    def upsert(self, entry: Entry) -> int:
        """Insert or replace an entry by id.

        Returns the entry's position. Replacing never changes the position
        of any entry.
        """
        position = self._positions.get(entry.id)
        if position is not None:
            self._entries[position] = entry
            return position
        self._entries.append(entry)
        self._positions[entry.id] = len(self._entries) - 1
        return len(self._entries) - 1

    def clear(self) -> None:
        self._entries.clear()
        self._positions.clear()

    # -- access -------------------------------------------------------------

    def __iter__(self) -> Iterator[Entry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> Entry:
        return self._entries[index]

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._positions

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transcript):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"Transcript(entries={len(self._entries)})"

    @property
    def entries(self) -> tuple[Entry, ...]:
        return tuple(self._entries)

    def get(self, entry_id: str) -> Entry | None:
        position = self._positions.get(entry_id)
        return None if position is None else self._entries[position]

    def position_of(self, entry_id: str) -> int | None:
        return self._positions.get(entry_id)

    def find_last(self, predicate: Callable[[Entry], bool]) -> Entry | None:
        """Return the last entry matching ``predicate``, or None."""
        for entry in reversed(self._entries):
            if predicate(entry):
                return entry
        return None

    def last_response(self) -> ResponseEntry | None:
        return self.find_last(lambda e: isinstance(e, ResponseEntry))  # type: ignore[return-value]

    def find_tool_call(self, call_id: str) -> tuple[int, ToolCall] | None:
        """Locate the tool call with ``call_id`` and the position of its entry."""
        for position, entry in enumerate(self._entries):
            if isinstance(entry, ToolCallsEntry):
                for call in entry.calls:
                    if call.call_id == call_id:
                        return position, call
        return None

    def find_tool_output(self, call_id: str, *, start: int = 0) -> ToolOutputEntry | None:
        """Scan forward from ``start`` for the output correlated to ``call_id``."""
        for entry in self._entries[start:]:
            if isinstance(entry, ToolOutputEntry) and entry.call_id == call_id:
                return entry
        return None

    def last_structured_output(self) -> tuple[Status, StructuredSegment] | None:
        """Return the single structured segment of the last response.

        Returns None when there is no response yet or the last response has
        no segments.

        Raises:
            UnexpectedTextResponseError: If the last response contains text.
            UnexpectedStructuredResponseError: If the last response does not
                contain exactly one structured segment.
        """
        response = self.last_response()
        if response is None or not response.segments:
            return None
        if response.text_segments:
            raise UnexpectedTextResponseError()
        structured = response.structured_segments
        if len(structured) != 1:
            raise UnexpectedStructuredResponseError(len(structured))
        return response.status, structured[0]

    def copy(self) -> Transcript:
        """Independent copy; entries are immutable so a shallow copy suffices."""
        clone = Transcript()
        clone._entries = list(self._entries)
        clone._positions = dict(self._positions)
        return clone

    # -- validation ---------------------------------------------------------

    def check_integrity(self) -> list[str]:
        """Return a description of every ordering violation found."""
        return integrity_problems(self._entries)

    # -- serialization ------------------------------------------------------

    def to_json(self, *, indent: int | None = None) -> str:
        return _entries_adapter.dump_json(self._entries, indent=indent).decode("utf-8")

    @classmethod
    def from_json(cls, data: str | bytes) -> Transcript:
        """Load a transcript saved with :meth:`to_json`.

        Raises:
            pydantic.ValidationError: If the data is not a valid entry list.
            TranscriptIntegrityError: If two entries share an id.
        """
        entries = parse_entries(data)
        transcript = cls()
        for entry in entries:
            if entry.id in transcript:
                raise TranscriptIntegrityError(entry.id, "duplicate entry id")
            transcript.upsert(entry)
        return transcript

    def pprint(self, *, abbreviate: bool = False, file: Any = None) -> None:
        """Pretty-print this transcript using rich formatting."""
        from parley.formatting import pprint_transcript

        pprint_transcript(self, abbreviate=abbreviate, file=file)
