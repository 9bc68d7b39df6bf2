"""Whole-transcript decoding.

TranscriptDecoder projects every entry of a transcript into typed values:
prompts with decoded grounding sources, reasoning, one domain value per
tool call (outputs are folded into their runs), and responses with decoded
structured segments.

``decode()`` is total and suits rendering a history that may contain
tools from older app versions; ``resolve()`` is strict and raises on the
first tool call that cannot be resolved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator

from parley.engine.resolver import ToolResolver
from parley.exceptions import GroundingDecodeError
from parley.models.transcript import (
    PromptEntry,
    ReasoningEntry,
    ResponseEntry,
    Status,
    StructuredSegment,
    ToolCallsEntry,
    ToolOutputEntry,
)

if TYPE_CHECKING:
    from parley.grounding import GroundingCodec
    from parley.models.transcript import Transcript
    from parley.structured.decoder import StructuredOutputs
    from parley.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedPrompt:
    id: str
    input: str
    prompt: str
    sources: list[Any] = field(default_factory=list)
    error: GroundingDecodeError | None = None


@dataclass(frozen=True)
class DecodedReasoning:
    id: str
    summary: tuple[str, ...]
    status: Status | None


@dataclass(frozen=True)
class DecodedToolRun:
    """A tool call together with its resolved domain value."""

    entry_id: str
    call_id: str
    tool_name: str
    value: Any


@dataclass(frozen=True)
class DecodedResponse:
    id: str
    status: Status
    text: str
    structured: list[Any] = field(default_factory=list)


DecodedEntry = DecodedPrompt | DecodedReasoning | DecodedToolRun | DecodedResponse


@dataclass(frozen=True)
class DecodedTranscript:
    """Typed view of a transcript, in transcript order."""

    entries: list[DecodedEntry]

    def __iter__(self) -> Iterator[DecodedEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def tool_runs(self) -> list[Any]:
        return [e.value for e in self.entries if isinstance(e, DecodedToolRun)]

    def responses(self) -> list[DecodedResponse]:
        return [e for e in self.entries if isinstance(e, DecodedResponse)]


class TranscriptDecoder:
    """Decodes transcripts against a session's tools, outputs and codec."""

    def __init__(
        self,
        tools: ToolRegistry,
        structured_outputs: StructuredOutputs,
        grounding: GroundingCodec,
    ) -> None:
        self._tools = tools
        self._outputs = structured_outputs
        self._grounding = grounding

    def decode(self, transcript: Transcript) -> DecodedTranscript:
        """Total decoding. Never raises for tool or grounding failures."""
        return DecodedTranscript(list(self._walk(transcript, strict=False)))

    def resolve(self, transcript: Transcript) -> DecodedTranscript:
        """Strict decoding.

        Raises:
            UnknownToolError: On a call to an unregistered tool.
            ToolResolutionError: On a tool call that fails to decode.
            GroundingDecodeError: On prompt sources that fail to decode.
        """
        return DecodedTranscript(list(self._walk(transcript, strict=True)))

    def _walk(self, transcript: Transcript, *, strict: bool) -> Iterator[DecodedEntry]:
        resolver = ToolResolver(self._tools, transcript)
        for entry in transcript:
            if isinstance(entry, PromptEntry):
                yield self._prompt(entry, strict=strict)
            elif isinstance(entry, ReasoningEntry):
                yield DecodedReasoning(entry.id, entry.summary, entry.status)
            elif isinstance(entry, ToolCallsEntry):
                for call in entry.calls:
                    value = resolver.resolve(call) if strict else resolver.decode(call)
                    yield DecodedToolRun(entry.id, call.call_id, call.tool_name, value)
            elif isinstance(entry, ToolOutputEntry):
                continue
            elif isinstance(entry, ResponseEntry):
                yield DecodedResponse(
                    id=entry.id,
                    status=entry.status,
                    text=entry.text,
                    structured=[
                        self._outputs.decode(segment, entry.status)
                        for segment in entry.segments
                        if isinstance(segment, StructuredSegment)
                    ],
                )

    def _prompt(self, entry: PromptEntry, *, strict: bool) -> DecodedPrompt:
        try:
            sources = self._grounding.decode(entry.sources)
        except GroundingDecodeError as exc:
            if strict:
                raise
            logger.debug("Grounding for prompt %s failed to decode: %s", entry.id, exc)
            return DecodedPrompt(entry.id, entry.input, entry.prompt, error=exc)
        return DecodedPrompt(entry.id, entry.input, entry.prompt, sources=list(sources))
