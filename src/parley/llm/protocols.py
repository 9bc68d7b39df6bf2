"""Adapter protocol and the updates adapters emit.

An adapter wraps one provider. For each turn it streams two kinds of
updates: a transcript entry to upsert, or a token usage increment to
merge. Everything provider-specific (wire format, transport, auth) stays
behind this interface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from parley.models.config import GenerationOptions
    from parley.models.transcript import Entry, PromptEntry, Transcript
    from parley.models.usage import TokenUsage
    from parley.structured.descriptor import StructuredOutputDescriptor


@dataclass(frozen=True)
class TranscriptUpdate:
    """Upsert ``entry`` into the transcript."""

    entry: Entry


@dataclass(frozen=True)
class UsageUpdate:
    """Merge ``usage`` into the turn and session totals."""

    usage: TokenUsage


AdapterUpdate = Union[TranscriptUpdate, UsageUpdate]


@runtime_checkable
class Adapter(Protocol):
    """Protocol for pluggable provider adapters.

    ``respond`` is typically an async generator. The session consumes it
    sequentially and closes it early when the caller stops streaming, so
    adapters should release transport resources in ``finally`` blocks.
    """

    def respond(
        self,
        prompt: PromptEntry,
        *,
        output: StructuredOutputDescriptor | None,
        model: str | None,
        transcript: Transcript,
        options: GenerationOptions | None,
    ) -> AsyncIterator[AdapterUpdate]:
        """Stream the updates produced for one turn.

        Args:
            prompt: The prompt entry already appended to ``transcript``.
            output: Structured output requested for the final response,
                or None for plain text.
            model: Model identifier, or None for the adapter's default.
            transcript: Snapshot of the conversation including the prompt.
            options: Sampling options for this turn.
        """
        ...
