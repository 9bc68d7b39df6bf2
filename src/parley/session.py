"""Session orchestration loop.

A Session drives conversational turns against an adapter. Each turn:

1. appends a PromptEntry (rendered prompt plus encoded grounding sources),
2. consumes the adapter's update stream, upserting entries into the
   session transcript and merging token usage,
3. extracts the turn's content from its last response: joined text, or
   the single structured segment decoded into the requested output type.

``respond()`` returns the finished :class:`AgentResponse`;
``stream_response()`` yields a :class:`Snapshot` after every update.
"""

from __future__ import annotations

import asyncio
import enum
import functools
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncGenerator,
    AsyncIterator,
    Callable,
    Iterable,
    Mapping,
    Sequence,
    Type,
    Union,
)

from pydantic import BaseModel

from parley.engine.decoded import DecodedTranscript, TranscriptDecoder
from parley.engine.resolver import ToolResolver
from parley.exceptions import (
    EmptyResponseError,
    GenerationError,
    SessionBusyError,
    StructuredContentParsingError,
    TranscriptIntegrityError,
)
from parley.grounding import JSONGroundingCodec
from parley.llm.protocols import UsageUpdate
from parley.models.config import GenerationOptions, SessionConfig
from parley.models.transcript import PromptEntry, Status, ToolOutputEntry, Transcript
from parley.models.usage import TokenUsage
from parley.structured.decoder import StructuredOutputs, decode_final, project
from parley.structured.descriptor import (
    FinalContent,
    StructuredOutputDescriptor,
    StructuredOutputProjection,
)
from parley.tools.registry import ToolRegistry

if TYPE_CHECKING:
    from parley.grounding import GroundingCodec
    from parley.llm.protocols import Adapter, AdapterUpdate
    from parley.models.transcript import Entry
    from parley.tools.descriptor import ToolDescriptor

logger = logging.getLogger(__name__)

TranscriptListener = Callable[[Transcript, "Entry"], None]
OutputSpec = Union[StructuredOutputDescriptor, Type[BaseModel], str, None]
OptionsSpec = Union[GenerationOptions, Mapping[str, Any], None]

_UNSET = object()


class TurnState(str, enum.Enum):
    """Lifecycle of the session's most recent turn."""

    NOT_STARTED = "not_started"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AgentResponse:
    """Result of a finished turn.

    Attributes:
        content: Joined response text, or the decoded structured output.
        transcript: Entries added during this turn, prompt included.
        token_usage: Usage reported during this turn.
    """

    content: Any
    transcript: Transcript
    token_usage: TokenUsage

    def __str__(self) -> str:
        return str(self.content)

    def pprint(self, *, abbreviate: bool = False, file: Any = None) -> None:
        """Pretty-print this response using rich formatting."""
        from parley.formatting import pprint_agent_response

        pprint_agent_response(self, abbreviate=abbreviate, file=file)


@dataclass(frozen=True)
class Snapshot:
    """State of a streaming turn after one or more updates.

    Attributes:
        content: Current content; partial while the response streams and
            None until one exists.
        transcript: Independent copy of the turn's entries so far.
        token_usage: Usage reported so far in this turn.
        output: Structured output projection, when one was requested.
    """

    content: Any
    transcript: Transcript
    token_usage: TokenUsage
    output: StructuredOutputProjection | None = None


@dataclass(eq=False)
class _Turn:
    prompt: PromptEntry
    output: StructuredOutputDescriptor | None
    options: GenerationOptions | None = None
    transcript: Transcript = field(default_factory=Transcript)
    usage: TokenUsage = field(default_factory=TokenUsage)


class SnapshotStream:
    """Async iterator over the snapshots of one streaming turn.

    Returned by :meth:`Session.stream_response`. Call ``aclose()`` (or wrap
    it in ``contextlib.aclosing``) to stop early. A stream left suspended
    after a ``break`` is closed by its session before the next turn starts,
    or explicitly with :meth:`Session.close_stream`.
    """

    def __init__(self, run: Callable[[SnapshotStream], AsyncGenerator[Snapshot, None]]) -> None:
        self._running = False
        self._snapshots = run(self)

    def __aiter__(self) -> SnapshotStream:
        return self

    async def __anext__(self) -> Snapshot:
        self._running = True
        try:
            return await self._snapshots.__anext__()
        finally:
            self._running = False

    async def aclose(self) -> None:
        await self._snapshots.aclose()

    @property
    def suspended(self) -> bool:
        """True while the turn is paused at a snapshot, waiting for the consumer."""
        return not self._running and self._snapshots.ag_frame is not None


class Session:
    """A conversation with one adapter.

    Usage::

        session = Session(adapter, tools=[weather_tool])
        response = await session.respond("Weather in Paris?")
        print(response.content)

        async with aclosing(session.stream_response("And tomorrow?")) as stream:
            async for snapshot in stream:
                render(snapshot.content)

    Args:
        adapter: Provider adapter producing updates for each turn.
        tools: Tool descriptors or a prepared ToolRegistry.
        structured_outputs: Structured output descriptors known to the
            session, used when decoding history.
        grounding: Codec for prompt sources. Defaults to JSON.
        config: Session settings.
        transcript: Existing history to continue from.
    """

    def __init__(
        self,
        adapter: Adapter,
        *,
        tools: ToolRegistry | Iterable[ToolDescriptor] = (),
        structured_outputs: StructuredOutputs | Iterable[StructuredOutputDescriptor] = (),
        grounding: GroundingCodec | None = None,
        config: SessionConfig | None = None,
        transcript: Transcript | None = None,
    ) -> None:
        self._adapter = adapter
        self._tools = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        self._outputs = (
            structured_outputs
            if isinstance(structured_outputs, StructuredOutputs)
            else StructuredOutputs(structured_outputs)
        )
        self._grounding = grounding if grounding is not None else JSONGroundingCodec()
        self.config = config or SessionConfig()
        self._transcript = transcript if transcript is not None else Transcript()
        self._token_usage = TokenUsage()
        self._listeners: list[TranscriptListener] = []
        self._state = TurnState.NOT_STARTED
        self._open_stream: SnapshotStream | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def token_usage(self) -> TokenUsage:
        return self._token_usage

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def structured_outputs(self) -> StructuredOutputs:
        return self._outputs

    @property
    def grounding(self) -> GroundingCodec:
        return self._grounding

    def add_listener(self, listener: TranscriptListener) -> None:
        """Call ``listener(transcript, entry)`` after every upsert."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TranscriptListener) -> None:
        self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def clear_transcript(self) -> None:
        """Drop all entries. Token usage is left untouched."""
        if self._state is TurnState.STREAMING:
            raise SessionBusyError()
        self._transcript.clear()

    async def close_stream(self) -> None:
        """Close a snapshot stream abandoned in the middle of its turn.

        The adapter stream is closed and the turn ends as CANCELLED. Does
        nothing when no stream is suspended.
        """
        stream = self._open_stream
        if self._state is TurnState.STREAMING and stream is not None and stream.suspended:
            logger.debug("Closing abandoned snapshot stream")
            await stream.aclose()

    def reset_token_usage(self) -> None:
        self._token_usage = TokenUsage()

    def tool_resolver(self, transcript: Transcript | None = None) -> ToolResolver:
        """Resolver bound to this session's tools and a transcript."""
        return ToolResolver(self._tools, transcript if transcript is not None else self._transcript)

    def decode_transcript(self, transcript: Transcript | None = None) -> DecodedTranscript:
        """Total typed view of a transcript (the session's by default)."""
        return self._decoder().decode(transcript if transcript is not None else self._transcript)

    def resolve_transcript(self, transcript: Transcript | None = None) -> DecodedTranscript:
        """Strict typed view of a transcript; raises on unresolvable tool calls."""
        return self._decoder().resolve(transcript if transcript is not None else self._transcript)

    def _decoder(self) -> TranscriptDecoder:
        return TranscriptDecoder(self._tools, self._outputs, self._grounding)

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def respond(
        self,
        input: str,
        *,
        output: OutputSpec = None,
        sources: Sequence[Any] = (),
        prompt: str | None = None,
        model: str | None = None,
        options: OptionsSpec = None,
    ) -> AgentResponse:
        """Run one turn to completion.

        Args:
            input: The user's input.
            output: Structured output to produce: a descriptor, a Pydantic
                model, or the name of a registered descriptor. None for text.
            sources: Grounding sources stored with the prompt.
            prompt: Rendered prompt sent to the model; defaults to ``input``.
            model: Model override; defaults to ``config.default_model``.
            options: Sampling options passed to the adapter, either as
                GenerationOptions or as a request-style dict such as
                ``{"max_tokens": 256}``.

        Raises:
            SessionBusyError: If another turn is streaming.
            GenerationError: On a missing or malformed final response, or
                any adapter failure.
        """
        await self.close_stream()
        turn = self._begin(input, output=output, sources=sources, prompt=prompt, options=options)
        try:
            async with aclosing(self._consume(turn, model)) as updates:
                async for _ in updates:
                    pass
            content = self._final_content(turn)
        except BaseException as exc:
            self._end_with_error(exc)
            raise
        self._state = TurnState.COMPLETED
        logger.debug("Turn for prompt %s completed", turn.prompt.id)
        return AgentResponse(content, turn.transcript.copy(), turn.usage)

    def stream_response(
        self,
        input: str,
        *,
        output: OutputSpec = None,
        sources: Sequence[Any] = (),
        prompt: str | None = None,
        model: str | None = None,
        options: OptionsSpec = None,
    ) -> SnapshotStream:
        """Run one turn, yielding a Snapshot as updates arrive.

        Takes the same arguments as :meth:`respond`. With a positive
        ``config.snapshot_interval`` intermediate snapshots are throttled,
        keeping the latest state; the finished turn is always yielded.
        Closing the iterator early closes the adapter stream and leaves
        the transcript as upserted so far. An iteration abandoned with
        ``break`` is closed the same way when the next turn starts.
        """
        return SnapshotStream(functools.partial(
            self._stream_turn,
            input=input,
            output=output,
            sources=sources,
            prompt=prompt,
            model=model,
            options=options,
        ))

    async def _stream_turn(
        self,
        stream: SnapshotStream,
        *,
        input: str,
        output: OutputSpec,
        sources: Sequence[Any],
        prompt: str | None,
        model: str | None,
        options: OptionsSpec,
    ) -> AsyncGenerator[Snapshot, None]:
        await self.close_stream()
        turn = self._begin(input, output=output, sources=sources, prompt=prompt, options=options)
        self._open_stream = stream
        interval = self.config.snapshot_interval
        loop = asyncio.get_running_loop()
        last_emit: float | None = None
        last_content: Any = _UNSET
        pending = False
        try:
            async with aclosing(self._consume(turn, model)) as updates:
                async for _ in updates:
                    now = loop.time()
                    if interval > 0 and last_emit is not None and now - last_emit < interval:
                        pending = True
                        continue
                    snapshot = self._live_snapshot(turn)
                    last_emit, last_content, pending = now, snapshot.content, False
                    yield snapshot
            content = self._final_content(turn)
        except BaseException as exc:
            self._end_with_error(exc)
            raise
        finally:
            if self._open_stream is stream:
                self._open_stream = None
        self._state = TurnState.COMPLETED
        logger.debug("Streamed turn for prompt %s completed", turn.prompt.id)
        if pending or last_emit is None or content != last_content:
            yield Snapshot(
                content=content,
                transcript=turn.transcript.copy(),
                token_usage=turn.usage,
                output=FinalContent(content) if turn.output is not None else None,
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin(
        self,
        input: str,
        *,
        output: OutputSpec,
        sources: Sequence[Any],
        prompt: str | None,
        options: OptionsSpec,
    ) -> _Turn:
        if self._state is TurnState.STREAMING:
            raise SessionBusyError()
        descriptor = self._output_descriptor(output)
        if options is not None and not isinstance(options, GenerationOptions):
            options = GenerationOptions.from_dict(options)
        entry = PromptEntry(
            input=input,
            sources=self._grounding.encode(sources) if sources else b"",
            prompt=prompt if prompt is not None else input,
        )
        self._state = TurnState.STREAMING
        turn = _Turn(prompt=entry, output=descriptor, options=options)
        try:
            self._upsert(turn, entry)
        except BaseException as exc:
            self._end_with_error(exc)
            raise
        logger.debug(
            "Turn started for prompt %s (output=%s)",
            entry.id, descriptor.name if descriptor else "text",
        )
        return turn

    def _output_descriptor(self, output: OutputSpec) -> StructuredOutputDescriptor | None:
        if output is None:
            return None
        if isinstance(output, StructuredOutputDescriptor):
            descriptor = output
        elif isinstance(output, str):
            found = self._outputs.get(output)
            if found is None:
                raise ValueError(f"Unknown structured output: {output!r}")
            return found
        elif isinstance(output, type) and issubclass(output, BaseModel):
            descriptor = self._outputs.get(output.__name__) or StructuredOutputDescriptor.from_model(output)
        else:
            raise TypeError(f"Unsupported output: {output!r}")
        if descriptor.name not in self._outputs:
            self._outputs.register(descriptor)
        return descriptor

    async def _consume(
        self,
        turn: _Turn,
        model: str | None,
    ) -> AsyncIterator[AdapterUpdate]:
        model = model or self.config.default_model
        if turn.options is not None:
            logger.debug("Requesting %s with %s", model, turn.options.non_none_fields())
        stream = self._adapter.respond(
            turn.prompt,
            output=turn.output,
            model=model,
            transcript=self._transcript.copy(),
            options=turn.options,
        )
        try:
            async for update in stream:
                self._apply(turn, update)
                yield update
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def _apply(self, turn: _Turn, update: AdapterUpdate) -> None:
        if isinstance(update, UsageUpdate):
            self._token_usage = self._token_usage.merge(update.usage)
            turn.usage = turn.usage.merge(update.usage)
            return
        entry = update.entry
        existing = self._transcript.get(entry.id)
        if (
            existing is not None
            and self.config.enforce_terminal_entries
            and existing.is_terminal
        ):
            if existing != entry:
                logger.warning(
                    "Ignoring update to finished %s entry %s", existing.entry_type, entry.id
                )
            return
        if isinstance(entry, ToolOutputEntry) and self.config.enforce_tool_output_order:
            self._check_output_order(entry)
        self._upsert(turn, entry)

    def _check_output_order(self, entry: ToolOutputEntry) -> None:
        located = self._transcript.find_tool_call(entry.call_id)
        if located is None:
            raise TranscriptIntegrityError(
                entry.id, f"no tool call with call_id {entry.call_id!r} precedes it"
            )
        position = self._transcript.position_of(entry.id)
        if position is not None and located[0] > position:
            raise TranscriptIntegrityError(
                entry.id, f"tool call {entry.call_id!r} appears after its output"
            )

    def _upsert(self, turn: _Turn, entry: Entry) -> None:
        self._transcript.upsert(entry)
        turn.transcript.upsert(entry)
        for listener in list(self._listeners):
            listener(self._transcript, entry)

    def _final_content(self, turn: _Turn) -> Any:
        if turn.output is None:
            response = turn.transcript.last_response()
            if response is None:
                raise EmptyResponseError()
            return response.text
        located = turn.transcript.last_structured_output()
        if located is None:
            raise EmptyResponseError()
        status, segment = located
        if status is not Status.COMPLETED:
            raise StructuredContentParsingError(
                segment.content, ValueError(f"response ended with status {status.value!r}")
            )
        return decode_final(turn.output, segment)

    def _live_snapshot(self, turn: _Turn) -> Snapshot:
        content: Any = None
        projection: StructuredOutputProjection | None = None
        if turn.output is None:
            response = turn.transcript.last_response()
            if response is not None:
                content = response.text
        else:
            try:
                located = turn.transcript.last_structured_output()
            except GenerationError:
                response = turn.transcript.last_response()
                if response is not None and response.is_terminal:
                    raise
                located = None
            if located is not None:
                status, segment = located
                projection = project(turn.output, segment, status)
                content = projection.content
        return Snapshot(
            content=content,
            transcript=turn.transcript.copy(),
            token_usage=turn.usage,
            output=projection,
        )

    def _end_with_error(self, exc: BaseException) -> None:
        if isinstance(exc, (asyncio.CancelledError, GeneratorExit)):
            self._state = TurnState.CANCELLED
            logger.debug("Turn cancelled")
        else:
            self._state = TurnState.FAILED
            logger.debug("Turn failed: %s", exc)
