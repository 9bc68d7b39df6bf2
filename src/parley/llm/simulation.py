"""Deterministic adapter for tests, demos and previews.

SimulationAdapter replays a scripted list of generations as adapter
updates, exercising the same session path a real provider would. Tool
runs execute their handler for real, so a handler raising
:class:`ToolRunProblem` produces a problem envelope output.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Sequence, Union

from pydantic_core import to_json

from parley.exceptions import ContentRefusalError, ToolExecutionError
from parley.llm.protocols import AdapterUpdate, TranscriptUpdate, UsageUpdate
from parley.models.transcript import (
    ReasoningEntry,
    ResponseEntry,
    Status,
    StructuredSegment,
    TextSegment,
    ToolCall,
    ToolCallsEntry,
    ToolOutputEntry,
)
from parley.tools.problem import ToolRunProblem

if TYPE_CHECKING:
    from parley.models.config import GenerationOptions
    from parley.models.transcript import PromptEntry, Transcript
    from parley.models.usage import TokenUsage
    from parley.structured.descriptor import StructuredOutputDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulatedReasoning:
    summary: str


@dataclass(frozen=True)
class SimulatedToolRun:
    """A tool call followed by its output.

    Exactly one of ``output`` or ``handler`` is normally given. The handler
    receives the arguments dict and may be sync or async.
    """

    tool_name: str
    arguments: dict[str, Any] | str = field(default_factory=dict)
    output: Any = None
    handler: Callable[[dict[str, Any]], Any] | None = None
    call_id: str | None = None


@dataclass(frozen=True)
class SimulatedResponse:
    text: str


@dataclass(frozen=True)
class SimulatedStructuredResponse:
    """A structured final response; ``type_name`` defaults to the requested output."""

    content: Any
    type_name: str | None = None


@dataclass(frozen=True)
class SimulatedRefusal:
    """The model declines to answer; the turn fails with ContentRefusalError."""

    explanation: str | None = None


@dataclass(frozen=True)
class SimulatedUpdates:
    """Raw updates emitted verbatim, for scripting streamed entries."""

    updates: Sequence[AdapterUpdate]


SimulatedGeneration = Union[
    SimulatedReasoning,
    SimulatedToolRun,
    SimulatedResponse,
    SimulatedStructuredResponse,
    SimulatedRefusal,
    SimulatedUpdates,
]


def _encode(value: Any) -> str:
    # Strings are taken as raw JSON text.
    if isinstance(value, str):
        return value
    return to_json(value).decode("utf-8")


class SimulationAdapter:
    """Adapter that replays scripted generations.

    Usage::

        adapter = SimulationAdapter(
            [
                SimulatedToolRun("get_weather", {"city": "Paris"}, output=report),
                SimulatedResponse("18°, cloudy in Paris."),
            ],
            token_usage=TokenUsage(input_tokens=12, output_tokens=8),
        )

    Args:
        generations: Steps replayed in order on every turn.
        delay: Seconds to sleep before each step.
        token_usage: Usage reported once at the end of each turn.
    """

    def __init__(
        self,
        generations: Sequence[SimulatedGeneration],
        *,
        delay: float = 0.0,
        token_usage: TokenUsage | None = None,
    ) -> None:
        self.generations = list(generations)
        self.delay = delay
        self.token_usage = token_usage
        self.closed_streams = 0

    async def respond(
        self,
        prompt: PromptEntry,
        *,
        output: StructuredOutputDescriptor | None = None,
        model: str | None = None,
        transcript: Transcript | None = None,
        options: GenerationOptions | None = None,
    ) -> AsyncIterator[AdapterUpdate]:
        logger.debug("Simulating %d generations for prompt %s", len(self.generations), prompt.id)
        try:
            for generation in self.generations:
                if self.delay:
                    await asyncio.sleep(self.delay)
                if isinstance(generation, SimulatedReasoning):
                    yield TranscriptUpdate(
                        ReasoningEntry(summary=(generation.summary,), status=Status.COMPLETED)
                    )
                elif isinstance(generation, SimulatedToolRun):
                    calls, arguments = self._tool_calls(generation)
                    yield TranscriptUpdate(calls)
                    yield TranscriptUpdate(
                        await self._tool_output(generation, calls.calls[0], arguments)
                    )
                elif isinstance(generation, SimulatedResponse):
                    yield TranscriptUpdate(
                        ResponseEntry(
                            segments=(TextSegment(content=generation.text),),
                            status=Status.COMPLETED,
                        )
                    )
                elif isinstance(generation, SimulatedStructuredResponse):
                    type_name = generation.type_name or (output.name if output else "output")
                    yield TranscriptUpdate(
                        ResponseEntry(
                            segments=(
                                StructuredSegment(
                                    type_name=type_name, content=_encode(generation.content)
                                ),
                            ),
                            status=Status.COMPLETED,
                        )
                    )
                elif isinstance(generation, SimulatedRefusal):
                    raise ContentRefusalError(generation.explanation)
                elif isinstance(generation, SimulatedUpdates):
                    for update in generation.updates:
                        if self.delay:
                            await asyncio.sleep(self.delay)
                        yield update
                else:
                    raise TypeError(f"Unsupported generation: {type(generation).__name__}")
            if self.token_usage is not None:
                yield UsageUpdate(self.token_usage)
        finally:
            self.closed_streams += 1

    def _tool_calls(self, generation: SimulatedToolRun) -> tuple[ToolCallsEntry, dict[str, Any]]:
        call_id = generation.call_id or f"call_{uuid.uuid4().hex[:12]}"
        if isinstance(generation.arguments, str):
            raw_arguments = generation.arguments
            arguments = json.loads(raw_arguments) if raw_arguments.strip() else {}
        else:
            arguments = dict(generation.arguments)
            raw_arguments = json.dumps(arguments)

        calls = ToolCallsEntry(
            calls=(
                ToolCall(
                    call_id=call_id,
                    tool_name=generation.tool_name,
                    arguments=raw_arguments,
                    status=Status.COMPLETED,
                ),
            )
        )
        return calls, arguments

    async def _tool_output(
        self, generation: SimulatedToolRun, call: ToolCall, arguments: dict[str, Any]
    ) -> ToolOutputEntry:
        if generation.handler is None:
            content = to_json(generation.output).decode("utf-8")
        else:
            try:
                result = generation.handler(arguments)
                if inspect.isawaitable(result):
                    result = await result
                content = to_json(result).decode("utf-8")
            except ToolRunProblem as problem:
                logger.debug("Tool %s reported a problem: %s", generation.tool_name, problem)
                content = problem.to_json()
            except Exception as exc:
                raise ToolExecutionError(generation.tool_name, exc) from exc

        return ToolOutputEntry(
            call_id=call.call_id,
            tool_name=generation.tool_name,
            segment=StructuredSegment(type_name=generation.tool_name, content=content),
            status=Status.COMPLETED,
        )
