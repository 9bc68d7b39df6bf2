"""Tests for the scripted SimulationAdapter."""

from __future__ import annotations

import json

import pytest

from parley.exceptions import ContentRefusalError, ToolExecutionError
from parley.llm.protocols import Adapter, TranscriptUpdate, UsageUpdate
from parley.llm.simulation import (
    SimulatedReasoning,
    SimulatedRefusal,
    SimulatedResponse,
    SimulatedStructuredResponse,
    SimulatedToolRun,
    SimulationAdapter,
)
from parley.models.transcript import (
    PromptEntry,
    ReasoningEntry,
    ResponseEntry,
    Status,
    ToolCallsEntry,
    ToolOutputEntry,
)
from parley.models.usage import TokenUsage
from parley.tools import ToolRunProblem


async def _updates(adapter, **kwargs):
    prompt = PromptEntry(input="hi")
    return [update async for update in adapter.respond(prompt, **kwargs)]


class TestSimulationAdapter:
    def test_satisfies_protocol(self):
        assert isinstance(SimulationAdapter([]), Adapter)

    @pytest.mark.asyncio
    async def test_replays_generations_in_order(self):
        adapter = SimulationAdapter(
            [
                SimulatedReasoning("Look up the weather first."),
                SimulatedToolRun("get_weather", {"city": "Paris"}, output={"temperature": 18}),
                SimulatedResponse("18° in Paris."),
            ],
            token_usage=TokenUsage(input_tokens=3),
        )
        updates = await _updates(adapter)
        entries = [u.entry for u in updates if isinstance(u, TranscriptUpdate)]
        assert [type(e) for e in entries] == [
            ReasoningEntry, ToolCallsEntry, ToolOutputEntry, ResponseEntry,
        ]
        assert all(e.is_terminal for e in entries)
        assert updates[-1] == UsageUpdate(TokenUsage(input_tokens=3))
        assert adapter.closed_streams == 1

    @pytest.mark.asyncio
    async def test_tool_call_and_output_share_call_id(self):
        adapter = SimulationAdapter([SimulatedToolRun("get_weather", {"city": "Paris"}, output=1)])
        calls, output = [u.entry for u in await _updates(adapter)]
        call = calls.calls[0]
        assert call.call_id == output.call_id
        assert call.call_id.startswith("call_")
        assert json.loads(call.arguments) == {"city": "Paris"}
        assert output.segment.content == "1"

    @pytest.mark.asyncio
    async def test_async_handler_receives_arguments(self):
        async def lookup(arguments):
            return {"temperature": 20 if arguments["city"] == "Rome" else 0}

        adapter = SimulationAdapter([
            SimulatedToolRun("get_weather", '{"city": "Rome"}', handler=lookup, call_id="c9"),
        ])
        _, output = [u.entry for u in await _updates(adapter)]
        assert output.call_id == "c9"
        assert json.loads(output.segment.content) == {"temperature": 20}

    @pytest.mark.asyncio
    async def test_problem_becomes_envelope(self):
        def lookup(arguments):
            raise ToolRunProblem("City not found", city=arguments["city"])

        adapter = SimulationAdapter([SimulatedToolRun("get_weather", {"city": "Atlantis"}, handler=lookup)])
        _, output = [u.entry for u in await _updates(adapter)]
        assert json.loads(output.segment.content) == {
            "city": "Atlantis",
            "error": True,
            "reason": "City not found",
        }

    @pytest.mark.asyncio
    async def test_other_failures_raise(self):
        def lookup(arguments):
            raise RuntimeError("service down")

        adapter = SimulationAdapter([SimulatedToolRun("get_weather", handler=lookup)])
        with pytest.raises(ToolExecutionError, match="service down"):
            await _updates(adapter)
        assert adapter.closed_streams == 1

    @pytest.mark.asyncio
    async def test_structured_response_type_name(self, forecast_output):
        adapter = SimulationAdapter([
            SimulatedStructuredResponse({"summary": "Cloudy"}),
            SimulatedStructuredResponse('{"a": 1}', type_name="Other"),
        ])
        first, second = [u.entry for u in await _updates(adapter, output=forecast_output)]
        assert first.segments[0].type_name == "Forecast"
        assert json.loads(first.segments[0].content) == {"summary": "Cloudy"}
        assert second.segments[0].type_name == "Other"
        assert second.segments[0].content == '{"a": 1}'
        assert first.status is Status.COMPLETED

    @pytest.mark.asyncio
    async def test_refusal_raises_after_earlier_steps(self):
        adapter = SimulationAdapter([
            SimulatedReasoning("Is this allowed?"),
            SimulatedRefusal("unsafe request"),
            SimulatedResponse("never reached"),
        ])
        seen = []
        with pytest.raises(ContentRefusalError) as exc_info:
            async for update in adapter.respond(PromptEntry(input="hi")):
                seen.append(update.entry)
        assert exc_info.value.explanation == "unsafe request"
        assert str(exc_info.value) == "The model refused to generate content: unsafe request"
        assert [type(e) for e in seen] == [ReasoningEntry]
        assert adapter.closed_streams == 1

    @pytest.mark.asyncio
    async def test_unsupported_generation(self):
        with pytest.raises(TypeError, match="Unsupported generation"):
            await _updates(SimulationAdapter(["not a generation"]))
