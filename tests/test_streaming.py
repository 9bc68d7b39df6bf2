"""Tests for Session.stream_response snapshots."""

from __future__ import annotations

from contextlib import aclosing

import pytest

from parley.exceptions import SessionBusyError, UnexpectedTextResponseError
from parley.llm.protocols import TranscriptUpdate, UsageUpdate
from parley.llm.simulation import (
    SimulatedReasoning,
    SimulatedResponse,
    SimulatedToolRun,
    SimulatedUpdates,
    SimulationAdapter,
)
from parley.models.config import SessionConfig
from parley.models.transcript import (
    ReasoningEntry,
    ResponseEntry,
    Status,
    StructuredSegment,
    TextSegment,
)
from parley.models.usage import TokenUsage
from parley.session import Session, SnapshotStream, TurnState
from parley.structured import FinalContent, PartialContent
from tests.support import Forecast, WeatherReport, weather_call, weather_output


async def _collect(stream):
    async with aclosing(stream) as snapshots:
        return [snapshot async for snapshot in snapshots]


def _forecast_updates():
    return SimulatedUpdates([
        TranscriptUpdate(ReasoningEntry(id="think", summary=("checking",), status=Status.COMPLETED)),
        TranscriptUpdate(ResponseEntry(
            id="r",
            segments=[StructuredSegment(
                type_name="Forecast",
                content='{"location": {"name": "Paris"}, "summary": "Clou',
            )],
            status=Status.IN_PROGRESS,
        )),
        TranscriptUpdate(ResponseEntry(
            id="r",
            segments=[StructuredSegment(
                type_name="Forecast",
                content=(
                    '{"location": {"name": "Paris", "country": "France"}, '
                    '"summary": "Cloudy", "highs": [18]}'
                ),
            )],
            status=Status.COMPLETED,
        )),
    ])


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_upsert_by_id_does_not_grow_transcript(self, registry):
        adapter = SimulationAdapter([
            SimulatedUpdates([
                TranscriptUpdate(weather_call('{"city": "Pa', status=Status.IN_PROGRESS)),
                TranscriptUpdate(weather_call('{"city": "Paris"}', status=Status.COMPLETED)),
                TranscriptUpdate(weather_output()),
            ]),
            SimulatedResponse("18°, cloudy in Paris."),
        ])
        session = Session(adapter, tools=registry)
        snapshots = await _collect(session.stream_response("Weather?"))

        assert [len(s.transcript) for s in snapshots[:2]] == [2, 2]
        assert snapshots[0].transcript[1].calls[0].status is Status.IN_PROGRESS
        assert snapshots[1].transcript[1].calls[0].status is Status.COMPLETED
        assert len(session.transcript) == 4
        assert snapshots[-1].content == "18°, cloudy in Paris."

    @pytest.mark.asyncio
    async def test_structured_content_progresses(self):
        session = Session(SimulationAdapter([_forecast_updates()]))
        snapshots = await _collect(session.stream_response("Forecast?", output=Forecast))

        assert len(snapshots) == 3
        assert snapshots[0].content is None
        assert snapshots[0].output is None

        assert isinstance(snapshots[1].output, PartialContent)
        assert snapshots[1].content.location.name == "Paris"
        assert snapshots[1].content.summary is None

        assert isinstance(snapshots[2].output, FinalContent)
        assert isinstance(snapshots[2].content, Forecast)
        assert snapshots[2].content.location.country == "France"
        assert session.state is TurnState.COMPLETED

    @pytest.mark.asyncio
    async def test_text_content_progresses(self):
        adapter = SimulationAdapter([
            SimulatedUpdates([
                TranscriptUpdate(ResponseEntry(
                    id="r", segments=[TextSegment(content="18°")], status=Status.IN_PROGRESS
                )),
                TranscriptUpdate(ResponseEntry(
                    id="r", segments=[TextSegment(content="18°, cloudy.")], status=Status.COMPLETED
                )),
            ]),
        ])
        session = Session(adapter)
        contents = [s.content for s in await _collect(session.stream_response("hi"))]
        assert contents == ["18°", "18°, cloudy."]

    @pytest.mark.asyncio
    async def test_snapshots_are_independent(self, registry):
        adapter = SimulationAdapter([
            SimulatedToolRun("get_weather", {"city": "Paris"},
                             output=WeatherReport(temperature=18, condition="cloudy")),
            SimulatedResponse("Cloudy."),
        ])
        session = Session(adapter, tools=registry)
        snapshots = await _collect(session.stream_response("Weather?"))
        assert [len(s.transcript) for s in snapshots] == [2, 3, 4]
        assert snapshots[0].transcript is not session.transcript
        assert snapshots[0].content is None

    @pytest.mark.asyncio
    async def test_token_usage_arrives_last(self):
        adapter = SimulationAdapter(
            [SimulatedResponse("Hello.")],
            token_usage=TokenUsage(input_tokens=5, output_tokens=2),
        )
        session = Session(adapter)
        snapshots = await _collect(session.stream_response("hi"))
        assert snapshots[0].token_usage == TokenUsage()
        assert snapshots[-1].token_usage == TokenUsage(input_tokens=5, output_tokens=2)
        assert session.token_usage == TokenUsage(input_tokens=5, output_tokens=2)

    @pytest.mark.asyncio
    async def test_final_snapshot_when_nothing_was_streamed(self):
        class SilentAfterUsage:
            async def respond(self, prompt, *, output, model, transcript, options):
                yield TranscriptUpdate(ResponseEntry(segments=[TextSegment(content="Done.")]))
                yield UsageUpdate(TokenUsage(total_tokens=1))

        session = Session(SilentAfterUsage(), config=SessionConfig(snapshot_interval=3600))
        snapshots = await _collect(session.stream_response("hi"))
        assert len(snapshots) == 2
        assert snapshots[-1].content == "Done."
        assert snapshots[-1].token_usage == TokenUsage(total_tokens=1)


class TestThrottling:
    @pytest.mark.asyncio
    async def test_interval_coalesces_updates(self):
        session = Session(
            SimulationAdapter([_forecast_updates()]),
            config=SessionConfig(snapshot_interval=3600),
        )
        snapshots = await _collect(session.stream_response("Forecast?", output=Forecast))
        assert len(snapshots) == 2
        assert snapshots[0].content is None
        assert isinstance(snapshots[-1].content, Forecast)
        assert len(snapshots[-1].transcript) == 3


class TestEarlyClose:
    @pytest.mark.asyncio
    async def test_closing_stops_the_adapter(self, registry):
        adapter = SimulationAdapter([
            SimulatedReasoning("thinking"),
            SimulatedResponse("never reached"),
        ])
        session = Session(adapter, tools=registry)
        async with aclosing(session.stream_response("hi")) as stream:
            async for snapshot in stream:
                assert snapshot.content is None
                break

        assert adapter.closed_streams == 1
        assert session.state is TurnState.CANCELLED
        assert len(session.transcript) == 2

    @pytest.mark.asyncio
    async def test_new_turn_after_close(self):
        adapter = SimulationAdapter([SimulatedResponse("again")])
        session = Session(adapter)
        async with aclosing(session.stream_response("first")) as stream:
            async for _ in stream:
                break
        response = await session.respond("second")
        assert response.content == "again"
        assert adapter.closed_streams == 2


    @pytest.mark.asyncio
    async def test_break_without_closing_frees_the_session(self):
        adapter = SimulationAdapter([SimulatedReasoning("thinking"), SimulatedResponse("done")])
        session = Session(adapter)
        stream = session.stream_response("first")
        assert isinstance(stream, SnapshotStream)
        async for _ in stream:
            break
        assert session.state is TurnState.STREAMING

        response = await session.respond("second")
        assert response.content == "done"
        assert adapter.closed_streams == 2
        assert [e.entry_type for e in session.transcript] == [
            "prompt", "reasoning", "prompt", "reasoning", "response",
        ]

    @pytest.mark.asyncio
    async def test_new_stream_after_abandoned_stream(self):
        adapter = SimulationAdapter([SimulatedReasoning("thinking"), SimulatedResponse("done")])
        session = Session(adapter)
        async for _ in session.stream_response("first"):
            break
        snapshots = await _collect(session.stream_response("second"))
        assert snapshots[-1].content == "done"
        assert adapter.closed_streams == 2
        assert session.state is TurnState.COMPLETED

    @pytest.mark.asyncio
    async def test_close_stream_releases_an_abandoned_turn(self):
        adapter = SimulationAdapter([SimulatedReasoning("thinking"), SimulatedResponse("done")])
        session = Session(adapter)
        async for _ in session.stream_response("first"):
            break
        with pytest.raises(SessionBusyError):
            session.clear_transcript()

        await session.close_stream()
        assert session.state is TurnState.CANCELLED
        assert adapter.closed_streams == 1
        session.clear_transcript()
        assert len(session.transcript) == 0

    @pytest.mark.asyncio
    async def test_close_stream_without_open_stream(self):
        session = Session(SimulationAdapter([SimulatedResponse("done")]))
        await session.close_stream()
        assert session.state is TurnState.NOT_STARTED


class TestStreamingFailures:
    @pytest.mark.asyncio
    async def test_text_for_structured_output_raises(self):
        session = Session(SimulationAdapter([SimulatedResponse("Sunny.")]))
        with pytest.raises(UnexpectedTextResponseError):
            await _collect(session.stream_response("Forecast?", output=Forecast))
        assert session.state is TurnState.FAILED
        assert len(session.transcript) == 2

    @pytest.mark.asyncio
    async def test_in_progress_mixed_response_is_tolerated(self):
        adapter = SimulationAdapter([
            SimulatedUpdates([
                TranscriptUpdate(ResponseEntry(
                    id="r",
                    segments=[TextSegment(content="Let me")],
                    status=Status.IN_PROGRESS,
                )),
                TranscriptUpdate(ResponseEntry(
                    id="r",
                    segments=[StructuredSegment(
                        type_name="Forecast",
                        content=(
                            '{"location": {"name": "Oslo", "country": "Norway"}, '
                            '"summary": "Snow", "highs": [-3]}'
                        ),
                    )],
                    status=Status.COMPLETED,
                )),
            ]),
        ])
        session = Session(adapter)
        snapshots = await _collect(session.stream_response("Forecast?", output=Forecast))
        assert snapshots[0].content is None
        assert snapshots[-1].content.summary == "Snow"
