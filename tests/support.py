"""Shared models and builders for Parley tests.

Defines the weather tool and forecast output types plus helpers for
building the transcripts a weather turn produces.
"""

from __future__ import annotations

from pydantic import BaseModel

from parley.models.transcript import (
    PromptEntry,
    ResponseEntry,
    Status,
    StructuredSegment,
    TextSegment,
    ToolCall,
    ToolCallsEntry,
    ToolOutputEntry,
    Transcript,
)


class WeatherArgs(BaseModel):
    """Look up the current weather for a city."""

    city: str
    unit: str = "celsius"


class WeatherReport(BaseModel):
    temperature: int
    condition: str


class Location(BaseModel):
    name: str
    country: str


class Forecast(BaseModel):
    location: Location
    summary: str
    highs: list[int]


def weather_call(
    arguments: str = '{"city": "Paris"}',
    *,
    call_id: str = "call_1",
    status: Status = Status.COMPLETED,
    tool_name: str = "get_weather",
) -> ToolCallsEntry:
    return ToolCallsEntry(
        id=f"tc_{call_id}",
        calls=[ToolCall(id=f"c_{call_id}", call_id=call_id, tool_name=tool_name,
                        arguments=arguments, status=status)],
    )


def weather_output(
    content: str = '{"temperature": 18, "condition": "cloudy"}',
    *,
    call_id: str = "call_1",
    tool_name: str = "get_weather",
) -> ToolOutputEntry:
    return ToolOutputEntry(
        id=f"out_{call_id}",
        call_id=call_id,
        tool_name=tool_name,
        segment=StructuredSegment(type_name=tool_name, content=content),
        status=Status.COMPLETED,
    )


def weather_transcript() -> Transcript:
    """A complete weather turn: prompt, call, output, response."""
    return Transcript([
        PromptEntry(id="p1", input="Weather in Paris?", prompt="Weather in Paris?"),
        weather_call(),
        weather_output(),
        ResponseEntry(id="r1", segments=[TextSegment(content="18°, cloudy in Paris.")]),
    ])
