"""Shared test fixtures for Parley."""

from __future__ import annotations

import pytest

from parley.structured import StructuredOutputDescriptor
from parley.tools import ToolDescriptor, ToolRegistry
from tests.support import Forecast, WeatherArgs, WeatherReport


@pytest.fixture
def weather_tool() -> ToolDescriptor:
    return ToolDescriptor.from_models("get_weather", WeatherArgs, WeatherReport)


@pytest.fixture
def registry(weather_tool) -> ToolRegistry:
    return ToolRegistry([weather_tool])


@pytest.fixture
def forecast_output() -> StructuredOutputDescriptor:
    return StructuredOutputDescriptor.from_model(Forecast)
