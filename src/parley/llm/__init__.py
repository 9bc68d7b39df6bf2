"""Adapter infrastructure for Parley.

Provides the adapter protocol and update types, the provider/transport
error taxonomy with an httpx mapping helper, and a deterministic
simulation adapter.
"""

from parley.llm.errors import (
    ProviderError,
    ProviderErrorCategory,
    RequestFailedError,
    RequestFailureReason,
    StreamFailureReason,
    StreamingFailureError,
    category_for_status,
    from_http_error,
)
from parley.llm.protocols import Adapter, AdapterUpdate, TranscriptUpdate, UsageUpdate
from parley.llm.simulation import (
    SimulatedReasoning,
    SimulatedRefusal,
    SimulatedResponse,
    SimulatedStructuredResponse,
    SimulatedToolRun,
    SimulatedUpdates,
    SimulationAdapter,
)

__all__ = [
    "Adapter",
    "AdapterUpdate",
    "TranscriptUpdate",
    "UsageUpdate",
    "ProviderError",
    "ProviderErrorCategory",
    "RequestFailedError",
    "RequestFailureReason",
    "StreamFailureReason",
    "StreamingFailureError",
    "category_for_status",
    "from_http_error",
    "SimulationAdapter",
    "SimulatedReasoning",
    "SimulatedRefusal",
    "SimulatedResponse",
    "SimulatedStructuredResponse",
    "SimulatedToolRun",
    "SimulatedUpdates",
]
