"""Parley: transcript and tool-resolution core for conversational agents.

Parley keeps the running conversation history of an agent, correlates
streamed tool calls with their outputs, and decodes partial and final
model output into typed values, independent of the provider that
produced it.
"""

from parley._version import __version__

# Session loop
from parley.session import AgentResponse, Session, Snapshot, SnapshotStream, TurnState

# Transcript model
from parley.models.transcript import (
    Entry,
    PromptEntry,
    ReasoningEntry,
    ResponseEntry,
    Segment,
    Status,
    StructuredSegment,
    TextSegment,
    ToolCall,
    ToolCallsEntry,
    ToolOutputEntry,
    Transcript,
)
from parley.models.usage import TokenUsage

# Configuration
from parley.models.config import GenerationOptions, SessionConfig

# Tools
from parley.tools import (
    Problem,
    ToolDescriptor,
    ToolRegistry,
    ToolRun,
    ToolRunProblem,
    UnknownToolRun,
    partial_model,
)
from parley.engine.resolver import ToolResolver
from parley.engine.decoded import DecodedTranscript, TranscriptDecoder
from parley.engine.partial_json import parse_partial

# Structured outputs
from parley.structured import (
    ContentError,
    FinalContent,
    PartialContent,
    StructuredOutputDescriptor,
    StructuredOutputs,
    UnknownStructuredOutput,
)

# Grounding
from parley.grounding import GroundingCodec, JSONGroundingCodec

# Adapters
from parley.llm.protocols import Adapter, TranscriptUpdate, UsageUpdate

# Exceptions
from parley.exceptions import (
    ContentRefusalError,
    EmptyResponseError,
    GenerationError,
    GroundingDecodeError,
    ParleyError,
    PartialJSONError,
    SessionBusyError,
    StructuredContentParsingError,
    ToolDecodeError,
    ToolExecutionError,
    ToolResolutionError,
    TranscriptIntegrityError,
    UnexpectedStructuredResponseError,
    UnexpectedTextResponseError,
    UnknownToolError,
)

__all__ = [
    "__version__",
    # Session
    "Session",
    "AgentResponse",
    "Snapshot",
    "SnapshotStream",
    "TurnState",
    # Transcript
    "Transcript",
    "Entry",
    "PromptEntry",
    "ReasoningEntry",
    "ToolCallsEntry",
    "ToolCall",
    "ToolOutputEntry",
    "ResponseEntry",
    "Segment",
    "TextSegment",
    "StructuredSegment",
    "Status",
    "TokenUsage",
    # Configuration
    "SessionConfig",
    "GenerationOptions",
    # Tools
    "ToolDescriptor",
    "ToolRegistry",
    "ToolRun",
    "UnknownToolRun",
    "ToolResolver",
    "Problem",
    "ToolRunProblem",
    "partial_model",
    "parse_partial",
    "TranscriptDecoder",
    "DecodedTranscript",
    # Structured outputs
    "StructuredOutputDescriptor",
    "StructuredOutputs",
    "PartialContent",
    "FinalContent",
    "ContentError",
    "UnknownStructuredOutput",
    # Grounding
    "GroundingCodec",
    "JSONGroundingCodec",
    # Adapters
    "Adapter",
    "TranscriptUpdate",
    "UsageUpdate",
    # Exceptions
    "ParleyError",
    "ToolResolutionError",
    "UnknownToolError",
    "ToolDecodeError",
    "PartialJSONError",
    "GroundingDecodeError",
    "GenerationError",
    "EmptyResponseError",
    "UnexpectedTextResponseError",
    "UnexpectedStructuredResponseError",
    "StructuredContentParsingError",
    "ContentRefusalError",
    "ToolExecutionError",
    "SessionBusyError",
    "TranscriptIntegrityError",
]
