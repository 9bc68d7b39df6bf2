"""Parley domain models.

Re-exports key models for convenient access.
"""

from parley.models.config import GenerationOptions, SessionConfig
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
    integrity_problems,
    parse_entries,
)
from parley.models.usage import TokenUsage

__all__ = [
    "Entry",
    "GenerationOptions",
    "PromptEntry",
    "ReasoningEntry",
    "ResponseEntry",
    "Segment",
    "SessionConfig",
    "Status",
    "StructuredSegment",
    "TextSegment",
    "TokenUsage",
    "ToolCall",
    "ToolCallsEntry",
    "ToolOutputEntry",
    "Transcript",
    "integrity_problems",
    "parse_entries",
]
