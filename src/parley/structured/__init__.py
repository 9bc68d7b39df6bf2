"""Structured output decoding."""

from parley.structured.decoder import (
    StructuredOutputs,
    UnknownStructuredOutput,
    decode_final,
    project,
)
from parley.structured.descriptor import (
    ContentError,
    FinalContent,
    PartialContent,
    StructuredOutputDescriptor,
    StructuredOutputProjection,
)

__all__ = [
    "ContentError",
    "FinalContent",
    "PartialContent",
    "StructuredOutputDescriptor",
    "StructuredOutputProjection",
    "StructuredOutputs",
    "UnknownStructuredOutput",
    "decode_final",
    "project",
]
