"""Parley exception hierarchy.

All Parley-specific exceptions inherit from ParleyError. Provider and
transport errors live in :mod:`parley.llm.errors`.
"""

from __future__ import annotations


class ParleyError(Exception):
    """Base exception for all Parley errors."""


# ---------------------------------------------------------------------------
# Tool resolution
# ---------------------------------------------------------------------------


class ToolResolutionError(ParleyError):
    """Raised when a tool call cannot be turned into a typed tool run.

    Attributes:
        tool_name: Name of the tool the call targeted.
        call_id: Provider correlation id of the call, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        call_id: str | None = None,
    ) -> None:
        self.tool_name = tool_name
        self.call_id = call_id
        super().__init__(message)


class UnknownToolError(ToolResolutionError):
    """Raised when a tool call names a tool that is not registered."""

    def __init__(
        self,
        tool_name: str,
        available: list[str] | None = None,
        *,
        call_id: str | None = None,
    ) -> None:
        self.available = list(available or [])
        listing = ", ".join(sorted(self.available)) or "none"
        super().__init__(
            f"Unknown tool: {tool_name!r} (registered: {listing})",
            tool_name=tool_name,
            call_id=call_id,
        )


class ToolDecodeError(ToolResolutionError):
    """Raised when a registered tool's arguments or output fail to decode."""

    def __init__(
        self,
        tool_name: str,
        description: str,
        *,
        call_id: str | None = None,
    ) -> None:
        self.description = description
        super().__init__(
            f"Failed to resolve {tool_name!r}: {description}",
            tool_name=tool_name,
            call_id=call_id,
        )


class PartialJSONError(ParleyError, ValueError):
    """Raised when a streamed JSON fragment is malformed, not just incomplete."""

    def __init__(self, raw: str, detail: str) -> None:
        self.raw = raw
        self.detail = detail
        super().__init__(f"Malformed JSON fragment: {detail}")


class GroundingDecodeError(ParleyError):
    """Raised when prompt grounding bytes cannot be decoded."""


# ---------------------------------------------------------------------------
# Generation / response shape
# ---------------------------------------------------------------------------


class GenerationError(ParleyError):
    """Base for errors that end a generation turn."""


class EmptyResponseError(GenerationError):
    """Raised when a turn finishes without any response content."""

    def __init__(self, message: str = "The model produced no response") -> None:
        super().__init__(message)


class UnexpectedTextResponseError(GenerationError):
    """Raised when structured output was requested but text came back."""

    def __init__(self) -> None:
        super().__init__("Expected a structured response but received text")


class UnexpectedStructuredResponseError(GenerationError):
    """Raised when a response does not contain exactly one structured segment."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(
            f"Expected exactly one structured segment, found {count}"
        )


class StructuredContentParsingError(GenerationError):
    """Raised when structured content fails to decode in strict mode.

    Attributes:
        raw_content: The raw JSON text that failed to decode.
        underlying: The decoder's original exception.
    """

    def __init__(self, raw_content: str, underlying: BaseException) -> None:
        self.raw_content = raw_content
        self.underlying = underlying
        super().__init__(f"Failed to parse structured content: {underlying}")


class ContentRefusalError(GenerationError):
    """Raised when the model refuses to produce content."""

    def __init__(self, explanation: str | None = None) -> None:
        self.explanation = explanation
        message = "The model refused to generate content"
        if explanation:
            message = f"{message}: {explanation}"
        super().__init__(message)


class ToolExecutionError(GenerationError):
    """Raised when a tool's implementation fails with a non-recoverable error."""

    def __init__(self, tool_name: str, underlying: BaseException) -> None:
        self.tool_name = tool_name
        self.underlying = underlying
        super().__init__(f"Tool {tool_name!r} failed: {underlying}")


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


class SessionBusyError(ParleyError):
    """Raised when a turn is started while another turn is still streaming."""

    def __init__(self) -> None:
        super().__init__(
            "A turn is already in progress on this session. "
            "Finish or close it before starting another."
        )


class TranscriptIntegrityError(ParleyError):
    """Raised when an update would violate transcript ordering rules."""

    def __init__(self, entry_id: str, reason: str) -> None:
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Transcript entry {entry_id!r} rejected: {reason}")
