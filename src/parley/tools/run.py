"""Typed tool runs.

A ToolRun pairs a tool call's decoded arguments with at most one outcome:
a decoded output, a recoverable Problem, or a resolution error. While the
call is still streaming the arguments are a partial projection; once the
call completes they are fully validated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from parley.exceptions import ToolResolutionError, UnknownToolError
    from parley.tools.problem import Problem


@dataclass(frozen=True)
class ToolRun:
    """One tool invocation as seen through its tool's descriptor.

    Attributes:
        id: Id of the ToolCall inside its ToolCalls entry.
        call_id: Provider correlation id shared with the tool output.
        tool_name: Registered tool name.
        raw_arguments: Arguments JSON text as last streamed.
        partial_arguments: Partial projection while the call streams.
        final_arguments: Validated arguments once the call completed.
        raw_output: Output JSON text, if an output entry was found.
        output: Decoded output value.
        problem: Recoverable problem reported instead of an output.
        error: Resolution failure (total decoding only).
    """

    id: str
    call_id: str
    tool_name: str
    raw_arguments: str = ""
    partial_arguments: Any = None
    final_arguments: Any = None
    raw_output: str | None = None
    output: Any = None
    problem: Problem | None = None
    error: ToolResolutionError | None = None

    @property
    def is_final(self) -> bool:
        return self.final_arguments is not None

    @property
    def arguments(self) -> Any:
        """Final arguments when available, otherwise the partial projection."""
        return self.final_arguments if self.final_arguments is not None else self.partial_arguments

    @property
    def has_output(self) -> bool:
        return self.output is not None

    @property
    def has_problem(self) -> bool:
        return self.problem is not None

    @property
    def has_error(self) -> bool:
        return self.error is not None

    @property
    def is_pending(self) -> bool:
        """True until an output, a problem, or an error is attached."""
        return not (self.has_output or self.has_problem or self.has_error)


@dataclass(frozen=True)
class UnknownToolRun:
    """Placeholder for a call whose tool could not be resolved.

    Produced by total decoding so the call stays visible in the decoded
    history.
    """

    id: str
    call_id: str
    tool_name: str
    raw_arguments: str
    error: ToolResolutionError | UnknownToolError

    @property
    def has_error(self) -> bool:
        return True
