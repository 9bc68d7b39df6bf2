"""Tool resolution.

ToolResolver turns a ToolCall found in a Transcript into the application's
typed tool run. It correlates the call with its output by ``call_id``,
decodes arguments partially or fully depending on the call status, decodes
the output (or recognizes a problem envelope), and finally hands the
assembled :class:`ToolRun` to the descriptor's ``to_domain``.

Two modes are offered:

* ``resolve()`` is strict: unknown tools and decode failures raise.
* ``decode()`` is total: it never raises. Failures are attached to the
  run's ``error`` field, or replaced by the registry's unknown sentinel.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from parley.exceptions import ToolDecodeError, ToolResolutionError, UnknownToolError
from parley.models.transcript import Status
from parley.tools.problem import problem_from_output
from parley.tools.run import ToolRun

if TYPE_CHECKING:
    from parley.models.transcript import ToolCall, Transcript
    from parley.tools.descriptor import ToolDescriptor
    from parley.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolResolver:
    """Resolves tool calls against a registry and a transcript.

    Usage::

        resolver = ToolResolver(registry, session.transcript)
        for call in entry.calls:
            run = resolver.resolve(call)
    """

    def __init__(self, registry: ToolRegistry, transcript: Transcript) -> None:
        self._registry = registry
        self._transcript = transcript

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def resolve(self, call: ToolCall) -> Any:
        """Resolve a call, raising on any failure.

        Raises:
            UnknownToolError: If no descriptor is registered for the tool.
            ToolResolutionError: If arguments, output, or the domain
                mapping fail.
        """
        descriptor = self._registry.get(call.tool_name)
        if descriptor is None:
            logger.error(
                "Unknown tool %r (call_id=%s); available: %s",
                call.tool_name, call.call_id, self._registry.names(),
            )
            raise UnknownToolError(call.tool_name, self._registry.names(), call_id=call.call_id)
        try:
            run = self._build_run(descriptor, call, strict=True)
            return self._to_domain(descriptor, run)
        except ToolResolutionError as exc:
            logger.error("Failed to resolve tool call %s: %s", call.call_id, exc)
            raise

    def decode(self, call: ToolCall) -> Any:
        """Resolve a call without raising.

        An unknown tool yields the registry's unknown sentinel. A failure on
        a known tool yields ``to_domain`` of a run carrying the error, or
        the sentinel if the domain mapping itself fails.
        """
        descriptor = self._registry.get(call.tool_name)
        if descriptor is None:
            logger.debug("Unknown tool %r in total decoding", call.tool_name)
            error = UnknownToolError(call.tool_name, self._registry.names(), call_id=call.call_id)
            return self._registry.make_unknown(call, error)
        run = self._build_run(descriptor, call, strict=False)
        try:
            return self._to_domain(descriptor, run)
        except ToolResolutionError as exc:
            logger.debug("Domain mapping failed for %s: %s", call.call_id, exc)
            return self._registry.make_unknown(call, exc)

    def run_for(self, call: ToolCall) -> ToolRun:
        """Assemble the untyped-domain ToolRun for a call, never raising."""
        descriptor = self._registry.get(call.tool_name)
        if descriptor is None:
            return ToolRun(
                id=call.id,
                call_id=call.call_id,
                tool_name=call.tool_name,
                raw_arguments=call.arguments,
                error=UnknownToolError(
                    call.tool_name, self._registry.names(), call_id=call.call_id
                ),
            )
        return self._build_run(descriptor, call, strict=False)

    # ------------------------------------------------------------------

    def _build_run(self, descriptor: ToolDescriptor, call: ToolCall, *, strict: bool) -> ToolRun:
        fields: dict[str, Any] = {
            "id": call.id,
            "call_id": call.call_id,
            "tool_name": call.tool_name,
            "raw_arguments": call.arguments,
        }
        try:
            self._decode_arguments(descriptor, call, fields)
            self._decode_output(descriptor, call, fields)
        except ToolDecodeError as exc:
            if strict:
                raise
            logger.debug("Tool call %s decoded with error: %s", call.call_id, exc)
            fields["error"] = exc
        return ToolRun(**fields)

    def _decode_arguments(
        self, descriptor: ToolDescriptor, call: ToolCall, fields: dict[str, Any]
    ) -> None:
        if call.status is Status.INCOMPLETE:
            raise ToolDecodeError(
                call.tool_name, "Tool run failed: the call is incomplete", call_id=call.call_id
            )
        try:
            if call.status is Status.IN_PROGRESS:
                fields["partial_arguments"] = descriptor.decode_partial_arguments(call.arguments)
            else:
                fields["final_arguments"] = descriptor.decode_final_arguments(call.arguments)
        except Exception as exc:
            raise ToolDecodeError(
                call.tool_name, f"invalid arguments: {exc}", call_id=call.call_id
            ) from exc

    def _decode_output(
        self, descriptor: ToolDescriptor, call: ToolCall, fields: dict[str, Any]
    ) -> None:
        located = self._transcript.find_tool_call(call.call_id)
        start = located[0] if located is not None else 0
        entry = self._transcript.find_tool_output(call.call_id, start=start)
        if entry is None:
            return
        raw = entry.raw_content
        fields["raw_output"] = raw
        try:
            fields["output"] = descriptor.decode_output(raw)
        except Exception as exc:
            problem = problem_from_output(raw)
            if problem is None:
                raise ToolDecodeError(
                    call.tool_name, f"invalid output: {exc}", call_id=call.call_id
                ) from exc
            fields["problem"] = problem

    def _to_domain(self, descriptor: ToolDescriptor, run: ToolRun) -> Any:
        try:
            return descriptor.to_domain(run)
        except ToolResolutionError:
            raise
        except Exception as exc:
            raise ToolDecodeError(
                run.tool_name, f"domain mapping failed: {exc}", call_id=run.call_id
            ) from exc
