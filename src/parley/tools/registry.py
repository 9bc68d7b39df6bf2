"""Name-keyed registry of tool descriptors."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

from parley.tools.run import UnknownToolRun

if TYPE_CHECKING:
    from parley.exceptions import ToolResolutionError
    from parley.models.transcript import ToolCall
    from parley.tools.descriptor import ToolDescriptor

UnknownFactory = Callable[["ToolCall", "ToolResolutionError"], Any]


def default_unknown(call: ToolCall, error: ToolResolutionError) -> UnknownToolRun:
    return UnknownToolRun(
        id=call.id,
        call_id=call.call_id,
        tool_name=call.tool_name,
        raw_arguments=call.arguments,
        error=error,
    )


class ToolRegistry:
    """The set of tools a session can resolve.

    Usage::

        registry = ToolRegistry([weather_tool])
        registry.register(calendar_tool)
        assert "get_weather" in registry

    Args:
        tools: Descriptors to register.
        unknown: Factory producing the sentinel for calls that cannot be
            resolved in total mode. Defaults to :class:`UnknownToolRun`.
    """

    def __init__(
        self,
        tools: Iterable[ToolDescriptor] = (),
        *,
        unknown: UnknownFactory | None = None,
    ) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._unknown = unknown or default_unknown
        for tool in tools:
            self.register(tool)

    def register(self, descriptor: ToolDescriptor, *, replace: bool = False) -> None:
        """Add a descriptor.

        Raises:
            ValueError: If a tool with the same name exists and ``replace``
                is False.
        """
        if descriptor.name in self._tools and not replace:
            raise ValueError(f"Tool already registered: {descriptor.name!r}")
        self._tools[descriptor.name] = descriptor

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def make_unknown(self, call: ToolCall, error: ToolResolutionError) -> Any:
        return self._unknown(call, error)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(list(self._tools.values()))

    def __len__(self) -> int:
        return len(self._tools)
