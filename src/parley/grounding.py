"""Grounding codec boundary.

A prompt may be grounded in application-defined sources (documents,
search hits, selections). The transcript stores them as opaque bytes; a
GroundingCodec converts between those bytes and the application's values.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from pydantic import TypeAdapter, ValidationError

from parley.exceptions import GroundingDecodeError


@runtime_checkable
class GroundingCodec(Protocol):
    """Protocol for encoding prompt sources into transcript bytes."""

    def encode(self, sources: Sequence[Any]) -> bytes:
        ...

    def decode(self, data: bytes) -> list[Any]:
        """Decode stored sources.

        Raises:
            GroundingDecodeError: If the bytes do not hold valid sources.
        """
        ...


class JSONGroundingCodec:
    """Stores sources as a JSON array validated with Pydantic.

    Args:
        source_type: Type of one source. Defaults to ``Any`` (plain JSON).

    Example::

        codec = JSONGroundingCodec(Document)
        data = codec.encode([Document(url="https://example.com")])
        docs = codec.decode(data)
    """

    def __init__(self, source_type: Any = Any) -> None:
        self._adapter: TypeAdapter[list[Any]] = TypeAdapter(list[source_type])  # type: ignore[valid-type]

    def encode(self, sources: Sequence[Any]) -> bytes:
        return self._adapter.dump_json(list(sources))

    def decode(self, data: bytes) -> list[Any]:
        if not data:
            return []
        try:
            return self._adapter.validate_json(data)
        except ValidationError as exc:
            raise GroundingDecodeError(f"Invalid grounding sources: {exc}") from exc
