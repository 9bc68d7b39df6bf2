"""Decoding structured segments into projections.

A structured segment is decoded partially while its response streams and
fully once the response completes. Decoding failures become
:class:`ContentError` projections; there is no problem-envelope carve-out
for structured outputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Iterator

from parley.exceptions import StructuredContentParsingError
from parley.models.transcript import Status
from parley.structured.descriptor import (
    ContentError,
    FinalContent,
    PartialContent,
    StructuredOutputDescriptor,
    StructuredOutputProjection,
)

if TYPE_CHECKING:
    from parley.models.transcript import StructuredSegment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnknownStructuredOutput:
    """A structured segment whose type name has no registered descriptor."""

    segment: StructuredSegment

    @property
    def type_name(self) -> str:
        return self.segment.type_name


def project(
    descriptor: StructuredOutputDescriptor,
    segment: StructuredSegment,
    status: Status,
) -> StructuredOutputProjection:
    """Decode one segment according to its response status. Never raises."""
    if status is Status.INCOMPLETE:
        return ContentError(segment.content, "response is incomplete")
    try:
        if status is Status.IN_PROGRESS:
            return PartialContent(descriptor.decode_partial(segment.content))
        return FinalContent(descriptor.decode_final(segment.content))
    except Exception as exc:
        logger.debug("Structured segment %s failed to decode: %s", segment.id, exc)
        return ContentError(segment.content, str(exc))


def decode_final(descriptor: StructuredOutputDescriptor, segment: StructuredSegment) -> Any:
    """Strictly decode a segment into its final value.

    Raises:
        StructuredContentParsingError: If the content fails to validate.
    """
    try:
        return descriptor.decode_final(segment.content)
    except Exception as exc:
        raise StructuredContentParsingError(segment.content, exc) from exc


class StructuredOutputs:
    """Name-keyed collection of structured output descriptors."""

    def __init__(self, descriptors: Iterable[StructuredOutputDescriptor] = ()) -> None:
        self._descriptors: dict[str, StructuredOutputDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: StructuredOutputDescriptor) -> None:
        self._descriptors[descriptor.name] = descriptor

    def get(self, name: str) -> StructuredOutputDescriptor | None:
        return self._descriptors.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._descriptors

    def __iter__(self) -> Iterator[StructuredOutputDescriptor]:
        return iter(list(self._descriptors.values()))

    def __len__(self) -> int:
        return len(self._descriptors)

    def decode(self, segment: StructuredSegment, status: Status) -> Any:
        """Total decoding of a segment into its domain value.

        Unregistered type names yield :class:`UnknownStructuredOutput`, as
        does a failing ``to_domain``.
        """
        descriptor = self._descriptors.get(segment.type_name)
        if descriptor is None:
            return UnknownStructuredOutput(segment)
        projection = project(descriptor, segment, status)
        try:
            return descriptor.to_domain(projection)
        except Exception as exc:
            logger.debug("Domain mapping failed for segment %s: %s", segment.id, exc)
            return UnknownStructuredOutput(segment)
