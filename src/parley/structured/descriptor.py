"""Structured output descriptors and projections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Union

from pydantic import BaseModel

from parley.engine.partial_json import parse_partial
from parley.tools.descriptor import partial_model


@dataclass(frozen=True)
class PartialContent:
    """Content decoded from a response that is still streaming."""

    content: Any

    @property
    def is_final(self) -> bool:
        return False


@dataclass(frozen=True)
class FinalContent:
    """Content decoded from a completed response."""

    content: Any

    @property
    def is_final(self) -> bool:
        return True


@dataclass(frozen=True)
class ContentError:
    """Structured content that could not be decoded."""

    raw_content: str
    description: str

    @property
    def content(self) -> None:
        return None

    @property
    def is_final(self) -> bool:
        return False


StructuredOutputProjection = Union[PartialContent, FinalContent, ContentError]


def _identity(projection: StructuredOutputProjection) -> Any:
    return projection


@dataclass(frozen=True)
class StructuredOutputDescriptor:
    """Decoding capabilities for one named structured output type.

    ``name`` must match the ``type_name`` of the structured segments the
    adapter produces for this type.
    """

    name: str
    decode_partial: Callable[[str], Any]
    decode_final: Callable[[str], Any]
    to_domain: Callable[[StructuredOutputProjection], Any] = _identity
    schema: dict | None = None

    @classmethod
    def from_model(
        cls,
        model: type[BaseModel],
        *,
        name: str | None = None,
        partial: type[BaseModel] | None = None,
        to_domain: Callable[[StructuredOutputProjection], Any] | None = None,
    ) -> StructuredOutputDescriptor:
        """Build a descriptor from a Pydantic model.

        The partial model is derived with :func:`partial_model` when not
        given; the name defaults to the model's class name.
        """
        partial_cls = partial or partial_model(model)

        def decode_partial(raw: str) -> Any:
            return partial_cls.model_validate(parse_partial(raw))

        return cls(
            name=name or model.__name__,
            decode_partial=decode_partial,
            decode_final=model.model_validate_json,
            to_domain=to_domain or _identity,
            schema=model.model_json_schema(),
        )
