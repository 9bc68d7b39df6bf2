"""Tool descriptors.

A ToolDescriptor is the capability record the resolver needs for one tool:
how to decode partial arguments, final arguments and output, and how to
wrap a decoded run into the application's own type. Descriptors can be
written by hand or derived from Pydantic models with
:meth:`ToolDescriptor.from_models`.
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, create_model

from parley.engine.partial_json import parse_partial
from parley.tools.run import ToolRun

_partial_models: dict[type[BaseModel], type[BaseModel]] = {}


def _identity(run: ToolRun) -> Any:
    return run


def _partial_annotation(annotation: Any) -> Any:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return partial_model(annotation)
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    args = get_args(annotation)
    if origin in (Union, types.UnionType):
        return Union[tuple(_partial_annotation(a) for a in args)]
    if origin in (list, set, frozenset) and len(args) == 1:
        return origin[_partial_annotation(args[0])]
    if origin is dict and len(args) == 2:
        return dict[args[0], _partial_annotation(args[1])]
    return annotation


def partial_model(model: type[BaseModel]) -> type[BaseModel]:
    """Derive a model whose fields are all optional.

    Nested models are made partial recursively. Validators and constraints
    of the source model are not carried over, since a streamed prefix
    rarely satisfies them. Results are cached per source model.
    """
    cached = _partial_models.get(model)
    if cached is not None:
        return cached
    fields: dict[str, Any] = {}
    for name, info in model.model_fields.items():
        annotation = _partial_annotation(info.annotation)
        fields[name] = (
            Optional[annotation],
            Field(default=None, alias=info.alias, description=info.description),
        )
    partial = create_model(  # type: ignore[call-overload]
        f"Partial{model.__name__}",
        __config__=ConfigDict(extra="ignore", populate_by_name=True),
        __module__=model.__module__,
        **fields,
    )
    _partial_models[model] = partial
    return partial


@dataclass(frozen=True)
class ToolDescriptor:
    """Decoding capabilities for one named tool.

    Every decode function receives raw JSON text and raises on failure.
    ``decode_partial_arguments`` must tolerate truncated JSON and only
    fail on malformed input.
    """

    name: str
    decode_partial_arguments: Callable[[str], Any]
    decode_final_arguments: Callable[[str], Any]
    decode_output: Callable[[str], Any]
    to_domain: Callable[[ToolRun], Any] = _identity
    description: str = ""

    @classmethod
    def from_models(
        cls,
        name: str,
        arguments: type[BaseModel],
        output: Any = str,
        *,
        partial_arguments: type[BaseModel] | None = None,
        to_domain: Callable[[ToolRun], Any] | None = None,
        description: str = "",
    ) -> ToolDescriptor:
        """Build a descriptor from Pydantic types.

        Args:
            name: Tool name as it appears in tool calls.
            arguments: Model validating the final arguments.
            output: Any type Pydantic can validate the output JSON into.
            partial_arguments: Model for streamed arguments; derived with
                :func:`partial_model` when omitted.
            to_domain: Maps a decoded ToolRun into the application's type.
            description: Human-readable description of the tool.
        """
        partial = partial_arguments or partial_model(arguments)
        output_adapter: TypeAdapter[Any] = TypeAdapter(output)

        def decode_partial(raw: str) -> Any:
            return partial.model_validate(parse_partial(raw))

        def decode_final(raw: str) -> Any:
            return arguments.model_validate_json(raw if raw.strip() else "{}")

        return cls(
            name=name,
            decode_partial_arguments=decode_partial,
            decode_final_arguments=decode_final,
            decode_output=output_adapter.validate_json,
            to_domain=to_domain or _identity,
            description=description or (arguments.__doc__ or "").strip(),
        )
