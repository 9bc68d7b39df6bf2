"""Configuration models for Parley.

SessionConfig holds per-session settings.
GenerationOptions holds provider-agnostic sampling options passed through
to the adapter on every turn.
"""

from __future__ import annotations

import os
import types
from dataclasses import dataclass, fields as dc_fields
from typing import Optional

from pydantic import BaseModel, Field

_ALIASES: dict[str, str] = {
    "stop": "stop_sequences",
    "max_tokens": "max_output_tokens",
    "max_completion_tokens": "max_output_tokens",
}

_IGNORED: frozenset[str] = frozenset({
    "messages", "tools", "tool_choice", "stream",
    "response_format", "model",
})


class SessionConfig(BaseModel):
    """Per-session configuration."""

    default_model: Optional[str] = None
    # Seconds between streamed snapshots; 0 yields one per update.
    snapshot_interval: float = Field(default=0.0, ge=0.0)
    enforce_terminal_entries: bool = True
    enforce_tool_output_order: bool = True

    @classmethod
    def from_env(cls, **overrides: object) -> SessionConfig:
        """Build a config from ``PARLEY_*`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict[str, object] = {}
        model = os.environ.get("PARLEY_DEFAULT_MODEL")
        if model:
            values["default_model"] = model
        interval = os.environ.get("PARLEY_SNAPSHOT_INTERVAL")
        if interval:
            values["snapshot_interval"] = float(interval)
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling options for a single turn.

    All fields are Optional -- None means 'let the adapter decide.'

    Example::

        from parley import GenerationOptions
        options = GenerationOptions(temperature=0.2, max_output_tokens=512)
    """

    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None
    stop_sequences: tuple[str, ...] | None = None
    seed: int | None = None
    extra: dict | None = None

    def __post_init__(self) -> None:
        if self.extra is not None:
            object.__setattr__(self, "extra", types.MappingProxyType(dict(self.extra)))
        if self.stop_sequences is not None and not isinstance(self.stop_sequences, tuple):
            object.__setattr__(self, "stop_sequences", tuple(self.stop_sequences))

    def __hash__(self) -> int:
        extra_hashable = tuple(sorted(self.extra.items())) if self.extra else ()
        return hash((
            self.temperature, self.top_p, self.max_output_tokens,
            self.stop_sequences, self.seed, extra_hashable,
        ))

    @classmethod
    def from_dict(cls, d: dict | None) -> GenerationOptions | None:
        """Create options from a dict, routing unknown keys to extra.

        Applies common aliases (e.g. ``max_tokens`` -> ``max_output_tokens``)
        and drops request plumbing keys before routing known/unknown fields.

        Returns None if d is None.
        """
        if d is None:
            return None
        d = dict(d)
        for alias, canonical in _ALIASES.items():
            if alias in d:
                if canonical not in d:
                    d[canonical] = d.pop(alias)
                else:
                    del d[alias]
        for key in _IGNORED:
            d.pop(key, None)
        known = {f.name for f in dc_fields(cls)} - {"extra"}
        known_kwargs: dict = {}
        extra_kwargs: dict = {}
        for k, v in d.items():
            if k in known:
                known_kwargs[k] = v
            else:
                extra_kwargs[k] = v
        return cls(**known_kwargs, extra=extra_kwargs if extra_kwargs else None)

    def non_none_fields(self) -> dict:
        """Return dict of only the named (non-extra) fields that are set."""
        result: dict = {}
        for f in dc_fields(self):
            if f.name == "extra":
                continue
            val = getattr(self, f.name)
            if val is not None:
                result[f.name] = val
        return result
