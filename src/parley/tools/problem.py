"""Recoverable tool problems.

A tool that cannot complete but wants the model to recover returns a
problem envelope instead of its normal output::

    {"error": true, "reason": "City not found", "city": "Atlantis"}

When a tool output fails to decode as the tool's output type and matches
this envelope, resolution produces a :class:`Problem` instead of an error.
"""

from __future__ import annotations

import json
import types
from dataclasses import dataclass, field
from typing import Any, Mapping

from parley.exceptions import ParleyError


def stable_json(value: Any) -> str:
    """Canonical JSON: sorted keys, compact separators."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _as_detail(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list)):
        return stable_json(value)
    return str(value)


def flatten_details(raw: str) -> dict[str, str]:
    """Flatten a JSON payload into string details.

    Objects map each key to a string rendering of its value; arrays become
    ``{"values": <json>}``; scalars and unparseable text become
    ``{"value": ...}``.
    """
    try:
        payload = json.loads(raw)
    except ValueError:
        return {"value": raw}
    if isinstance(payload, dict):
        return {str(k): _as_detail(v) for k, v in payload.items()}
    if isinstance(payload, list):
        return {"values": _as_detail(payload)}
    return {"value": _as_detail(payload)}


@dataclass(frozen=True)
class Problem:
    """A recoverable failure reported by a tool.

    Attributes:
        reason: Human-readable reason taken from the envelope.
        raw_json: The envelope as canonical JSON text.
        details: Every envelope field flattened to a string.
    """

    reason: str
    raw_json: str
    details: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", types.MappingProxyType(dict(self.details)))

    def __hash__(self) -> int:
        return hash((self.reason, self.raw_json, tuple(sorted(self.details.items()))))


def problem_from_output(raw: str) -> Problem | None:
    """Recognize a problem envelope in raw tool output.

    Returns None unless ``raw`` is a JSON object with ``"error": true`` and
    a string ``reason``.
    """
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("error") is not True or not isinstance(payload.get("reason"), str):
        return None
    return Problem(
        reason=payload["reason"],
        raw_json=stable_json(payload),
        details=flatten_details(raw),
    )


class ToolRunProblem(ParleyError):
    """Raised by a tool implementation to report a recoverable problem.

    The executor turns it into a problem envelope output rather than
    failing the turn.

    Example::

        raise ToolRunProblem("City not found", city="Atlantis")
    """

    def __init__(self, reason: str, **details: Any) -> None:
        self.reason = reason
        self.details = details
        super().__init__(reason)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.details)
        payload["error"] = True
        payload["reason"] = self.reason
        return payload

    def to_json(self) -> str:
        return stable_json(self.to_payload())
