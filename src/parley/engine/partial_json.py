"""Tolerant JSON parsing for streamed fragments.

Tool arguments and structured outputs arrive as JSON text that grows with
every stream event. parse_partial() turns an incomplete fragment into the
value made of its syntactically complete parts:

* an unterminated trailing string or key is dropped,
* a trailing number or literal that runs up to the end of the fragment is
  dropped, since more digits (or letters) may still arrive: ``{"t": 1``
  parses as ``{}`` and ``[1, 2`` as ``[1]``. A scalar followed by ``,``,
  ``]``, ``}`` or whitespace is complete and kept,
* open containers are closed.

Only malformed input (as opposed to truncated input) is an error.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic_core import from_json

from parley.exceptions import PartialJSONError

# A number or true/false/null prefix that touches the end of the fragment.
_TRAILING_SCALAR = re.compile(
    r"(?<![\w.+\-])"
    r"(?:-|-?\d+(?:\.\d*)?(?:[eE][+-]?\d*)?"
    r"|t(?:r(?:ue?)?)?|f(?:a(?:l(?:se?)?)?)?|n(?:u(?:ll?)?)?)$"
)


def parse_partial(raw: str) -> Any:
    """Parse a possibly incomplete JSON fragment.

    A blank fragment parses as an empty object, since a tool call with no
    streamed arguments yet has an empty argument set.

    Raises:
        PartialJSONError: If the fragment can never become valid JSON.
    """
    fragment = _TRAILING_SCALAR.sub("", raw)
    if not fragment.strip():
        return {}
    try:
        return from_json(fragment, allow_partial=True)
    except ValueError as exc:
        raise PartialJSONError(raw, str(exc)) from exc


def parse_final(raw: str) -> Any:
    """Parse a complete JSON document.

    Raises:
        PartialJSONError: If the document is not valid JSON.
    """
    try:
        return from_json(raw)
    except ValueError as exc:
        raise PartialJSONError(raw, str(exc)) from exc
