"""Token usage accounting.

TokenUsage is a frozen record of provider-reported token counts. Every
field is optional because providers report different subsets; merging
sums the fields that are present on either side.
"""

from __future__ import annotations

from dataclasses import dataclass, fields


def _add(a: int | None, b: int | None) -> int | None:
    if a is None:
        return b
    if b is None:
        return a
    return a + b


@dataclass(frozen=True)
class TokenUsage:
    """Token usage reported by a provider for one or more requests."""

    input_tokens: int | None = None
    output_tokens: int | None = None
    cached_tokens: int | None = None
    reasoning_tokens: int | None = None
    total_tokens: int | None = None

    @classmethod
    def zero(cls) -> TokenUsage:
        """Usage with every field reported as zero."""
        return cls(0, 0, 0, 0, 0)

    def merge(self, other: TokenUsage) -> TokenUsage:
        """Return the field-wise sum of two usage records.

        A field missing on both sides stays missing. The operation is
        associative and commutative.
        """
        return TokenUsage(
            **{
                f.name: _add(getattr(self, f.name), getattr(other, f.name))
                for f in fields(self)
            }
        )

    __add__ = merge

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict[str, int]:
        """Serialize the reported fields only."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @classmethod
    def from_dict(cls, d: dict | None) -> TokenUsage:
        """Build from a dict, accepting OpenAI-style key names.

        ``prompt_tokens`` and ``completion_tokens`` map onto
        ``input_tokens`` and ``output_tokens``; unknown keys are ignored.
        """
        if not d:
            return cls()
        d = dict(d)
        if "prompt_tokens" in d and "input_tokens" not in d:
            d["input_tokens"] = d.pop("prompt_tokens")
        if "completion_tokens" in d and "output_tokens" not in d:
            d["output_tokens"] = d.pop("completion_tokens")
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})
