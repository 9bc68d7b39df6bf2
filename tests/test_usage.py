"""Tests for TokenUsage merging."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from parley.models.usage import TokenUsage
from tests.strategies import token_usage


class TestMerge:
    def test_sums_present_fields(self):
        a = TokenUsage(input_tokens=10, output_tokens=5)
        b = TokenUsage(input_tokens=3, cached_tokens=2)
        merged = a.merge(b)
        assert merged == TokenUsage(input_tokens=13, output_tokens=5, cached_tokens=2)

    def test_absent_on_both_sides_stays_absent(self):
        merged = TokenUsage(input_tokens=1).merge(TokenUsage(input_tokens=2))
        assert merged.reasoning_tokens is None
        assert merged.total_tokens is None

    def test_add_operator(self):
        assert TokenUsage(output_tokens=1) + TokenUsage(output_tokens=2) == TokenUsage(output_tokens=3)

    @given(a=token_usage, b=token_usage)
    def test_commutative(self, a, b):
        assert a.merge(b) == b.merge(a)

    @given(a=token_usage, b=token_usage, c=token_usage)
    def test_associative(self, a, b, c):
        assert a.merge(b).merge(c) == a.merge(b.merge(c))

    @given(a=token_usage)
    def test_empty_is_identity(self, a):
        assert a.merge(TokenUsage()) == a

    @given(usages=st.lists(token_usage, max_size=8))
    def test_monotonic(self, usages):
        """Running totals never decrease field by field."""
        total = TokenUsage()
        for usage in usages:
            merged = total.merge(usage)
            for name in ("input_tokens", "output_tokens", "cached_tokens",
                         "reasoning_tokens", "total_tokens"):
                before = getattr(total, name)
                after = getattr(merged, name)
                if before is not None:
                    assert after is not None and after >= before
            total = merged


class TestConversion:
    def test_zero(self):
        assert TokenUsage.zero().to_dict() == {
            "input_tokens": 0,
            "output_tokens": 0,
            "cached_tokens": 0,
            "reasoning_tokens": 0,
            "total_tokens": 0,
        }

    def test_is_empty(self):
        assert TokenUsage().is_empty
        assert not TokenUsage(total_tokens=0).is_empty

    def test_to_dict_skips_missing(self):
        assert TokenUsage(input_tokens=4).to_dict() == {"input_tokens": 4}

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, TokenUsage()),
            ({"prompt_tokens": 7, "completion_tokens": 3, "total_tokens": 10},
             TokenUsage(input_tokens=7, output_tokens=3, total_tokens=10)),
            ({"input_tokens": 1, "prompt_tokens": 99}, TokenUsage(input_tokens=1)),
            ({"output_tokens": 2, "unknown": 5}, TokenUsage(output_tokens=2)),
        ],
    )
    def test_from_dict(self, raw, expected):
        assert TokenUsage.from_dict(raw) == expected
