"""
Unit Tests for the Diff Engine

These tests verify that compute_diff():
- Reports unseen identities as new tokens
- Reports relative price moves >= threshold (inclusive) as price changes
- Guards against zero previous prices
- Does not report removed tokens (known limitation)

Run with:
    pytest tests/unit/test_diff_engine.py -v
"""

import math

import pytest

from core.diff_engine import compute_diff, relative_change
from core.schemas import TokenPriceChange
from tests.unit.helpers import make_token


class TestNewTokens:
    """Identities missing from the previous projection"""

    def test_empty_projection_reports_single_new_token(self):
        diff = compute_diff([make_token("A", price=1.0)], {})

        assert [t.token_address for t in diff.new_tokens] == ["A"]
        assert diff.price_changes == []

    def test_known_identity_is_not_new(self):
        diff = compute_diff([make_token("A", price=1.0)], {"a": 1.0})

        assert diff.new_tokens == []
        assert diff.is_empty

    def test_projection_lookup_is_case_insensitive(self):
        diff = compute_diff([make_token("AbC", price=1.0)], {"abc": 1.0})

        assert diff.new_tokens == []


class TestThreshold:
    """Inclusive relative-change threshold"""

    def test_exactly_five_percent_is_a_change(self):
        diff = compute_diff([make_token("A", price=105.0)], {"a": 100.0}, threshold=0.05)

        assert len(diff.price_changes) == 1
        assert diff.price_changes[0].price_change_pct == pytest.approx(0.05)

    def test_four_percent_is_not_a_change(self):
        diff = compute_diff([make_token("A", price=104.0)], {"a": 100.0}, threshold=0.05)

        assert diff.is_empty

    def test_price_drop_is_a_change(self):
        diff = compute_diff([make_token("A", price=90.0)], {"a": 100.0}, threshold=0.05)

        assert diff.price_changes[0].price_change_pct == pytest.approx(0.10)

    def test_default_threshold_is_five_percent(self):
        assert not compute_diff([make_token("A", price=104.9)], {"a": 100.0}).price_changes
        assert compute_diff([make_token("A", price=105.1)], {"a": 100.0}).price_changes

    def test_custom_threshold(self):
        diff = compute_diff([make_token("A", price=101.0)], {"a": 100.0}, threshold=0.01)

        assert len(diff.price_changes) == 1

    def test_change_payload_keeps_record_fields(self):
        record = make_token("A", price=2.0, volume=500.0, source="geckoterminal")

        change = compute_diff([record], {"a": 1.0}).price_changes[0]

        assert isinstance(change, TokenPriceChange)
        assert change.token_address == "A"
        assert change.volume_usd == 500.0
        assert change.source == "geckoterminal"
        assert change.model_dump(mode="json")["price_change_pct"] == pytest.approx(1.0)


class TestGuards:
    """Undefined relative changes are skipped, never raised"""

    def test_zero_previous_price_produces_no_change(self):
        diff = compute_diff([make_token("A", price=50.0)], {"a": 0.0})

        assert diff.is_empty

    @pytest.mark.parametrize("previous", [math.nan, math.inf, None, "1.0"])
    def test_non_numeric_previous_price_is_skipped(self, previous):
        diff = compute_diff([make_token("A", price=50.0)], {"a": previous})

        assert diff.is_empty

    def test_one_bad_record_does_not_abort_the_diff(self):
        records = [make_token("A", price=50.0), make_token("B", price=2.0), make_token("C", price=1.0)]

        diff = compute_diff(records, {"a": 0.0, "b": 1.0})

        assert [t.token_address for t in diff.price_changes] == ["B"]
        assert [t.token_address for t in diff.new_tokens] == ["C"]

    def test_relative_change_helper(self):
        assert relative_change(100.0, 105.0) == pytest.approx(0.05)
        assert relative_change(0.0, 1.0) is None


class TestRemovedTokens:
    """Known limitation: disappearance is not signaled"""

    def test_token_missing_from_new_set_produces_no_event(self):
        diff = compute_diff([make_token("A", price=1.0)], {"a": 1.0, "gone": 5.0})

        assert diff.is_empty
