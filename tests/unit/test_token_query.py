"""
Unit Tests for snapshot filtering, sorting and pagination

Run with:
    pytest tests/unit/test_token_query.py -v
"""

from datetime import timedelta

import pytest

from core.token_query import TokenQuery, filter_tokens, query_tokens, sort_tokens, MAX_LIMIT
from tests.unit.helpers import OBSERVED_AT, make_token


@pytest.fixture
def tokens():
    return [
        make_token("Wif111", price=2.4, volume=15_000_000, liquidity=8_000_000, name="dogwifhat", ticker="WIF"),
        make_token("Bonk222", price=0.00002, volume=900_000, liquidity=1_200_000, name="Bonk", ticker="BONK"),
        make_token("Jup333", price=0.9, volume=None, liquidity=None, name="Jupiter", ticker="JUP",
                   last_updated=OBSERVED_AT + timedelta(seconds=5)),
    ]


class TestFilterTokens:

    def test_price_bounds(self, tokens):
        result = filter_tokens(tokens, TokenQuery(min_price=0.5, max_price=1.0))

        assert [t.token_ticker for t in result] == ["JUP"]

    def test_missing_volume_counts_as_zero(self, tokens):
        result = filter_tokens(tokens, TokenQuery(min_volume=0))
        assert len(result) == 3

        result = filter_tokens(tokens, TokenQuery(min_volume=1))
        assert [t.token_ticker for t in result] == ["WIF", "BONK"]

    def test_min_liquidity(self, tokens):
        result = filter_tokens(tokens, TokenQuery(min_liquidity=5_000_000))

        assert [t.token_ticker for t in result] == ["WIF"]

    @pytest.mark.parametrize("needle", ["bonk", "BONK", "bonk222"])
    def test_search_is_case_insensitive(self, tokens, needle):
        result = filter_tokens(tokens, TokenQuery(search=needle))

        assert [t.token_address for t in result] == ["Bonk222"]


class TestSortTokens:

    def test_missing_values_sort_as_zero(self, tokens):
        result = sort_tokens(tokens, "volume_usd", descending=False)

        assert [t.token_ticker for t in result] == ["JUP", "BONK", "WIF"]

    def test_sort_by_last_updated(self, tokens):
        result = sort_tokens(tokens, "last_updated", descending=True)

        assert result[0].token_ticker == "JUP"

    def test_unknown_sort_field_falls_back_to_volume(self):
        query = TokenQuery(sort="token_address; DROP")

        assert query.sort_field == "volume_usd"
        assert query.descending is True


class TestQueryTokens:

    def test_default_page(self, tokens):
        page = query_tokens(tokens, TokenQuery())

        assert [t.token_ticker for t in page.data] == ["WIF", "BONK", "JUP"]
        assert page.meta.total == 3
        assert page.meta.hasMore is False
        assert page.meta.sortBy == "volume_usd"

    def test_pagination(self, tokens):
        page = query_tokens(tokens, TokenQuery(sort="price_usd", order="asc", limit=2, offset=0))

        assert [t.token_ticker for t in page.data] == ["BONK", "JUP"]
        assert page.meta.hasMore is True

        page = query_tokens(tokens, TokenQuery(sort="price_usd", order="asc", limit=2, offset=2))

        assert [t.token_ticker for t in page.data] == ["WIF"]
        assert page.meta.hasMore is False

    def test_limit_is_capped(self):
        many = [make_token(f"T{i}", price=i + 1) for i in range(150)]

        page = query_tokens(many, TokenQuery(limit=500))

        assert page.meta.limit == MAX_LIMIT
        assert len(page.data) == MAX_LIMIT
        assert page.meta.hasMore is True

    def test_offset_past_end_is_empty(self, tokens):
        page = query_tokens(tokens, TokenQuery(offset=10))

        assert page.data == []
        assert page.meta.total == 3
