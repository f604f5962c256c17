"""
Unit Tests for the GeckoTerminal source and its Jupiter fallback

These tests verify that:
- Pools are normalized from inline, included, or relationship-only base tokens
- The adapter falls back to Jupiter's SOL price when trending pools fail
- The fallback can be disabled

Run with:
    pytest tests/unit/test_geckoterminal.py -v
"""

import pytest
from unittest.mock import AsyncMock

from core.source_interface import SourceUnavailableError
from sources.geckoterminal import GeckoTerminalSource, normalize_pool
from sources.jupiter import SOL_MINT
from tests.unit.helpers import OBSERVED_AT


ADDRESS = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"

POOL = {
    "id": "solana_poolAddress",
    "type": "pool",
    "attributes": {
        "name": "Bonk / SOL",
        "base_token_price_usd": "0.0000231",
        "reserve_in_usd": "1250000.75",
        "volume_usd": {"h24": "987654.3"},
        "price_change_percentage": {"h24": "12.5"},
    },
    "relationships": {
        "base_token": {"data": {"id": f"solana_{ADDRESS}", "type": "token"}},
        "dex": {"data": {"id": "orca", "type": "dex"}},
    },
}

INCLUDED = {
    f"solana_{ADDRESS}": {"address": ADDRESS, "name": "Bonk", "symbol": "Bonk"},
}


class TestNormalizePool:

    def test_included_base_token(self):
        record = normalize_pool(POOL, OBSERVED_AT, INCLUDED)

        assert record.token_address == ADDRESS
        assert record.token_name == "Bonk"
        assert record.token_ticker == "Bonk"
        assert record.price_usd == pytest.approx(0.0000231)
        assert record.volume_usd == pytest.approx(987654.3)
        assert record.liquidity_usd == pytest.approx(1250000.75)
        assert record.price_change_24h == pytest.approx(12.5)
        assert record.protocol == "orca"
        assert record.source == "geckoterminal"

    def test_inline_base_token(self):
        pool = {
            "attributes": {
                **POOL["attributes"],
                "base_token": {"address": "Inline1", "name": "Inline", "symbol": "INL"},
            }
        }

        record = normalize_pool(pool, OBSERVED_AT)

        assert (record.token_address, record.token_ticker) == ("Inline1", "INL")
        assert record.protocol == ""

    def test_relationship_only_base_token(self):
        record = normalize_pool(POOL, OBSERVED_AT, {})

        assert record.token_address == ADDRESS
        assert record.token_ticker == "Bonk"
        assert record.token_name == "Bonk"

    def test_missing_price_drops_pool(self):
        pool = {**POOL, "attributes": {**POOL["attributes"], "base_token_price_usd": None}}

        assert normalize_pool(pool, OBSERVED_AT, INCLUDED) is None

    def test_missing_address_drops_pool(self):
        pool = {"attributes": POOL["attributes"]}

        assert normalize_pool(pool, OBSERVED_AT) is None

    def test_wrong_nested_shapes_read_as_missing(self):
        pool = {
            **POOL,
            "attributes": {**POOL["attributes"], "volume_usd": "5", "price_change_percentage": 7},
            "relationships": {"base_token": "solana_x", "dex": {"data": ["orca"]}},
        }

        assert normalize_pool(pool, OBSERVED_AT, INCLUDED) is None

        pool["relationships"] = POOL["relationships"]
        record = normalize_pool(pool, OBSERVED_AT, INCLUDED)

        assert record.token_address == ADDRESS
        assert record.volume_usd is None
        assert record.price_change_24h is None


class TestGeckoTerminalSource:

    @pytest.mark.asyncio
    async def test_trending_pools_request(self, monkeypatch):
        source = GeckoTerminalSource(network="solana", fallback_enabled=False)
        await source.initialize()
        called = {}
        try:
            async def mock_get(path, params=None):
                called["path"], called["params"] = path, params
                return {"data": [POOL], "included": [{"id": f"solana_{ADDRESS}", "attributes": INCLUDED[f"solana_{ADDRESS}"]}]}

            monkeypatch.setattr(source.client, "_get", mock_get)

            records = await source.fetch()
        finally:
            await source.shutdown()

        assert called == {"path": "/networks/solana/trending_pools", "params": {"include": "base_token"}}
        assert [r.token_address for r in records] == [ADDRESS]

    @pytest.mark.asyncio
    async def test_malformed_pool_does_not_drop_batch(self, monkeypatch):
        source = GeckoTerminalSource(fallback_enabled=False)
        await source.initialize()
        try:
            odd_pool = {
                **POOL,
                "attributes": {**POOL["attributes"], "volume_usd": "5"},
                "relationships": {"base_token": {"data": {"id": "solana_Odd1"}}},
            }

            async def mock_get(path, params=None):
                return {
                    "data": [POOL, odd_pool, {"attributes": "garbage"}, 7],
                    "included": [{"id": f"solana_{ADDRESS}", "attributes": INCLUDED[f"solana_{ADDRESS}"]},
                                 {"id": "solana_Odd1", "attributes": "not an object"}],
                }

            monkeypatch.setattr(source.client, "_get", mock_get)

            records = await source.fetch()
        finally:
            await source.shutdown()

        assert [r.token_address for r in records] == [ADDRESS, "Odd1"]
        assert records[1].volume_usd is None

    @pytest.mark.asyncio
    async def test_falls_back_to_jupiter_sol_price(self, monkeypatch):
        source = GeckoTerminalSource(fallback_enabled=True)
        await source.initialize()
        try:
            async def failing_get(path, params=None):
                raise SourceUnavailableError("geckoterminal", "HTTP 429", 429, "rate limited")

            jupiter_get = AsyncMock(return_value={"data": {SOL_MINT: {"id": SOL_MINT, "price": "143.27"}}})

            monkeypatch.setattr(source.client, "_get", failing_get)
            monkeypatch.setattr(source.fallback_client, "_get", jupiter_get)

            records = await source.fetch()
            jupiter_get.assert_awaited_once_with("", {"ids": SOL_MINT})
        finally:
            await source.shutdown()

        assert len(records) == 1
        assert records[0].token_address == SOL_MINT
        assert records[0].token_ticker == "SOL"
        assert records[0].price_usd == pytest.approx(143.27)
        assert records[0].source == "jupiter-fallback"

    @pytest.mark.asyncio
    async def test_both_providers_failing_returns_empty(self, monkeypatch):
        source = GeckoTerminalSource(fallback_enabled=True)
        await source.initialize()
        try:
            async def failing_get(path, params=None):
                raise SourceUnavailableError("geckoterminal", "HTTP 500", 500)

            async def empty_jupiter(path, params=None):
                return {"data": {}}

            monkeypatch.setattr(source.client, "_get", failing_get)
            monkeypatch.setattr(source.fallback_client, "_get", empty_jupiter)

            assert await source.fetch() == []
        finally:
            await source.shutdown()

    def test_attempt_chain_order(self):
        chain = GeckoTerminalSource(fallback_enabled=True).strategies()

        assert [(s.name, s.kind.value) for s in chain] == [
            ("trending_pools", "primary"),
            ("jupiter_sol_price", "fallback"),
        ]

    def test_fallback_can_be_disabled(self):
        chain = GeckoTerminalSource(fallback_enabled=False).strategies()

        assert [s.name for s in chain] == ["trending_pools"]
