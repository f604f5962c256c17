"""
Shared test doubles: token factory and in-memory source adapters.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

from core.schemas import TokenRecord
from core.source_interface import FetchStrategy, SourceAdapter, StrategyKind


OBSERVED_AT = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_token(
    address: str = "TokenA",
    price: float = 1.0,
    volume: Optional[float] = None,
    liquidity: Optional[float] = None,
    source: str = "dexscreener",
    name: str = "Token",
    ticker: str = "TKN",
    **extra,
) -> TokenRecord:
    return TokenRecord(
        token_address=address,
        token_name=name,
        token_ticker=ticker,
        price_usd=price,
        volume_usd=volume,
        liquidity_usd=liquidity,
        source=source,
        last_updated=extra.pop("last_updated", OBSERVED_AT),
        **extra,
    )


class StaticSource(SourceAdapter):
    """Returns a fixed list of records; counts calls."""

    def __init__(self, name: str, records: List[TokenRecord], delay: float = 0.0):
        self.name = name
        self.records = records
        self.delay = delay
        self.calls = 0

    def strategies(self) -> List[FetchStrategy]:
        return [FetchStrategy("static", StrategyKind.PRIMARY, self._run)]

    async def _run(self) -> List[TokenRecord]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return list(self.records)


class ExplodingSource(SourceAdapter):
    """Breaks the fail-soft contract on purpose: fetch() itself raises."""

    def __init__(self, name: str = "exploding"):
        self.name = name
        self.calls = 0

    def strategies(self) -> List[FetchStrategy]:
        return []

    async def fetch(self) -> List[TokenRecord]:
        self.calls += 1
        raise ConnectionError("provider unreachable")


class ScriptedSource(SourceAdapter):
    """Returns one scripted batch per call; repeats the last batch when exhausted."""

    def __init__(self, name: str, batches: List[List[TokenRecord]]):
        self.name = name
        self.batches = batches
        self.calls = 0

    def strategies(self) -> List[FetchStrategy]:
        return [FetchStrategy("scripted", StrategyKind.PRIMARY, self._run)]

    async def _run(self) -> List[TokenRecord]:
        batch = self.batches[min(self.calls, len(self.batches) - 1)]
        self.calls += 1
        return list(batch)
