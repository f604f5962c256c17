"""
DexScreener Source Adapter

DexScreener aggregates pairs across most Solana DEXes. A single search call
returns up to ~30 pairs with price, 24h volume and liquidity.

Attempt chain:
    1. PRIMARY  search: GET /latest/dex/search?q=<dexscreener_query>

There is no fallback provider for this source; when the search fails after
its retries, the source contributes nothing to the cycle.
"""

from typing import List, Optional

from core.logging import logger
from core.schemas import TokenRecord
from core.source_interface import FetchStrategy, SourceAdapter, StrategyKind
from .api_client import DexScreenerAPIClient, normalize_pair, SOURCE_NAME


class DexScreenerSource(SourceAdapter):
    """
    DexScreener source connector.

    Example:
        >>> source = DexScreenerSource()
        >>> await source.initialize()
        >>> records = await source.fetch()
        >>> await source.shutdown()
    """

    name = SOURCE_NAME

    def __init__(self, query: Optional[str] = None):
        from core.config import settings

        self.query = query or settings.dexscreener_query
        self.base_url = settings.dexscreener_base_url
        self.max_attempts = settings.dexscreener_max_attempts
        self.timeout = settings.source_request_timeout
        self.client: Optional[DexScreenerAPIClient] = None

        logger.debug(f"DexScreenerSource created (base_url={self.base_url}, q={self.query})")

    async def initialize(self) -> None:
        self.client = DexScreenerAPIClient(self.base_url, self.max_attempts, self.timeout)
        await self.client.__aenter__()
        logger.info("✓ DexScreener source initialized")

    async def shutdown(self) -> None:
        if self.client:
            await self.client.__aexit__(None, None, None)
            self.client = None
        logger.info("✓ DexScreener source shut down")

    def strategies(self) -> List[FetchStrategy]:
        return [FetchStrategy("search", StrategyKind.PRIMARY, self._search)]

    async def _search(self) -> List[TokenRecord]:
        if self.client is None:
            raise RuntimeError("DexScreener source not initialized")
        return await self.client.search_tokens(self.query)


__all__ = ["DexScreenerSource", "DexScreenerAPIClient", "normalize_pair"]
