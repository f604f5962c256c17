"""
GeckoTerminal Source Adapter

GeckoTerminal's trending pools endpoint lists the most active pools of one
network with base token price, 24h volume and reserve (liquidity).

Attempt chain:
    1. PRIMARY   trending_pools   : GET /networks/<network>/trending_pools
    2. FALLBACK  jupiter_sol_price: GET jup.ag /price/v2?ids=<SOL mint>
                                    (only when jupiter_fallback_enabled)
"""

from typing import List, Optional

from core.logging import logger
from core.schemas import TokenRecord
from core.source_interface import FetchStrategy, SourceAdapter, StrategyKind
from sources.jupiter import JupiterPriceClient
from .api_client import GeckoTerminalAPIClient, normalize_pool, SOURCE_NAME


class GeckoTerminalSource(SourceAdapter):
    """
    GeckoTerminal source connector with a Jupiter fallback.

    Example:
        >>> source = GeckoTerminalSource()
        >>> await source.initialize()
        >>> records = await source.fetch()
        >>> await source.shutdown()
    """

    name = SOURCE_NAME

    def __init__(self, network: Optional[str] = None, fallback_enabled: Optional[bool] = None):
        from core.config import settings

        self.network = network or settings.geckoterminal_network
        self.base_url = settings.geckoterminal_base_url
        self.max_attempts = settings.geckoterminal_max_attempts
        self.timeout = settings.source_request_timeout
        self.jupiter_url = settings.jupiter_price_url
        self.fallback_enabled = (
            settings.jupiter_fallback_enabled if fallback_enabled is None else fallback_enabled
        )
        self.client: Optional[GeckoTerminalAPIClient] = None
        self.fallback_client: Optional[JupiterPriceClient] = None

        logger.debug(f"GeckoTerminalSource created (base_url={self.base_url}, network={self.network})")

    async def initialize(self) -> None:
        self.client = GeckoTerminalAPIClient(self.base_url, self.max_attempts, self.timeout)
        await self.client.__aenter__()
        if self.fallback_enabled:
            self.fallback_client = JupiterPriceClient(self.jupiter_url)
            await self.fallback_client.__aenter__()
        logger.info("✓ GeckoTerminal source initialized")

    async def shutdown(self) -> None:
        if self.client:
            await self.client.__aexit__(None, None, None)
            self.client = None
        if self.fallback_client:
            await self.fallback_client.__aexit__(None, None, None)
            self.fallback_client = None
        logger.info("✓ GeckoTerminal source shut down")

    def strategies(self) -> List[FetchStrategy]:
        chain = [FetchStrategy("trending_pools", StrategyKind.PRIMARY, self._trending_pools)]
        if self.fallback_enabled:
            chain.append(FetchStrategy("jupiter_sol_price", StrategyKind.FALLBACK, self._jupiter_sol_price))
        return chain

    async def _trending_pools(self) -> List[TokenRecord]:
        if self.client is None:
            raise RuntimeError("GeckoTerminal source not initialized")
        return await self.client.get_trending_tokens(self.network)

    async def _jupiter_sol_price(self) -> List[TokenRecord]:
        if self.fallback_client is None:
            raise RuntimeError("Jupiter fallback not initialized")
        return [await self.fallback_client.get_sol_price()]


__all__ = ["GeckoTerminalSource", "GeckoTerminalAPIClient", "normalize_pool"]
