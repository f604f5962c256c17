"""
Jupiter Price API Client

Used only as a fallback provider: when GeckoTerminal is unavailable, the
wrapped SOL price from Jupiter keeps at least the reference token fresh.

Endpoint Used:
    GET /price/v2?ids=<mint>

Response Format:
    {"data": {"So111...112": {"id": "So111...112", "type": "derivedPrice", "price": "143.27"}}}
"""

from typing import Any, Dict, Optional

from core.logging import get_logger
from core.schemas import TokenRecord
from core.source_interface import SourceUnavailableError
from core.utils.numbers import to_non_negative_float
from core.utils.payload import as_dict
from core.utils.time import current_utc_datetime
from sources.http import SourceHTTPClient


SOURCE_NAME = "jupiter-fallback"
SOL_MINT = "So11111111111111111111111111111111111111112"

logger = get_logger(__name__)


class JupiterPriceClient:
    """
    Async client for Jupiter's price endpoint (single attempt, short timeout).

    Example:
        >>> async with JupiterPriceClient() as client:
        ...     sol = await client.get_sol_price()
    """

    PRICE_URL = "https://api.jup.ag/price/v2"

    def __init__(self, price_url: Optional[str] = None, timeout: float = 8.0):
        self.http = SourceHTTPClient("jupiter", price_url or self.PRICE_URL, max_attempts=1, timeout=timeout)

    async def __aenter__(self):
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.http.__aexit__(exc_type, exc_val, exc_tb)

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.http.get_json(path, params)

    async def get_sol_price(self) -> TokenRecord:
        """
        Fetch the wrapped SOL price as a TokenRecord.

        Raises:
            SourceUnavailableError: request failed or the price is missing
        """
        data = await self._get("", {"ids": SOL_MINT})

        entry = as_dict(as_dict(data).get("data")).get(SOL_MINT)
        price = to_non_negative_float(entry.get("price")) if isinstance(entry, dict) else None
        if price is None:
            raise SourceUnavailableError(SOURCE_NAME, "SOL price missing from Jupiter response", body=str(data))

        logger.info(f"Jupiter SOL price: ${price:,.4f}")
        return TokenRecord(
            token_address=SOL_MINT,
            token_name="SOL",
            token_ticker="SOL",
            price_usd=price,
            source=SOURCE_NAME,
            last_updated=current_utc_datetime(),
        )
