"""
DexScreener REST API Client

Fetches DEX pairs from DexScreener's search endpoint and normalizes each pair's
base token into a TokenRecord.

API Documentation:
    https://docs.dexscreener.com/api/reference

Endpoint Used:
    GET /latest/dex/search?q=<query>

Response Format:
    {
      "schemaVersion": "1.0.0",
      "pairs": [
        {
          "dexId": "raydium",
          "baseToken": {"address": "...", "name": "dogwifhat", "symbol": "WIF"},
          "priceUsd": "2.41",
          "volume": {"h24": 15234000.12},
          "priceChange": {"h24": -3.2},
          "liquidity": {"usd": 8400000.5}
        }
      ]
    }
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from core.logging import get_logger
from core.schemas import TokenRecord
from core.source_interface import SourceUnavailableError
from core.utils.numbers import to_float, to_non_negative_float
from core.utils.payload import as_dict
from core.utils.time import current_utc_datetime
from sources.http import SourceHTTPClient


SOURCE_NAME = "dexscreener"

logger = get_logger(__name__)


def normalize_pair(pair: Dict[str, Any], observed_at: datetime) -> Optional[TokenRecord]:
    """
    Normalize one DexScreener pair into a TokenRecord.

    Field mapping (default when missing):
        token_address    <- baseToken.address, else tokenAddress   (required)
        token_name       <- baseToken.name                          ("Unknown")
        token_ticker     <- baseToken.symbol                        ("")
        price_usd        <- priceUsd                                (required)
        volume_usd       <- volume.h24, else volumeUsd              (None)
        liquidity_usd    <- liquidity.usd                           (None)
        price_change_24h <- priceChange.h24                         (None)
        protocol         <- dexId                                   ("")

    Returns:
        TokenRecord, or None when the pair has no address or no usable price
    """
    if not isinstance(pair, dict):
        return None

    base = as_dict(pair.get("baseToken"))
    address = base.get("address") or pair.get("tokenAddress")
    price = to_non_negative_float(pair.get("priceUsd"))
    if not address or not isinstance(address, str) or not address.strip() or price is None:
        return None

    volume = to_non_negative_float(as_dict(pair.get("volume")).get("h24"))
    if volume is None:
        volume = to_non_negative_float(pair.get("volumeUsd"))

    return TokenRecord(
        token_address=address,
        token_name=base.get("name") or "Unknown",
        token_ticker=base.get("symbol") or "",
        price_usd=price,
        volume_usd=volume,
        liquidity_usd=to_non_negative_float(as_dict(pair.get("liquidity")).get("usd")),
        price_change_24h=to_float(as_dict(pair.get("priceChange")).get("h24")),
        protocol=pair.get("dexId") or "",
        source=SOURCE_NAME,
        last_updated=observed_at,
    )


class DexScreenerAPIClient:
    """
    Async client for DexScreener's public API.

    Example:
        >>> async with DexScreenerAPIClient() as client:
        ...     tokens = await client.search_tokens("solana")
        ...     print(f"Fetched {len(tokens)} tokens")
    """

    BASE_URL = "https://api.dexscreener.com"

    def __init__(self, base_url: Optional[str] = None, max_attempts: int = 4, timeout: float = 10.0):
        self.http = SourceHTTPClient(
            SOURCE_NAME,
            base_url or self.BASE_URL,
            headers={"Referer": "https://dexscreener.com/"},
            max_attempts=max_attempts,
            timeout=timeout,
        )

    async def __aenter__(self):
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.http.__aexit__(exc_type, exc_val, exc_tb)

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.http.get_json(path, params)

    async def search_tokens(self, query: str = "solana") -> List[TokenRecord]:
        """
        Search pairs and return their base tokens as TokenRecords.

        Args:
            query: Free-text search (chain name, ticker, address)

        Returns:
            Normalized records; pairs without an address or price are skipped

        Raises:
            SourceUnavailableError: request failed or payload is malformed
        """
        data = await self._get("/latest/dex/search", {"q": query})

        if not isinstance(data, dict):
            raise SourceUnavailableError(SOURCE_NAME, f"unexpected payload type {type(data).__name__}")
        pairs = data.get("pairs") or []
        if not isinstance(pairs, list):
            raise SourceUnavailableError(SOURCE_NAME, "'pairs' is not a list", body=str(pairs))

        observed_at = current_utc_datetime()
        tokens: List[TokenRecord] = []
        for pair in pairs:
            try:
                record = normalize_pair(pair, observed_at)
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping malformed DexScreener pair: {e}")
                continue
            if record is not None:
                tokens.append(record)

        logger.info(f"DexScreener search '{query}': {len(tokens)}/{len(pairs)} pairs normalized")
        return tokens
