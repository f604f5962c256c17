"""
GeckoTerminal REST API Client

Fetches trending pools for one network and normalizes each pool's base token
into a TokenRecord.

API Documentation:
    https://www.geckoterminal.com/dex-api

Endpoint Used:
    GET /networks/{network}/trending_pools?include=base_token

Response Format (abridged):
    {
      "data": [
        {
          "id": "solana_<pool address>",
          "attributes": {
            "name": "WIF / SOL",
            "base_token_price_usd": "2.41",
            "reserve_in_usd": "8400000.5",
            "volume_usd": {"h24": "15234000.12"},
            "price_change_percentage": {"h24": "-3.2"}
          },
          "relationships": {
            "base_token": {"data": {"id": "solana_<token address>", "type": "token"}},
            "dex": {"data": {"id": "raydium", "type": "dex"}}
          }
        }
      ],
      "included": [
        {"id": "solana_<token address>", "type": "token",
         "attributes": {"address": "...", "name": "dogwifhat", "symbol": "WIF"}}
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


SOURCE_NAME = "geckoterminal"

logger = get_logger(__name__)


def _relationship_id(pool: Dict[str, Any], name: str) -> Optional[str]:
    data = as_dict(as_dict(as_dict(pool.get("relationships")).get(name)).get("data"))
    rel_id = data.get("id")
    return rel_id if isinstance(rel_id, str) else None


def _resolve_base_token(pool: Dict[str, Any], included: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Find address/name/symbol of the pool's base token.

    Lookup order:
        1. attributes.base_token (inline object, older payload shape)
        2. the `included` token referenced by relationships.base_token
        3. relationships.base_token id ("<network>_<address>") and the pool
           name ("TICKER / QUOTE") for the ticker
    """
    attributes = as_dict(pool.get("attributes"))
    inline = attributes.get("base_token")
    if isinstance(inline, dict) and inline.get("address"):
        return inline

    rel_id = _relationship_id(pool, "base_token")
    if rel_id and as_dict(included.get(rel_id)).get("address"):
        return included[rel_id]

    token: Dict[str, Any] = {}
    if rel_id and "_" in rel_id:
        token["address"] = rel_id.split("_", 1)[1]
    pool_name = attributes.get("name")
    if isinstance(pool_name, str) and "/" in pool_name:
        token["symbol"] = pool_name.split("/", 1)[0].strip()
    return token


def normalize_pool(pool: Dict[str, Any], observed_at: datetime,
                   included: Optional[Dict[str, Dict[str, Any]]] = None) -> Optional[TokenRecord]:
    """
    Normalize one GeckoTerminal pool into a TokenRecord.

    Field mapping (default when missing):
        token_address    <- base token address                       (required)
        token_name       <- base token name, else ticker, else "Unknown"
        token_ticker     <- base token symbol                        ("")
        price_usd        <- attributes.base_token_price_usd          (required)
        volume_usd       <- attributes.volume_usd.h24                (None)
        liquidity_usd    <- attributes.reserve_in_usd                (None)
        price_change_24h <- attributes.price_change_percentage.h24   (None)
        protocol         <- relationships.dex.data.id                ("")

    Returns:
        TokenRecord, or None when the pool has no address or no usable price
    """
    if not isinstance(pool, dict):
        return None

    attributes = as_dict(pool.get("attributes"))
    base = _resolve_base_token(pool, included or {})
    address = base.get("address")
    price = to_non_negative_float(attributes.get("base_token_price_usd"))
    if not address or not isinstance(address, str) or not address.strip() or price is None:
        return None

    ticker = base.get("symbol") or ""
    return TokenRecord(
        token_address=address,
        token_name=base.get("name") or ticker or "Unknown",
        token_ticker=ticker,
        price_usd=price,
        volume_usd=to_non_negative_float(as_dict(attributes.get("volume_usd")).get("h24")),
        liquidity_usd=to_non_negative_float(attributes.get("reserve_in_usd")),
        price_change_24h=to_float(as_dict(attributes.get("price_change_percentage")).get("h24")),
        protocol=_relationship_id(pool, "dex") or "",
        source=SOURCE_NAME,
        last_updated=observed_at,
    )


class GeckoTerminalAPIClient:
    """
    Async client for GeckoTerminal's public API.

    Example:
        >>> async with GeckoTerminalAPIClient() as client:
        ...     tokens = await client.get_trending_tokens("solana")
    """

    BASE_URL = "https://api.geckoterminal.com/api/v2"

    def __init__(self, base_url: Optional[str] = None, max_attempts: int = 3, timeout: float = 10.0):
        self.http = SourceHTTPClient(
            SOURCE_NAME,
            base_url or self.BASE_URL,
            headers={"Referer": "https://www.geckoterminal.com/"},
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

    async def get_trending_tokens(self, network: str = "solana") -> List[TokenRecord]:
        """
        Fetch trending pools and return their base tokens as TokenRecords.

        Raises:
            SourceUnavailableError: request failed or payload is malformed
        """
        data = await self._get(f"/networks/{network}/trending_pools", {"include": "base_token"})

        if not isinstance(data, dict):
            raise SourceUnavailableError(SOURCE_NAME, f"unexpected payload type {type(data).__name__}")
        pools = data.get("data") or []
        if not isinstance(pools, list):
            raise SourceUnavailableError(SOURCE_NAME, "'data' is not a list", body=str(pools))

        included_items = data.get("included")
        if not isinstance(included_items, list):
            included_items = []
        included = {
            item["id"]: as_dict(item.get("attributes"))
            for item in included_items
            if isinstance(item, dict) and isinstance(item.get("id"), str)
        }

        observed_at = current_utc_datetime()
        tokens: List[TokenRecord] = []
        for pool in pools:
            try:
                record = normalize_pool(pool, observed_at, included)
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping malformed GeckoTerminal pool: {e}")
                continue
            if record is not None:
                tokens.append(record)

        logger.info(f"GeckoTerminal trending pools ({network}): {len(tokens)}/{len(pools)} pools normalized")
        return tokens
