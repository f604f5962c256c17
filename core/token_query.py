"""
Token Query

Filtering, sorting and pagination applied by GET /tokens to the committed
snapshot. These are plain list operations on an immutable snapshot; nothing
here touches the store.

Filters:
    min_price / max_price          bounds on price_usd
    min_volume / min_liquidity     lower bounds (missing value counts as 0)
    search                         case-insensitive substring of name, ticker or address

Sorting:
    sort must be one of SORT_FIELDS (anything else falls back to volume_usd);
    missing values sort as 0. order is "asc" or "desc" (anything but "asc" is desc).

Pagination:
    limit defaults to 30 and is capped at 100; offset defaults to 0.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from core.schemas import PageMeta, TokenPage, TokenRecord
from core.utils.time import datetime_to_timestamp


SORT_FIELDS = ("price_usd", "volume_usd", "liquidity_usd", "price_change_24h", "last_updated")
DEFAULT_SORT = "volume_usd"
DEFAULT_LIMIT = 30
MAX_LIMIT = 100


class TokenQuery(BaseModel):
    """Parsed /tokens query parameters."""

    sort: str = DEFAULT_SORT
    order: str = "desc"
    limit: int = Field(default=DEFAULT_LIMIT, ge=1)
    offset: int = Field(default=0, ge=0)
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_volume: Optional[float] = None
    min_liquidity: Optional[float] = None
    search: Optional[str] = None

    @property
    def sort_field(self) -> str:
        return self.sort if self.sort in SORT_FIELDS else DEFAULT_SORT

    @property
    def descending(self) -> bool:
        return self.order.lower() != "asc"

    @property
    def page_size(self) -> int:
        return min(self.limit, MAX_LIMIT)


def filter_tokens(tokens: Iterable[TokenRecord], query: TokenQuery) -> List[TokenRecord]:
    result = list(tokens)

    if query.min_price is not None:
        result = [t for t in result if t.price_usd >= query.min_price]
    if query.max_price is not None:
        result = [t for t in result if t.price_usd <= query.max_price]
    if query.min_volume is not None:
        result = [t for t in result if (t.volume_usd or 0) >= query.min_volume]
    if query.min_liquidity is not None:
        result = [t for t in result if (t.liquidity_usd or 0) >= query.min_liquidity]
    if query.search:
        needle = query.search.lower()
        result = [
            t for t in result
            if needle in t.token_name.lower()
            or needle in t.token_ticker.lower()
            or needle in t.token_address.lower()
        ]

    return result


def _sort_value(token: TokenRecord, field: str) -> float:
    value = getattr(token, field)
    if value is None:
        return 0.0
    if isinstance(value, datetime):
        return float(datetime_to_timestamp(value, milliseconds=True))
    return float(value)


def sort_tokens(tokens: List[TokenRecord], field: str, descending: bool = True) -> List[TokenRecord]:
    """Stable sort by a whitelisted field; missing values sort as 0."""
    return sorted(tokens, key=lambda t: _sort_value(t, field), reverse=descending)


def query_tokens(tokens: Iterable[TokenRecord], query: TokenQuery) -> TokenPage:
    """
    Apply filters, sorting and pagination to a snapshot.

    Example:
        >>> page = query_tokens(store.read(), TokenQuery(sort="price_usd", order="asc", limit=10))
        >>> page.meta.total
        57
    """
    matched = sort_tokens(filter_tokens(tokens, query), query.sort_field, query.descending)

    limit = query.page_size
    offset = query.offset
    total = len(matched)

    return TokenPage(
        data=matched[offset:offset + limit],
        meta=PageMeta(
            total=total,
            limit=limit,
            offset=offset,
            hasMore=offset + limit < total,
            sortBy=query.sort_field,
            sortOrder=query.order,
        ),
    )
