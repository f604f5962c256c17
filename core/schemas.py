"""
Normalized Data Schemas

This module defines Pydantic models for token market data.
These schemas provide a unified, provider-agnostic data format.

Key Principle:
    Regardless of which provider the data comes from (DexScreener, GeckoTerminal,
    Jupiter), it gets normalized into these standardized schemas. The merge, diff
    and query layers only ever see TokenRecord.

Models:
    - TokenRecord: One observation of a token from one source (also the merged record)
    - TokenPriceChange: TokenRecord annotated with the relative price change
    - DiffResult: New tokens and price changes detected in one cycle
    - SourceStatus: Outcome of one source's fetch in the latest cycle
    - PageMeta / TokenPage: Response envelope of the /tokens query endpoint
"""

from datetime import datetime
from typing import Dict, List, Mapping, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict


PriceProjection = Mapping[str, float]
"""Identity key (lowercased token address) -> price_usd, derived from one cycle's merged set."""


# ============================================
# Token Record Schema
# ============================================

class TokenRecord(BaseModel):
    """
    Canonical Token Record

    Represents one observation of a tradable token from one source at one instant.
    After merging, the winning record for an identity is stored unchanged, so the
    same model doubles as the Merged Record (its `source` is the winning source).

    Attributes:
        token_address: Chain address identifying the token (identity)
        token_name: Human-readable name ("Unknown" when the provider omits it)
        token_ticker: Ticker symbol ("" when the provider omits it)
        price_usd: Price in USD (required, non-negative)
        volume_usd: 24h traded volume in USD (None when unknown)
        liquidity_usd: Pool liquidity in USD (None when unknown)
        price_change_24h: Provider-reported 24h change in percent (None when unknown)
        protocol: DEX identifier the pair trades on (e.g. "raydium")
        source: Adapter that produced the record (e.g. "dexscreener")
        last_updated: UTC time the record was fetched

    Notes:
        - Identity comparisons are case-insensitive, use `identity_key`
        - Records are never mutated after creation; a new cycle builds new ones
    """

    token_address: str = Field(
        ...,
        min_length=1,
        description="Token chain address (identity, compared case-insensitively)"
    )

    token_name: str = Field(
        default="Unknown",
        description="Token name"
    )

    token_ticker: str = Field(
        default="",
        description="Token ticker symbol"
    )

    price_usd: float = Field(
        ...,
        ge=0,
        description="Token price in USD"
    )

    volume_usd: Optional[float] = Field(
        None,
        ge=0,
        description="24h trading volume in USD"
    )

    liquidity_usd: Optional[float] = Field(
        None,
        ge=0,
        description="Pool liquidity in USD"
    )

    price_change_24h: Optional[float] = Field(
        None,
        description="Provider-reported 24h price change in percent"
    )

    protocol: str = Field(
        default="",
        description="DEX identifier"
    )

    source: str = Field(
        ...,
        description="Source adapter that produced this record",
        examples=["dexscreener", "geckoterminal", "jupiter-fallback"]
    )

    last_updated: datetime = Field(
        ...,
        description="UTC time the record was fetched"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "token_address": "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",
                "token_name": "dogwifhat",
                "token_ticker": "WIF",
                "price_usd": 2.41,
                "volume_usd": 15234000.0,
                "liquidity_usd": 8400000.0,
                "price_change_24h": -3.2,
                "protocol": "raydium",
                "source": "dexscreener",
                "last_updated": "2024-01-01T12:00:00Z"
            }
        }
    )

    @field_validator('token_address')
    @classmethod
    def validate_token_address(cls, v: str) -> str:
        """Strip surrounding whitespace; an all-blank address is rejected"""
        v = v.strip()
        if not v:
            raise ValueError("token_address must not be blank")
        return v

    @field_validator('source')
    @classmethod
    def validate_source(cls, v: str) -> str:
        """Ensure source is lowercase"""
        return v.lower()

    @property
    def identity_key(self) -> str:
        """Case-insensitive identity used for merging and diffing."""
        return self.token_address.lower()


class TokenPriceChange(TokenRecord):
    """
    Price Change Event Payload

    A merged TokenRecord annotated with the relative change against the previous
    cycle's price: price_change_pct = |new - old| / old (a fraction, 0.05 = 5%).
    """

    price_change_pct: float = Field(
        ...,
        ge=0,
        description="Relative price change since the previous cycle (fraction)"
    )


# ============================================
# Diff Result Schema
# ============================================

class DiffResult(BaseModel):
    """
    Outcome of comparing one cycle's merged set against the previous projection.

    Tokens that disappeared since the previous cycle are not reported here.
    """

    new_tokens: List[TokenRecord] = Field(default_factory=list)
    price_changes: List[TokenPriceChange] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.new_tokens and not self.price_changes


# ============================================
# Source Status Schema
# ============================================

class SourceStatus(BaseModel):
    """Result of one source's fetch during the most recent cycle."""

    source: str
    ok: bool
    records: int = 0
    error: Optional[str] = None
    finished_at: datetime


# ============================================
# Query Endpoint Schemas
# ============================================

class PageMeta(BaseModel):
    """Pagination metadata returned by GET /tokens."""

    total: int = Field(..., ge=0, description="Number of tokens matching the filters")
    limit: int = Field(..., ge=1, le=100)
    offset: int = Field(..., ge=0)
    hasMore: bool
    sortBy: str
    sortOrder: str


class TokenPage(BaseModel):
    """Response envelope of GET /tokens."""

    data: List[TokenRecord]
    meta: PageMeta

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "data": [],
                "meta": {
                    "total": 0,
                    "limit": 30,
                    "offset": 0,
                    "hasMore": False,
                    "sortBy": "volume_usd",
                    "sortOrder": "desc"
                }
            }
        }
    )


def to_payload(records: List[TokenRecord]) -> List[Dict]:
    """Serialize records into JSON-ready dicts for the WebSocket transport."""
    return [record.model_dump(mode="json") for record in records]
