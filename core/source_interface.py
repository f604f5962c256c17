"""
Source Interface — Abstract Contract for All Market-Data Providers

This module defines the abstract base class that all source adapters must implement.
The fetch orchestrator and poll scheduler work with SourceAdapter, never with a
specific provider, so adding a provider never touches the core.

Attempt Chain:
    Each adapter declares an ordered list of FetchStrategy objects. fetch() tries
    them in order until one completes without raising; a failing strategy is
    logged and the next one is tried. When every strategy fails the adapter
    returns an empty list.

    Example:
        class GeckoTerminalSource(SourceAdapter):
            name = "geckoterminal"

            def strategies(self):
                return [
                    FetchStrategy("trending_pools", StrategyKind.PRIMARY, self._trending),
                    FetchStrategy("jupiter_sol_price", StrategyKind.FALLBACK, self._jupiter),
                ]

Fail-soft Contract:
    fetch() never raises (cancellation aside). Network errors, HTTP errors and
    malformed payloads all degrade to "this source returned nothing this cycle".
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from core.logging import get_logger, log_source_failure
from core.schemas import TokenRecord


logger = get_logger(__name__)


class SourceUnavailableError(RuntimeError):
    """
    Raised inside a source when a provider cannot deliver usable data.

    Covers exhausted retries (timeouts, 5xx, rate limits), non-retryable HTTP
    errors and malformed responses.

    Attributes:
        source: Source name (e.g. "dexscreener")
        status: HTTP status code, if a response was received
        body: Response body truncated to 200 characters, if any
    """

    def __init__(self, source: str, message: str, status: Optional[int] = None, body: Optional[str] = None):
        self.source = source
        self.status = status
        self.body = body[:200] if body else body
        super().__init__(f"{source}: {message}")


class StrategyKind(str, Enum):
    """Role of a strategy in an adapter's attempt chain."""

    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class FetchStrategy:
    """
    One candidate way of producing records for a source.

    Attributes:
        name: Short label used in logs (e.g. "trending_pools")
        kind: PRIMARY or FALLBACK
        run: Coroutine function returning normalized records; raises on failure
    """

    name: str
    kind: StrategyKind
    run: Callable[[], Awaitable[List[TokenRecord]]]


def is_usable_record(record: TokenRecord) -> bool:
    """True if a record carries an identity and a finite, non-negative price."""
    if not record.token_address:
        return False
    price = record.price_usd
    return isinstance(price, (int, float)) and math.isfinite(price) and price >= 0


class SourceAdapter(ABC):
    """
    Abstract Base Class for Source Adapters

    Class Attributes:
        name: Unique identifier for the source (lowercase, e.g. "dexscreener")

    Abstract Methods (MUST be implemented by all sources):
        - strategies: Ordered attempt chain for one fetch

    Optional Methods (can be overridden):
        - initialize: Open HTTP sessions
        - shutdown: Close HTTP sessions
    """

    name: str
    """Unique source identifier (lowercase). Example: "dexscreener" """

    @abstractmethod
    def strategies(self) -> List[FetchStrategy]:
        """
        Return the ordered attempt chain used by fetch().

        The first entry should be the PRIMARY strategy; FALLBACK entries
        follow in the order they should be tried.
        """

    async def initialize(self) -> None:
        """Set up connections (optional)."""

    async def shutdown(self) -> None:
        """Release connections (optional)."""

    async def fetch(self) -> List[TokenRecord]:
        """
        Fetch normalized records for this cycle. Never raises.

        Returns:
            List[TokenRecord]: Records from the first strategy that succeeded,
            filtered to those with an identity and a usable price. Empty when
            every strategy failed.
        """
        chain = self.strategies()
        for position, strategy in enumerate(chain, start=1):
            try:
                records = await strategy.run()
            except SourceUnavailableError as e:
                log_source_failure(
                    f"{self.name}/{strategy.name} ({position}/{len(chain)})", e.status, e.body, error=str(e)
                )
                continue
            except Exception as e:
                logger.error(
                    f"[{self.name}] {strategy.kind.value} strategy '{strategy.name}' failed "
                    f"({position}/{len(chain)}): {type(e).__name__}: {e}"
                )
                continue

            usable = [r for r in records if is_usable_record(r)]
            if len(usable) != len(records):
                logger.debug(f"[{self.name}] Dropped {len(records) - len(usable)} unusable record(s)")
            if strategy.kind is StrategyKind.FALLBACK:
                logger.warning(f"[{self.name}] Served by fallback '{strategy.name}' ({len(usable)} record(s))")
            return usable

        logger.error(f"[{self.name}] All {len(chain)} strategies exhausted; returning no records")
        return []

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name={self.name!r})>"
