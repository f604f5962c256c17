"""
Source Manager — Registry and Fetch Orchestrator for Source Adapters

This module provides a centralized manager for all source adapters. It acts as
a registry (lookup, lifecycle) and as the fetch orchestrator of a poll cycle.

Fetch Orchestration:
    fetch_all() runs every registered adapter concurrently and waits for all of
    them to settle. Each adapter is bounded by a deadline; an adapter that
    raises or overruns contributes an empty list and is logged. One failing
    source never fails the cycle, and cycle latency is the slowest adapter's,
    not the sum.

Example Usage:
    manager = SourceManager()
    await manager.initialize_all()

    records = await manager.fetch_all()   # DexScreener + GeckoTerminal records
    print(manager.last_results["dexscreener"].ok)

    await manager.shutdown_all()
"""

import asyncio
from typing import Dict, List, Optional

from core.logging import logger
from core.schemas import SourceStatus, TokenRecord
from core.source_interface import SourceAdapter
from core.utils.time import current_utc_datetime


class SourceManager:
    """
    Central Manager for Source Adapters

    Attributes:
        sources: Dictionary mapping source names to adapter instances
        deadline: Per-source time budget for one fetch (seconds)
        last_results: Outcome of each source in the most recent fetch_all()

    Example:
        >>> manager = SourceManager()
        >>> manager.list_sources()
        ['dexscreener', 'geckoterminal']
    """

    def __init__(self, sources: Optional[List[SourceAdapter]] = None, deadline: Optional[float] = None):
        """
        Initialize the Source Manager and register adapters.

        Args:
            sources: Adapters to register; defaults to DexScreener and GeckoTerminal
            deadline: Per-source deadline in seconds; defaults to settings.source_deadline_seconds
        """
        from core.config import settings

        if sources is None:
            # Each source module imports from core, so import lazily
            from sources.dexscreener import DexScreenerSource
            from sources.geckoterminal import GeckoTerminalSource

            sources = [DexScreenerSource(), GeckoTerminalSource()]

        self.sources: Dict[str, SourceAdapter] = {source.name: source for source in sources}
        self.deadline = float(deadline if deadline is not None else settings.source_deadline_seconds)
        self.last_results: Dict[str, SourceStatus] = {}

        logger.info(f"SourceManager initialized with {len(self.sources)} source(s): {', '.join(self.sources.keys())}")

    # ============================================
    # Source Retrieval Methods
    # ============================================

    def get_source(self, name: str) -> SourceAdapter:
        """
        Get a source adapter by name.

        Raises:
            ValueError: If the source is not registered
        """
        name = name.lower()

        if name not in self.sources:
            available = ", ".join(self.sources.keys())
            logger.error(f"Source '{name}' not found. Available: {available}")
            raise ValueError(
                f"Source '{name}' is not registered. "
                f"Available sources: {available}"
            )

        return self.sources[name]

    def has_source(self, name: str) -> bool:
        return name.lower() in self.sources

    def list_sources(self) -> List[str]:
        return list(self.sources.keys())

    # ============================================
    # Lifecycle Management
    # ============================================

    async def initialize_all(self) -> None:
        """
        Initialize all registered sources.

        A source that fails to initialize is logged; the others still start.
        """
        logger.info("Initializing all sources...")

        for name, source in self.sources.items():
            try:
                await source.initialize()
            except Exception as e:
                logger.error(f"✗ Failed to initialize {name}: {e}")

        logger.info("All sources initialized")

    async def shutdown_all(self) -> None:
        """Shutdown all sources, continuing past individual errors."""
        logger.info("Shutting down all sources...")

        for name, source in self.sources.items():
            try:
                await source.shutdown()
            except Exception as e:
                logger.error(f"✗ Error shutting down {name}: {e}")

        logger.info("All sources shut down")

    # ============================================
    # Fetch Orchestration
    # ============================================

    async def _fetch_one(self, source: SourceAdapter) -> List[TokenRecord]:
        return await asyncio.wait_for(source.fetch(), timeout=self.deadline)

    async def fetch_all(self) -> List[TokenRecord]:
        """
        Fetch from every source concurrently and concatenate the results.

        Returns:
            List[TokenRecord]: Records in source registration order. A failed or
            timed-out source contributes nothing.

        Notes:
            - Never raises for a source failure (cancellation still propagates)
            - Updates last_results for the health endpoint
        """
        names = list(self.sources.keys())
        results = await asyncio.gather(
            *(self._fetch_one(self.sources[name]) for name in names),
            return_exceptions=True,
        )

        combined: List[TokenRecord] = []
        for name, result in zip(names, results):
            finished_at = current_utc_datetime()

            if isinstance(result, asyncio.TimeoutError):
                logger.error(f"✗ {name} exceeded its {self.deadline:.0f}s deadline; treated as unavailable")
                self.last_results[name] = SourceStatus(
                    source=name, ok=False, error=f"timeout after {self.deadline:.0f}s", finished_at=finished_at
                )
                continue

            if isinstance(result, BaseException):
                logger.error(f"✗ {name} fetch failed: {type(result).__name__}: {result}")
                self.last_results[name] = SourceStatus(
                    source=name, ok=False, error=f"{type(result).__name__}: {result}", finished_at=finished_at
                )
                continue

            self.last_results[name] = SourceStatus(
                source=name, ok=True, records=len(result), finished_at=finished_at
            )
            logger.debug(f"{name}: {len(result)} record(s)")
            combined.extend(result)

        return combined

    # ============================================
    # Utility Methods
    # ============================================

    def __repr__(self) -> str:
        return f"<SourceManager(sources={list(self.sources.keys())})>"

    def __len__(self) -> int:
        return len(self.sources)
