"""
In-Memory Snapshot Store

Holds the current merged token set and the price projection of the same cycle.
The poll scheduler is the only writer; the query endpoint and WebSocket
handlers read.

Consistency Model:
    Every commit builds a complete, immutable Snapshot (records tuple plus a
    read-only projection) and publishes it with a single attribute assignment.
    Readers therefore always see one fully committed cycle, never a mix, and
    never wait on a cycle that is still computing.

Lifecycle:
    Empty at process start, replaced wholesale once per committed cycle,
    discarded at process exit (no persistence).
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, Optional, Tuple

from core.logging import get_logger
from core.schemas import PriceProjection, TokenRecord
from core.utils.time import current_utc_datetime


logger = get_logger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """One committed cycle: merged records and their identity -> price projection."""

    records: Tuple[TokenRecord, ...] = ()
    projection: PriceProjection = field(default_factory=lambda: MappingProxyType({}))
    cycle: int = 0
    committed_at: Optional[datetime] = None

    @classmethod
    def build(cls, records: Iterable[TokenRecord], cycle: int) -> "Snapshot":
        frozen = tuple(records)
        projection = MappingProxyType({r.identity_key: r.price_usd for r in frozen})
        return cls(records=frozen, projection=projection, cycle=cycle, committed_at=current_utc_datetime())


class SnapshotStore:
    """
    Owner of the current Snapshot.

    Example:
        >>> store = SnapshotStore()
        >>> store.read()
        ()
        >>> store.commit(merged_records)
        >>> len(store.read())
        42
    """

    def __init__(self) -> None:
        self._snapshot = Snapshot()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def read(self) -> Tuple[TokenRecord, ...]:
        """Records of the last committed cycle (empty before the first commit)."""
        return self._snapshot.records

    def previous_projection(self) -> PriceProjection:
        """Identity -> price mapping of the last committed cycle, for diffing."""
        return self._snapshot.projection

    def commit(self, records: Iterable[TokenRecord]) -> Snapshot:
        """
        Replace the current snapshot with a new one built from `records`.

        Returns:
            The newly committed Snapshot
        """
        snapshot = Snapshot.build(records, cycle=self._snapshot.cycle + 1)
        self._snapshot = snapshot
        logger.debug(f"Committed snapshot #{snapshot.cycle} with {len(snapshot.records)} token(s)")
        return snapshot

    def stats(self) -> Dict[str, Any]:
        snapshot = self._snapshot
        return {
            "tokens": len(snapshot.records),
            "cycle": snapshot.cycle,
            "committed_at": snapshot.committed_at.isoformat() if snapshot.committed_at else None,
        }

    def __len__(self) -> int:
        return len(self._snapshot.records)
