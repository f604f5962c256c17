"""
Storage Package

Handles the in-memory state of the aggregator.

Current implementation:
- SnapshotStore: current merged token set plus the previous price projection

State is memory-resident only and rebuilt from scratch on boot.
"""

from storage.snapshot_store import Snapshot, SnapshotStore

__all__ = ["Snapshot", "SnapshotStore"]
