"""
Merge Engine

Reduces the records fetched from every source in one cycle to exactly one
record per token identity.

Conflict Resolution (max-volume-wins):
    - Identity is the token address compared case-insensitively
    - The first record seen for an identity is the provisional winner
    - A later record replaces it only if its 24h volume is strictly higher
      (missing volume counts as 0), so ties keep the first-seen record
    - The losing record is discarded entirely; fields are never combined

Example:
    >>> merged = merge_tokens(dexscreener_records + geckoterminal_records)
"""

from typing import Dict, Iterable, List

from core.logging import get_logger
from core.schemas import TokenRecord


logger = get_logger(__name__)


def _volume(record: TokenRecord) -> float:
    return record.volume_usd or 0.0


def merge_tokens(records: Iterable[TokenRecord]) -> List[TokenRecord]:
    """
    Merge multi-source records into one record per identity.

    Args:
        records: Concatenated records of one cycle, in source order

    Returns:
        List[TokenRecord]: One winning record per identity, in first-seen order

    Notes:
        - Records with an empty address are dropped before grouping
        - Merging an already-merged list returns the same records
    """
    merged: Dict[str, TokenRecord] = {}
    dropped = 0

    for record in records:
        if record is None or not record.token_address:
            dropped += 1
            continue

        key = record.identity_key
        winner = merged.get(key)
        if winner is None or _volume(record) > _volume(winner):
            # Re-assigning an existing key keeps its first-seen position
            merged[key] = record

    if dropped:
        logger.debug(f"Dropped {dropped} record(s) without identity before merge")

    return list(merged.values())
