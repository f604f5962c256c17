"""
Diff Engine

Compares one cycle's merged records against the previous cycle's price
projection and classifies each record:

    - New:      identity absent from the previous projection
    - Changed:  |price_now - price_prev| / price_prev >= threshold
    - nothing otherwise

Guards:
    A previous price of 0, or a non-numeric / non-finite price on either side,
    makes the relative change undefined; that record is skipped, never raised.

Known limitation:
    Tokens present in the previous projection but absent now produce no event.
    Consumers that need removals must compare snapshot membership themselves.
"""

import math
from typing import Iterable, Optional

from core.logging import get_logger
from core.schemas import DiffResult, PriceProjection, TokenPriceChange, TokenRecord


logger = get_logger(__name__)

DEFAULT_THRESHOLD = 0.05


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def relative_change(previous: float, current: float) -> Optional[float]:
    """
    Relative change |current - previous| / previous, or None if undefined.

    Examples:
        >>> relative_change(100.0, 105.0)
        0.05
        >>> relative_change(0.0, 5.0) is None
        True
    """
    if not _is_number(previous) or not _is_number(current) or previous == 0:
        return None
    return abs(current - previous) / previous


def compute_diff(
    records: Iterable[TokenRecord],
    previous_projection: PriceProjection,
    threshold: float = DEFAULT_THRESHOLD,
) -> DiffResult:
    """
    Detect new tokens and significant price changes.

    Args:
        records: Merged records of the current cycle
        previous_projection: identity_key -> price of the previous cycle
        threshold: Minimum relative change (inclusive) reported as a change

    Returns:
        DiffResult with new_tokens and price_changes (either may be empty)
    """
    result = DiffResult()
    skipped = 0

    for record in records:
        key = record.identity_key
        if key not in previous_projection:
            result.new_tokens.append(record)
            continue

        # Rounding can put an exact boundary move a hair below the threshold
        change = relative_change(previous_projection[key], record.price_usd)
        if change is None:
            skipped += 1
            continue
        if change >= threshold or math.isclose(change, threshold, rel_tol=1e-9):
            result.price_changes.append(
                TokenPriceChange(**record.model_dump(), price_change_pct=change)
            )

    if skipped:
        logger.debug(f"Skipped {skipped} record(s) with no comparable previous price")

    return result
