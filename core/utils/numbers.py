"""
Numeric Utilities

Provider APIs return numbers in mixed shapes: JSON numbers, numeric strings
("0.00001234"), empty strings, or null. These helpers convert them into
floats (or None) in one place so each normalizer stays declarative.
"""

import math
from typing import Any, Optional


def to_float(value: Any) -> Optional[float]:
    """
    Convert a provider value to a finite float.

    Args:
        value: int, float, numeric string, or anything else

    Returns:
        float if the value is numeric and finite, otherwise None

    Examples:
        >>> to_float("1.5")
        1.5
        >>> to_float("") is None
        True
        >>> to_float("NaN") is None
        True
        >>> to_float(True) is None
        True
        >>> to_float(10 ** 400) is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not isinstance(value, (int, float)):
        return None

    # Huge JSON integers overflow float()
    try:
        result = float(value)
    except (ValueError, OverflowError):
        return None
    return result if math.isfinite(result) else None


def to_non_negative_float(value: Any) -> Optional[float]:
    """Like to_float(), but negative values are treated as missing."""
    result = to_float(value)
    if result is None or result < 0:
        return None
    return result
