"""
Payload Utilities

Provider JSON is loosely typed: a field documented as an object can arrive as
a number, a string or null. Normalizers read nested fields through as_dict()
so a wrong shape reads as "missing" instead of raising.
"""

from typing import Any, Dict


def as_dict(value: Any) -> Dict[str, Any]:
    """
    Return value if it is a dict, otherwise an empty dict.

    Examples:
        >>> as_dict({"h24": 1.0}).get("h24")
        1.0
        >>> as_dict(123).get("h24") is None
        True
    """
    return value if isinstance(value, dict) else {}
