"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: UTC datetime helpers
    - numbers: Provider value to float conversion
    - payload: Shape guards for nested provider JSON
"""

from core.utils.numbers import to_float, to_non_negative_float
from core.utils.payload import as_dict
from core.utils.time import current_utc_datetime, datetime_to_timestamp

__all__ = ["as_dict", "to_float", "to_non_negative_float", "current_utc_datetime", "datetime_to_timestamp"]
