"""
Utility helpers.
"""

from .timezone import (
    get_utc_now,
    to_utc_datetime,
    epoch_millis,
    one_month_before,
)

__all__ = [
    "get_utc_now",
    "to_utc_datetime",
    "epoch_millis",
    "one_month_before",
]
