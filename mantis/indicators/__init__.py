"""
Indicators
==========

- calculator.py: RSI / SMA / ADX 스냅샷 (talib)
"""
from .calculator import (
    IndicatorSnapshot,
    indicator_frame,
    compute_snapshots,
    latest_snapshot,
)

__all__ = [
    'IndicatorSnapshot',
    'indicator_frame',
    'compute_snapshots',
    'latest_snapshot',
]
