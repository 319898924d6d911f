"""
tradelab: Feature Engineering Package

This package includes:
- `indicators`: SMA, EMA, RSI, MACD, Bollinger Bands, ATR and `compute_indicator`
- `sampling`: volume-uniform resampling and calendar aggregation of bars

Usage:
    from tradelab.features import indicators, sampling

All modules under this package are pure: no I/O, no shared state, and every
indicator output is index-aligned with its input bars.
"""

from . import indicators, sampling
from .indicators import compute_indicator
from .sampling import resample_by_volume, sample_bars

__all__ = ["indicators", "sampling", "compute_indicator", "resample_by_volume", "sample_bars"]
