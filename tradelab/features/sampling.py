from __future__ import annotations

import logging
from typing import List, Optional

import pandas as pd

from tradelab.core.exceptions import InvalidInputError
from tradelab.core.models import Bar, Bars, BarsLike, as_bars, ohlcv_frame
from tradelab.settings import get_sampling_settings

log = logging.getLogger(__name__)

SAMPLING_METHODS = ("time", "volume")


def sort_bars(bars: BarsLike) -> Bars:
    """Returns a chronologically ordered copy (stable for equal timestamps)."""
    seq = as_bars(bars)
    return Bars(sorted(seq, key=lambda bar: bar.timestamp))


def resample_by_volume(
    bars: BarsLike,
    max_bars: Optional[int] = None,
    min_bars: Optional[int] = None,
) -> Bars:
    """
    Converts a time-indexed bar sequence into bars of roughly equal traded volume.

    Args:
        bars (BarsLike): The bars to resample, in any order.
        max_bars (Optional[int]): Target bar count cap; defaults to settings (20).
        min_bars (Optional[int]): Inputs shorter than this are only sorted;
            defaults to settings (10).

    Returns:
        Bars: Volume bars whose volumes sum to the input volume. Each bar keeps
        the first open, the extreme high/low, and the last close and timestamp
        of the bars folded into it.
    """
    cfg = get_sampling_settings()
    max_bars = cfg.volume_max_bars if max_bars is None else int(max_bars)
    min_bars = cfg.volume_min_bars if min_bars is None else int(min_bars)
    if max_bars < 1:
        raise InvalidInputError(f"max_bars must be >= 1, got {max_bars}")

    ordered = sort_bars(bars)
    if len(ordered) < min_bars:
        log.debug(
            "resample_by_volume: %d bars < min_bars=%d; returning sorted input",
            len(ordered),
            min_bars,
        )
        return ordered

    total_volume = sum(bar.volume for bar in ordered)
    volume_per_bar = total_volume / min(len(ordered), max_bars)

    out: List[Bar] = []
    current: Optional[dict] = None
    for bar in ordered:
        if current is None:
            current = {
                "timestamp": bar.timestamp,
                "open": bar.open,
                "high": bar.high,
                "low": bar.low,
                "close": bar.close,
                "volume": bar.volume,
            }
            continue

        current["volume"] += bar.volume
        current["high"] = max(current["high"], bar.high)
        current["low"] = min(current["low"], bar.low)
        current["close"] = bar.close
        current["timestamp"] = bar.timestamp

        if current["volume"] >= volume_per_bar:
            out.append(Bar(**current))
            current = None

    if current is not None:
        out.append(Bar(**current))

    log.debug(
        "resample_by_volume: %d bars -> %d volume bars (%.2f per bar)",
        len(ordered),
        len(out),
        volume_per_bar,
    )
    return Bars(out)


def aggregate_ohlcv(
    df: pd.DataFrame,
    rule: str,
    *,
    label: str = "right",
    closed: str = "right",
) -> pd.DataFrame:
    """
    Aggregates OHLCV data to a calendar timeframe.

    Args:
        df (pd.DataFrame): A DataFrame with OHLCV data indexed by timestamp.
        rule (str): The pandas resampling rule (e.g. "1h", "1D", "W").
        label (str): The label for the resampled data.
        closed (str): The closed side for the resampled data.

    Returns:
        pd.DataFrame: An aggregated DataFrame with empty buckets dropped.
    """
    frame = ohlcv_frame(df)
    if not isinstance(frame.index, pd.DatetimeIndex):
        raise InvalidInputError("aggregate_ohlcv expects bars indexed by timestamp")

    agg = {
        "open": "first",
        "high": "max",
        "low": "min",
        "close": "last",
        "volume": "sum",
    }
    res = frame.sort_index(kind="stable").resample(rule, label=label, closed=closed).agg(agg)
    return res.dropna(subset=["open", "high", "low", "close"], how="all")


def sample_bars(
    bars: BarsLike,
    method: str = "time",
    *,
    rule: Optional[str] = None,
) -> Bars:
    """
    Applies the chart sampling toggle before indicators are computed.

    ``time`` returns chronologically ordered bars, bucketed by ``rule`` when one
    is given; ``volume`` returns volume-uniform bars.
    """
    key = str(method).strip().lower()
    if key == "volume":
        return resample_by_volume(bars)
    if key == "time":
        if rule is None:
            return sort_bars(bars)
        return Bars.from_dataframe(aggregate_ohlcv(ohlcv_frame(bars), rule))
    raise InvalidInputError(
        f"unknown sampling method {method!r}; expected one of {SAMPLING_METHODS}"
    )


__all__ = [
    "SAMPLING_METHODS",
    "sort_bars",
    "resample_by_volume",
    "aggregate_ohlcv",
    "sample_bars",
]
