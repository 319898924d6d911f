"""
Feature engineering: technical indicators.

Every function takes an ordered bar sequence (``Bars``, a list of ``Bar`` or an
OHLCV DataFrame) and returns a float Series, or a DataFrame of Series, with the
same length and index as the input. Positions without enough history hold NaN.

Recurrences run at full precision; values are rounded to 2 decimals only when
emitted.
"""

import logging
from typing import Callable, Dict

import numpy as np
import pandas as pd

from tradelab.core.exceptions import InvalidInputError
from tradelab.core.models import BarsLike, ohlcv_frame

log = logging.getLogger(__name__)

_DECIMALS = 2


def _check_period(name: str, value: int) -> int:
    try:
        ok = not isinstance(value, bool) and int(value) == value and int(value) >= 1
    except (TypeError, ValueError):
        ok = False
    if not ok:
        raise InvalidInputError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def _emit(values: np.ndarray, index: pd.Index, name: str) -> pd.Series:
    return pd.Series(values, index=index, dtype=float, name=name).round(_DECIMALS)


def _frame(columns: Dict[str, np.ndarray], index: pd.Index) -> pd.DataFrame:
    return pd.DataFrame(columns, index=index, dtype=float).round(_DECIMALS)


def _seeded_smoothing(
    values: np.ndarray, seed_pos: int, seed: float, alpha: float
) -> np.ndarray:
    """
    Exponential smoothing seeded with ``seed`` at ``seed_pos``:
    ``out[i] = out[i-1] + alpha * (values[i] - out[i-1])`` for ``i > seed_pos``.
    Earlier positions are NaN.
    """
    out = np.full(len(values), np.nan)
    if seed_pos >= len(values):
        return out
    tail = pd.Series(values[seed_pos:], dtype=float)
    tail.iloc[0] = seed
    out[seed_pos:] = tail.ewm(alpha=alpha, adjust=False).mean().to_numpy()
    return out


def _ema_values(values: np.ndarray, period: int) -> np.ndarray:
    """SMA-seeded EMA over a dense array; all NaN when shorter than ``period``."""
    if len(values) < period:
        return np.full(len(values), np.nan)
    seed = float(np.mean(values[:period]))
    return _seeded_smoothing(values, period - 1, seed, 2.0 / (period + 1))


def sma(bars: BarsLike, period: int) -> pd.Series:
    """Simple moving average of close over the trailing ``period`` bars."""
    period = _check_period("period", period)
    close = ohlcv_frame(bars)["close"]
    values = close.rolling(window=period, min_periods=period).mean()
    return _emit(values.to_numpy(), close.index, f"sma{period}")


def ema(bars: BarsLike, period: int) -> pd.Series:
    """Exponential moving average seeded with the SMA of the first ``period`` closes."""
    period = _check_period("period", period)
    close = ohlcv_frame(bars)["close"]
    if 0 < len(close) < period:
        log.warning("EMA input too short (len=%s < period=%s)", len(close), period)
    values = _ema_values(close.to_numpy(dtype=float), period)
    return _emit(values, close.index, f"ema{period}")


def rsi(bars: BarsLike, period: int = 14) -> pd.Series:
    """
    Compute Relative Strength Index (RSI).

    Parameters
    ----------
    bars : BarsLike
        Ordered bar sequence; only closes are used.
    period : int, default 14
        Lookback period for the averages.

    Returns
    -------
    pd.Series
        RSI values in [0, 100]. The first value sits at index ``period`` (the
        first bar with ``period`` price changes behind it); averages are
        Wilder-smoothed afterwards. A zero average loss yields 100.
    """
    period = _check_period("period", period)
    close = ohlcv_frame(bars)["close"]
    n = len(close)
    if n <= period:
        if n:
            log.warning("RSI input too short (len=%s <= period=%s)", n, period)
        return _emit(np.full(n, np.nan), close.index, f"rsi{period}")

    delta = close.diff()
    gain = delta.clip(lower=0.0).to_numpy(dtype=float)
    loss = (-delta).clip(lower=0.0).to_numpy(dtype=float)

    alpha = 1.0 / period
    avg_gain = _seeded_smoothing(gain, period, float(np.mean(gain[1 : period + 1])), alpha)
    avg_loss = _seeded_smoothing(loss, period, float(np.mean(loss[1 : period + 1])), alpha)

    with np.errstate(divide="ignore", invalid="ignore"):
        rs = avg_gain / avg_loss
        values = np.where(avg_loss == 0.0, 100.0, 100.0 - 100.0 / (1.0 + rs))

    log.debug("RSI computed for %d bars", n)
    return _emit(values, close.index, f"rsi{period}")


def macd(
    bars: BarsLike, fast: int = 12, slow: int = 26, signal: int = 9
) -> pd.DataFrame:
    """
    Moving Average Convergence Divergence.

    Returns a DataFrame with columns ``macd`` (fast EMA minus slow EMA),
    ``signal`` (EMA of the defined part of the MACD line, realigned) and
    ``histogram`` (``macd - signal``).
    """
    fast = _check_period("fast", fast)
    slow = _check_period("slow", slow)
    signal = _check_period("signal", signal)

    close = ohlcv_frame(bars)["close"]
    prices = close.to_numpy(dtype=float)

    line = _ema_values(prices, fast) - _ema_values(prices, slow)
    defined = np.flatnonzero(~np.isnan(line))

    signal_line = np.full(len(line), np.nan)
    signal_line[defined] = _ema_values(line[defined], signal)
    histogram = line - signal_line

    log.debug(
        "MACD(%s,%s,%s) computed for %d bars (%d defined)",
        fast,
        slow,
        signal,
        len(prices),
        len(defined),
    )
    return _frame(
        {"macd": line, "signal": signal_line, "histogram": histogram}, close.index
    )


def bollinger_bands(bars: BarsLike, period: int = 20, num_std: float = 2.0) -> pd.DataFrame:
    """
    Bollinger Bands around the SMA using the population standard deviation
    of the same trailing window.
    """
    period = _check_period("period", period)
    if num_std < 0:
        raise InvalidInputError(f"num_std must be non-negative, got {num_std!r}")

    close = ohlcv_frame(bars)["close"]
    window = close.rolling(window=period, min_periods=period)
    middle = window.mean().to_numpy()
    std = window.std(ddof=0).clip(lower=0.0).to_numpy()

    return _frame(
        {
            "upper": middle + num_std * std,
            "middle": middle,
            "lower": middle - num_std * std,
        },
        close.index,
    )


def true_range(bars: BarsLike) -> pd.Series:
    """High-low range widened by gaps from the previous close; ``high - low`` on the first bar."""
    df = ohlcv_frame(bars)
    high = df["high"].to_numpy(dtype=float)
    low = df["low"].to_numpy(dtype=float)
    prev_close = df["close"].to_numpy(dtype=float)[:-1]

    tr = high - low
    tr[1:] = np.maximum.reduce(
        [tr[1:], np.abs(high[1:] - prev_close), np.abs(low[1:] - prev_close)]
    )
    return pd.Series(tr, index=df.index, dtype=float, name="true_range")


def atr(bars: BarsLike, period: int = 14) -> pd.Series:
    """
    Average True Range using OHLC data.

    The first value (mean of the first ``period`` true ranges) sits at index
    ``period - 1``; later values use Wilder smoothing.
    """
    period = _check_period("period", period)
    tr = true_range(bars)
    n = len(tr)
    if n < period:
        if n:
            log.warning("ATR input too short (len=%s < period=%s)", n, period)
        return _emit(np.full(n, np.nan), tr.index, f"atr{period}")

    values = tr.to_numpy(dtype=float)
    smoothed = _seeded_smoothing(
        values, period - 1, float(np.mean(values[:period])), 1.0 / period
    )
    return _emit(smoothed, tr.index, f"atr{period}")


_INDICATORS: Dict[str, Callable[..., pd.Series | pd.DataFrame]] = {
    "sma": sma,
    "ema": ema,
    "rsi": rsi,
    "macd": macd,
    "bollinger": bollinger_bands,
    "bollinger_bands": bollinger_bands,
    "bbands": bollinger_bands,
    "atr": atr,
}


def compute_indicator(kind: str, bars: BarsLike, **params) -> pd.Series | pd.DataFrame:
    """
    Dispatch to an indicator by name.

    ``kind`` is case-insensitive; spaces and dashes are treated as underscores.
    """
    key = str(kind).strip().lower().replace("-", "_").replace(" ", "_")
    fn = _INDICATORS.get(key)
    if fn is None:
        raise InvalidInputError(
            f"unknown indicator {kind!r}; expected one of {sorted(set(_INDICATORS))}"
        )
    try:
        return fn(bars, **params)
    except TypeError as exc:
        raise InvalidInputError(f"bad parameters for {key}: {exc}") from exc


def chart_overlays(bars: BarsLike) -> pd.DataFrame:
    """Indicator columns drawn on the price and oscillator charts, aligned to ``bars``."""
    frame = ohlcv_frame(bars)
    bands = bollinger_bands(frame, 20, 2.0)
    lines = macd(frame)
    return _frame(
        {
            "sma20": sma(frame, 20).to_numpy(),
            "ema9": ema(frame, 9).to_numpy(),
            "bb_upper": bands["upper"].to_numpy(),
            "bb_middle": bands["middle"].to_numpy(),
            "bb_lower": bands["lower"].to_numpy(),
            "rsi14": rsi(frame, 14).to_numpy(),
            "macd": lines["macd"].to_numpy(),
            "macd_signal": lines["signal"].to_numpy(),
            "macd_histogram": lines["histogram"].to_numpy(),
        },
        frame.index,
    )


__all__ = [
    "sma",
    "ema",
    "rsi",
    "macd",
    "bollinger_bands",
    "true_range",
    "atr",
    "compute_indicator",
    "chart_overlays",
]
