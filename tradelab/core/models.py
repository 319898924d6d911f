from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, List, Mapping, Sequence, Union, overload

import pandas as pd

from tradelab.core.exceptions import InvalidInputError

_OHLCV = ("open", "high", "low", "close", "volume")

_COL_ALIASES = {
    "o": "open",
    "open": "open",
    "h": "high",
    "high": "high",
    "l": "low",
    "lo": "low",
    "low": "low",
    "c": "close",
    "close": "close",
    "adj_close": "close",
    "v": "volume",
    "vol": "volume",
    "volume": "volume",
    "timestamp": "timestamp",
    "date": "date",
    "time": "time",
}


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    raise InvalidInputError(f"unsupported timestamp value: {value!r}")


@dataclass(frozen=True, slots=True)
class Bar:
    """Normalized OHLCV bar."""

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    def as_dict(self) -> dict:
        ts = self.timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return {
            "timestamp": ts.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }

    @classmethod
    def from_record(cls, payload: Mapping[str, Any]) -> "Bar":
        ts = next(
            (payload[k] for k in ("timestamp", "date", "time") if payload.get(k) is not None),
            None,
        )
        if ts is None:
            raise InvalidInputError("bar record has no timestamp/date/time field")
        volume = payload.get("volume")
        if volume is None:
            volume = payload.get("vol")
        try:
            return cls(
                timestamp=_to_datetime(ts),
                open=float(payload["open"]),
                high=float(payload["high"]),
                low=float(payload["low"]),
                close=float(payload["close"]),
                volume=float(volume if volume is not None else 0.0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInputError(f"malformed bar record: {exc}") from exc


@dataclass(slots=True)
class Bars:
    """Ordered collection of bars for a single instrument."""

    data: List[Bar] = field(default_factory=list)

    def append(self, bar: Bar) -> None:
        self.data.append(bar)

    def extend(self, bars: Iterable[Bar]) -> None:
        for bar in bars:
            self.append(bar)

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[Bar]:
        return iter(self.data)

    @overload
    def __getitem__(self, i: int) -> Bar: ...

    @overload
    def __getitem__(self, i: slice) -> "Bars": ...

    def __getitem__(self, i):
        if isinstance(i, slice):
            return Bars(self.data[i])
        return self.data[i]

    @property
    def closes(self) -> List[float]:
        return [bar.close for bar in self.data]

    def to_dicts(self) -> List[dict]:
        return [bar.as_dict() for bar in self.data]

    def to_dataframe(self) -> pd.DataFrame:
        if not self.data:
            return pd.DataFrame(
                {c: pd.Series(dtype=float) for c in _OHLCV},
                index=pd.DatetimeIndex([], name="timestamp"),
            )
        raw = [
            {
                "timestamp": bar.timestamp,
                "open": bar.open,
                "high": bar.high,
                "low": bar.low,
                "close": bar.close,
                "volume": bar.volume,
            }
            for bar in self.data
        ]
        return pd.DataFrame(raw).set_index("timestamp").astype(float)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "Bars":
        return cls([Bar.from_record(r) for r in records])

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "Bars":
        frame = ohlcv_frame(df)
        return cls(
            [
                Bar(
                    timestamp=_to_datetime(ts),
                    open=float(row.open),
                    high=float(row.high),
                    low=float(row.low),
                    close=float(row.close),
                    volume=float(row.volume),
                )
                for ts, row in zip(frame.index, frame.itertuples(index=False))
            ]
        )


BarsLike = Union[Bars, Sequence[Bar], pd.DataFrame]


def ohlcv_frame(bars: BarsLike) -> pd.DataFrame:
    """
    Coerce any accepted bar sequence into a float DataFrame with
    open/high/low/close/volume columns, preserving row order.
    """
    if isinstance(bars, Bars):
        return bars.to_dataframe()
    if isinstance(bars, pd.DataFrame):
        out = bars.rename(
            columns={c: _COL_ALIASES.get(str(c).strip().lower(), c) for c in bars.columns}
        )
        out = out.loc[:, ~out.columns.duplicated(keep="first")]
        if not isinstance(out.index, pd.DatetimeIndex):
            for col in ("timestamp", "date", "time"):
                if col in out.columns:
                    out = out.set_index(pd.DatetimeIndex(pd.to_datetime(out[col]), name="timestamp"))
                    break
        if "volume" not in out.columns:
            out = out.assign(volume=0.0)
        missing = [c for c in _OHLCV if c not in out.columns]
        if missing:
            raise InvalidInputError(f"DataFrame is missing OHLC columns: {missing}")
        return out[list(_OHLCV)].astype(float)
    return Bars(list(bars)).to_dataframe()


def as_bars(bars: BarsLike) -> Bars:
    if isinstance(bars, Bars):
        return bars
    if isinstance(bars, pd.DataFrame):
        return Bars.from_dataframe(bars)
    return Bars(list(bars))


class Signal(enum.Enum):
    """Per-bar decision emitted by a signal rule."""

    ENTER = "enter"
    EXIT = "exit"
    HOLD = "hold"


@dataclass
class PositionState:
    """Long-only, fully invested or flat."""

    in_position: bool = False
    entry_price: float = 0.0

    def open(self, price: float) -> None:
        self.in_position = True
        self.entry_price = float(price)

    def close(self, price: float) -> float:
        """Flatten the position and return the trade's simple return."""
        trade_return = self.unrealized_return(price)
        self.in_position = False
        self.entry_price = 0.0
        return trade_return

    def unrealized_return(self, price: float) -> float:
        return float(price) / self.entry_price - 1.0


@dataclass(frozen=True)
class BacktestResult:
    """
    Terminal artifact of one backtest run.

    Percentage fields are already scaled by 100 and rounded to 2 decimals.
    """

    strategy: str
    start_date: datetime
    end_date: datetime
    total_return_pct: float
    annualized_return_pct: float
    sharpe_ratio: float
    max_drawdown_pct: float
    win_rate_pct: float
    trades: int

    def as_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "totalReturn": self.total_return_pct,
            "annualizedReturn": self.annualized_return_pct,
            "sharpeRatio": self.sharpe_ratio,
            "maxDrawdown": self.max_drawdown_pct,
            "winRate": self.win_rate_pct,
            "trades": self.trades,
        }


__all__ = [
    "Bar",
    "Bars",
    "BarsLike",
    "BacktestResult",
    "PositionState",
    "Signal",
    "as_bars",
    "ohlcv_frame",
]
