# tradelab/backtest/metrics.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence

import numpy as np
from loguru import logger

from tradelab.core.models import BacktestResult

SECONDS_PER_DAY = 24 * 60 * 60


# -------- Data classes --------
@dataclass
class TradeLedger:
    """
    Running trade accounting for one backtest.

    The equity curve starts at ``initial_capital`` and advances once per
    closed trade, compounding the trade's simple return.
    """

    initial_capital: float = 1000.0
    trades: int = 0
    wins: int = 0
    total_return: float = 0.0
    equity_curve: List[float] = field(default_factory=list)
    max_equity: float = 0.0
    min_equity: float = 0.0

    def __post_init__(self) -> None:
        if not self.equity_curve:
            self.equity_curve = [float(self.initial_capital)]
        self.max_equity = max(self.equity_curve)
        self.min_equity = min(self.equity_curve)

    @property
    def equity(self) -> float:
        return self.equity_curve[-1]

    def record(self, trade_return: float) -> float:
        """Books a closed trade and returns the new equity."""
        self.trades += 1
        if trade_return > 0:
            self.wins += 1
        self.total_return += trade_return

        new_equity = self.equity * (1.0 + trade_return)
        self.equity_curve.append(new_equity)
        self.max_equity = max(self.max_equity, new_equity)
        self.min_equity = min(self.min_equity, new_equity)
        return new_equity


# -------- Internals --------
def _pct(x: float) -> float:
    return round(float(x) * 100.0, 2)


# -------- Public API --------
def win_rate(wins: int, trades: int) -> float:
    return wins / trades if trades > 0 else 0.0


def max_drawdown(max_equity: float, min_equity: float) -> float:
    """Spread between the highest and lowest equity as a fraction of the highest."""
    if max_equity == min_equity or max_equity <= 0:
        return 0.0
    return (max_equity - min_equity) / max_equity


def year_fraction(
    start: datetime,
    end: datetime,
    *,
    days_per_year: float = 365.25,
    floor: float = 0.01,
) -> float:
    # clamp very short backtests to avoid extreme annualization
    elapsed = (end - start).total_seconds() / (days_per_year * SECONDS_PER_DAY)
    return max(floor, elapsed)


def annualized_return(total_return: float, years: float) -> float:
    """
    Compounds ``total_return`` to a yearly rate. A loss of 100% or more stays
    at -100%; a rate beyond float range is ``inf``.
    """
    growth = 1.0 + total_return
    if growth <= 0:
        return -1.0
    try:
        return growth ** (1.0 / years) - 1.0
    except OverflowError:
        return math.inf


def trade_returns(equity_curve: Sequence[float]) -> np.ndarray:
    curve = np.asarray(equity_curve, dtype=float)
    if len(curve) < 2:
        return np.array([], dtype=float)
    return curve[1:] / curve[:-1] - 1.0


def sharpe_ratio(annualized: float, returns: Sequence[float]) -> float:
    """
    Annualized return over the population standard deviation of trade
    returns, with a zero risk-free rate. Zero when there is nothing to divide by.
    """
    rets = np.asarray(returns, dtype=float)
    if rets.size == 0:
        return 0.0
    std = float(rets.std(ddof=0))
    if std == 0.0 or math.isnan(std):
        return 0.0
    return annualized / std


def summarize(
    strategy: str,
    start: datetime,
    end: datetime,
    ledger: TradeLedger,
    *,
    days_per_year: float = 365.25,
    min_year_fraction: float = 0.01,
) -> BacktestResult:
    """Derives the reported statistics from a finished ledger."""
    years = year_fraction(start, end, days_per_year=days_per_year, floor=min_year_fraction)
    ann = annualized_return(ledger.total_return, years)
    rets = trade_returns(ledger.equity_curve)
    sharpe = sharpe_ratio(ann, rets)
    dd = max_drawdown(ledger.max_equity, ledger.min_equity)
    wr = win_rate(ledger.wins, ledger.trades)

    logger.debug(
        "[metrics] {} {}→{} years={:.4f} trades={} tot={:.4f} ann={:.4f} sharpe={:.3f} maxDD={:.4f} win={:.3f}",
        strategy,
        start,
        end,
        years,
        ledger.trades,
        ledger.total_return,
        ann,
        sharpe,
        dd,
        wr,
    )

    return BacktestResult(
        strategy=strategy,
        start_date=start,
        end_date=end,
        total_return_pct=_pct(ledger.total_return),
        annualized_return_pct=_pct(ann),
        sharpe_ratio=round(float(sharpe), 2),
        max_drawdown_pct=_pct(dd),
        win_rate_pct=_pct(wr),
        trades=ledger.trades,
    )


__all__ = [
    "TradeLedger",
    "win_rate",
    "max_drawdown",
    "year_fraction",
    "annualized_return",
    "trade_returns",
    "sharpe_ratio",
    "summarize",
]
