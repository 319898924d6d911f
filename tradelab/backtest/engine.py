from __future__ import annotations

from typing import Any, List, Optional
from uuid import uuid4

from loguru import logger

from tradelab.core.exceptions import InsufficientDataError, InvalidInputError
from tradelab.core.models import BacktestResult, Bars, BarsLike, PositionState, Signal, as_bars
from tradelab.logging_utils import logging_context
from tradelab.settings import get_backtest_settings
from tradelab.strats import SignalRule, build_rule

from .metrics import TradeLedger, summarize


def _validate(bars: Bars, rule: SignalRule) -> None:
    if len(bars) == 0:
        raise InvalidInputError("cannot backtest an empty bar sequence")
    if len(bars) < rule.min_bars():
        raise InsufficientDataError(
            f"insufficient data for {rule.label}: got {len(bars)} bars, need {rule.min_bars()}"
        )
    bad = [i for i, bar in enumerate(bars) if not bar.close > 0]
    if bad:
        raise InvalidInputError(f"close prices must be positive; first bad index={bad[0]}")
    if any(bars[i].timestamp < bars[i - 1].timestamp for i in range(1, len(bars))):
        logger.warning("[backtest] bars are not in chronological order; results follow input order")


def _close_trade(ledger: TradeLedger, position: PositionState, price: float, i: int, reason: str) -> None:
    entry = position.entry_price
    trade_return = position.close(price)
    equity = ledger.record(trade_return)
    logger.debug(
        "[backtest] {} i={} in={:.4f} out={:.4f} ret={:.4f} equity={:.2f}",
        reason,
        i,
        entry,
        price,
        trade_return,
        equity,
    )


def run_rule(
    rule: SignalRule,
    bars: BarsLike,
    *,
    initial_capital: Optional[float] = None,
) -> BacktestResult:
    """
    Replays ``rule`` bar by bar, long-only and fully invested or flat.

    Args:
        rule (SignalRule): The entry/exit rule to evaluate.
        bars (BarsLike): Chronologically ordered bars.
        initial_capital (Optional[float]): Starting equity; defaults to settings (1000.0).

    Returns:
        BacktestResult: Statistics over all closed trades. A position still open
        after the last bar is closed at that bar's close.

    Raises:
        InvalidInputError: If ``bars`` is empty or holds non-positive closes.
        InsufficientDataError: If ``bars`` is shorter than the rule's warm-up plus one.
    """
    seq = as_bars(bars)
    _validate(seq, rule)

    cfg = get_backtest_settings()
    capital = cfg.initial_capital if initial_capital is None else float(initial_capital)
    if capital <= 0:
        raise InvalidInputError(f"initial_capital must be positive, got {capital}")

    with logging_context(run_id=uuid4().hex[:12]):
        state = rule.prepare(seq)
        position = PositionState()
        ledger = TradeLedger(initial_capital=capital)

        for i in range(rule.warmup, len(seq)):
            signal = rule.evaluate(i, seq, state, position)
            close = seq[i].close

            if not position.in_position and signal is Signal.ENTER:
                position.open(close)
                logger.debug("[backtest] ENTER i={} px={:.4f}", i, close)
            elif position.in_position and signal is Signal.EXIT:
                _close_trade(ledger, position, close, i, "EXIT")

        if position.in_position:
            _close_trade(ledger, position, seq[-1].close, len(seq) - 1, "LIQUIDATE")

        result = summarize(
            rule.label,
            seq[0].timestamp,
            seq[-1].timestamp,
            ledger,
            days_per_year=cfg.days_per_year,
            min_year_fraction=cfg.min_year_fraction,
        )
        logger.info(
            "[backtest] {} bars={} trades={} total={}% sharpe={} maxDD={}%",
            result.strategy,
            len(seq),
            result.trades,
            result.total_return_pct,
            result.sharpe_ratio,
            result.max_drawdown_pct,
        )
    return result


def run_backtest(
    kind: str,
    bars: BarsLike,
    *,
    initial_capital: Optional[float] = None,
    **params: Any,
) -> BacktestResult:
    """Builds the rule named ``kind`` from ``params`` and runs it over ``bars``."""
    return run_rule(build_rule(kind, **params), bars, initial_capital=initial_capital)


def run_all_backtests(
    bars: BarsLike,
    *,
    seed: Optional[int] = None,
    initial_capital: Optional[float] = None,
) -> List[BacktestResult]:
    """Crossover, threshold and edge-simulation results with default parameters, in that order."""
    seq = as_bars(bars)
    return [
        run_backtest("crossover", seq, initial_capital=initial_capital),
        run_backtest("threshold", seq, initial_capital=initial_capital),
        run_backtest("edge", seq, initial_capital=initial_capital, seed=seed),
    ]


__all__ = ["run_rule", "run_backtest", "run_all_backtests"]
