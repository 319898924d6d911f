"""Backtesting engine and trade statistics for tradelab.
Replays a signal rule over a bar sequence and reports return, Sharpe, drawdown and win rate.
"""

from .engine import run_all_backtests, run_backtest, run_rule

__all__ = ["run_rule", "run_backtest", "run_all_backtests"]
