#!/usr/bin/env python3
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd
from loguru import logger

from tradelab.backtest import run_all_backtests, run_backtest
from tradelab.core.exceptions import TradeLabError
from tradelab.core.models import Bars
from tradelab.features.indicators import chart_overlays
from tradelab.features.sampling import SAMPLING_METHODS, sample_bars
from tradelab.logging_utils import setup_logging
from tradelab.strats import RULE_KINDS

log = logger


def _load_csv(path: Path) -> Bars:
    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]
    for col in ("timestamp", "date", "time"):
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], utc=True)
            df = df.set_index(col)
            break
    else:
        raise SystemExit(f"{path}: expected a timestamp, date or time column")
    return Bars.from_dataframe(df)


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Backtest the built-in rules over an OHLCV CSV")
    ap.add_argument("csv", type=Path, help="CSV with date/timestamp, open, high, low, close, volume")
    ap.add_argument("--sampling", choices=SAMPLING_METHODS, default="time")
    ap.add_argument("--rule", choices=RULE_KINDS, default=None, help="Run one rule instead of all")
    ap.add_argument("--seed", type=int, default=None, help="Seed for the edge-simulation rule")
    ap.add_argument("--overlays", type=Path, help="Optional path to write chart overlays as CSV")
    ap.add_argument("--debug", action="store_true")
    args = ap.parse_args(argv)

    setup_logging(force=True, level="DEBUG" if args.debug else "INFO")

    try:
        bars = sample_bars(_load_csv(args.csv), args.sampling)
        log.info("Loaded {} bars from {} (sampling={})", len(bars), args.csv, args.sampling)
        if args.rule is None:
            results = run_all_backtests(bars, seed=args.seed)
        elif args.rule == "edge":
            results = [run_backtest(args.rule, bars, seed=args.seed)]
        else:
            results = [run_backtest(args.rule, bars)]
    except TradeLabError as exc:
        log.error("Backtest failed: {}", exc)
        return 2

    table = pd.DataFrame([r.as_dict() for r in results]).set_index("strategy")
    print(table.to_string())

    if args.overlays:
        overlays = chart_overlays(bars)
        overlays.to_csv(args.overlays)
        log.info("Wrote {} overlay rows to {}", len(overlays), args.overlays)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
