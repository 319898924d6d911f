"""
Signal rule interface.

A rule turns indicator state into one ``Signal`` per bar. The backtest engine
owns position and equity bookkeeping, so a rule never mutates the position it
is shown.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np
import pandas as pd

from tradelab.core.models import Bars, PositionState, Signal


@dataclass
class IndicatorState:
    """Indicator arrays for one run, index-aligned with the bars."""

    columns: Dict[str, np.ndarray] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> np.ndarray:
        return self.columns[name]

    def value(self, name: str, i: int) -> float:
        return float(self.columns[name][i])

    def to_frame(self, index: pd.Index | None = None) -> pd.DataFrame:
        return pd.DataFrame(self.columns, index=index)


def crossed_above(prev_a: float, prev_b: float, a: float, b: float) -> bool:
    """``a`` moved from at-or-below ``b`` to strictly above it. False if any input is NaN."""
    return bool(prev_a <= prev_b and a > b)


def crossed_below(prev_a: float, prev_b: float, a: float, b: float) -> bool:
    return bool(prev_a >= prev_b and a < b)


class SignalRule(ABC):
    """Abstract base class for per-bar entry/exit rules."""

    @property
    @abstractmethod
    def label(self) -> str:
        """Strategy name reported in the backtest result."""

    @property
    @abstractmethod
    def warmup(self) -> int:
        """First bar index the engine evaluates."""

    @abstractmethod
    def prepare(self, bars: Bars) -> IndicatorState:
        """Compute everything ``evaluate`` needs, once per run."""

    @abstractmethod
    def evaluate(
        self, i: int, bars: Bars, state: IndicatorState, position: PositionState
    ) -> Signal:
        """Decide for bar ``i``. ENTER while in position and EXIT while flat are ignored."""

    def min_bars(self) -> int:
        return self.warmup + 1

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"
