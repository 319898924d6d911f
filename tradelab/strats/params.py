from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tradelab.settings import get_edge_settings


@dataclass(frozen=True)
class CrossoverParams:
    short_period: int = 10  # fast SMA
    long_period: int = 50  # slow SMA; also the warm-up


@dataclass(frozen=True)
class ThresholdParams:
    period: int = 14  # RSI lookback
    oversold: float = 30.0  # entry on an upward cross
    overbought: float = 70.0  # exit on an upward cross


@dataclass(frozen=True)
class EdgeParams:
    edge: float = 0.52  # probability of an "up" draw
    take_profit: float = 0.05
    stop_loss: float = 0.03
    warmup: int = 20
    seed: Optional[int] = None

    @classmethod
    def from_settings(cls, **overrides) -> "EdgeParams":
        cfg = get_edge_settings()
        values = {
            "edge": cfg.edge,
            "take_profit": cfg.take_profit,
            "stop_loss": cfg.stop_loss,
            "warmup": cfg.warmup,
            "seed": cfg.seed,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
