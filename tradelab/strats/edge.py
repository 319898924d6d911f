from __future__ import annotations

import numpy as np
from loguru import logger

from tradelab.core.exceptions import InvalidInputError
from tradelab.core.models import Bars, PositionState, Signal

from .base import IndicatorState, SignalRule
from .params import EdgeParams


class EdgeSimulationRule(SignalRule):
    """
    Stand-in for a model-driven rule: one biased coin flip per bar.

    Enters on an "up" draw while flat. Exits on a "down" draw, or when the open
    trade is up more than ``take_profit`` or down more than ``stop_loss``.
    Runs are only reproducible when ``seed`` is set.
    """

    def __init__(self, params: EdgeParams | None = None):
        self.params = params or EdgeParams.from_settings()
        p = self.params
        if not 0.0 <= p.edge <= 1.0:
            raise InvalidInputError(f"edge must be a probability: {p}")
        if p.take_profit <= 0 or p.stop_loss <= 0:
            raise InvalidInputError(f"take_profit and stop_loss must be positive: {p}")
        if p.warmup < 1:
            raise InvalidInputError(f"warmup must be >= 1: {p}")

    @property
    def label(self) -> str:
        return "ML-based Strategy (Simulation)"

    @property
    def warmup(self) -> int:
        return self.params.warmup

    def prepare(self, bars: Bars) -> IndicatorState:
        rng = np.random.default_rng(self.params.seed)
        logger.debug("[edge] prepared edge={} seed={}", self.params.edge, self.params.seed)
        return IndicatorState(extras={"rng": rng})

    def evaluate(
        self, i: int, bars: Bars, state: IndicatorState, position: PositionState
    ) -> Signal:
        up = bool(state.extras["rng"].random() < self.params.edge)

        if not position.in_position:
            return Signal.ENTER if up else Signal.HOLD

        move = position.unrealized_return(bars[i].close)
        if not up or move > self.params.take_profit or move < -self.params.stop_loss:
            return Signal.EXIT
        return Signal.HOLD
