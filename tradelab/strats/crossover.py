from __future__ import annotations

from loguru import logger

from tradelab.core.exceptions import InvalidInputError
from tradelab.core.models import Bars, PositionState, Signal
from tradelab.features.indicators import sma

from .base import IndicatorState, SignalRule, crossed_above, crossed_below
from .params import CrossoverParams


class CrossoverRule(SignalRule):
    """
    Long-only moving-average crossover.

    Enters when the short SMA crosses above the long SMA and exits on the
    symmetric downward cross.
    """

    def __init__(self, params: CrossoverParams | None = None):
        self.params = params or CrossoverParams()
        if self.params.short_period < 1 or self.params.long_period < 1:
            raise InvalidInputError(f"SMA periods must be positive: {self.params}")

    @property
    def label(self) -> str:
        return f"SMA Crossover ({self.params.short_period}/{self.params.long_period})"

    @property
    def warmup(self) -> int:
        return self.params.long_period

    def prepare(self, bars: Bars) -> IndicatorState:
        short = sma(bars, self.params.short_period).to_numpy()
        long_ = sma(bars, self.params.long_period).to_numpy()
        logger.debug(
            "[crossover] prepared short={} long={} bars={}",
            self.params.short_period,
            self.params.long_period,
            len(bars),
        )
        return IndicatorState(columns={"short": short, "long": long_})

    def evaluate(
        self, i: int, bars: Bars, state: IndicatorState, position: PositionState
    ) -> Signal:
        short, long_ = state["short"], state["long"]
        prev = (float(short[i - 1]), float(long_[i - 1]))
        curr = (float(short[i]), float(long_[i]))

        if not position.in_position:
            if crossed_above(prev[0], prev[1], curr[0], curr[1]):
                return Signal.ENTER
            return Signal.HOLD
        if crossed_below(prev[0], prev[1], curr[0], curr[1]):
            return Signal.EXIT
        return Signal.HOLD
