from __future__ import annotations

from loguru import logger

from tradelab.core.exceptions import InvalidInputError
from tradelab.core.models import Bars, PositionState, Signal
from tradelab.features.indicators import rsi

from .base import IndicatorState, SignalRule, crossed_above
from .params import ThresholdParams


class ThresholdRule(SignalRule):
    """
    RSI oversold/overbought rule.

    Enters when RSI crosses up through ``oversold`` and exits when RSI crosses
    up through ``overbought``. The exit is an upward cross, not a fall back
    below the line.
    """

    def __init__(self, params: ThresholdParams | None = None):
        self.params = params or ThresholdParams()
        if self.params.period < 1:
            raise InvalidInputError(f"RSI period must be positive: {self.params}")
        if not 0.0 <= self.params.oversold <= self.params.overbought <= 100.0:
            raise InvalidInputError(
                f"thresholds must satisfy 0 <= oversold <= overbought <= 100: {self.params}"
            )

    @property
    def label(self) -> str:
        return f"RSI ({self.params.period}) Overbought/Oversold"

    @property
    def warmup(self) -> int:
        return self.params.period + 1

    def prepare(self, bars: Bars) -> IndicatorState:
        values = rsi(bars, self.params.period).to_numpy()
        logger.debug("[threshold] prepared rsi period={} bars={}", self.params.period, len(bars))
        return IndicatorState(columns={"rsi": values})

    def evaluate(
        self, i: int, bars: Bars, state: IndicatorState, position: PositionState
    ) -> Signal:
        prev, curr = state.value("rsi", i - 1), state.value("rsi", i)

        if not position.in_position:
            if crossed_above(prev, self.params.oversold, curr, self.params.oversold):
                return Signal.ENTER
            return Signal.HOLD
        if crossed_above(prev, self.params.overbought, curr, self.params.overbought):
            return Signal.EXIT
        return Signal.HOLD
