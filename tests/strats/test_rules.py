from __future__ import annotations

import math

import numpy as np
import pytest

from tradelab.core.exceptions import InvalidInputError
from tradelab.core.models import PositionState, Signal
from tradelab.strats import (
    CrossoverParams,
    CrossoverRule,
    EdgeParams,
    EdgeSimulationRule,
    IndicatorState,
    ThresholdParams,
    ThresholdRule,
    build_rule,
    crossed_above,
    crossed_below,
)

NAN = float("nan")


def _position(held: bool) -> PositionState:
    position = PositionState()
    if held:
        position.open(100.0)
    return position


def test_cross_helpers():
    assert crossed_above(1.0, 1.0, 2.0, 1.0)
    assert not crossed_above(2.0, 1.0, 3.0, 1.0)
    assert crossed_below(1.0, 1.0, 0.5, 1.0)
    assert not crossed_below(0.5, 1.0, 0.2, 1.0)
    assert not crossed_above(NAN, 1.0, 2.0, 1.0)
    assert not crossed_below(1.0, NAN, 0.5, 1.0)


def test_crossover_labels_and_warmup():
    rule = CrossoverRule()
    assert rule.label == "SMA Crossover (10/50)"
    assert rule.warmup == 50
    assert rule.min_bars() == 51
    assert CrossoverRule(CrossoverParams(5, 20)).label == "SMA Crossover (5/20)"


@pytest.mark.parametrize(
    "short,long_,held,expected",
    [
        ([9.0, 11.0], [10.0, 10.0], False, Signal.ENTER),
        ([10.0, 11.0], [10.0, 10.0], False, Signal.ENTER),
        ([11.0, 9.0], [10.0, 10.0], False, Signal.HOLD),
        ([11.0, 9.0], [10.0, 10.0], True, Signal.EXIT),
        ([9.0, 11.0], [10.0, 10.0], True, Signal.HOLD),
        ([11.0, 12.0], [10.0, 10.0], True, Signal.HOLD),
        ([NAN, 11.0], [NAN, 10.0], False, Signal.HOLD),
    ],
)
def test_crossover_signals(make_bars, short, long_, held, expected):
    rule = CrossoverRule()
    state = IndicatorState(columns={"short": np.array(short), "long": np.array(long_)})
    assert rule.evaluate(1, make_bars([1.0, 1.0]), state, _position(held)) is expected


def test_crossover_prepare_aligns_with_bars(random_walk_bars):
    state = CrossoverRule().prepare(random_walk_bars)
    assert len(state["short"]) == len(state["long"]) == len(random_walk_bars)
    assert np.isnan(state["long"][48]) and not np.isnan(state["long"][49])


@pytest.mark.parametrize(
    "values,held,expected",
    [
        ([25.0, 35.0], False, Signal.ENTER),
        ([30.0, 31.0], False, Signal.ENTER),
        ([65.0, 75.0], False, Signal.HOLD),
        ([65.0, 75.0], True, Signal.EXIT),
        ([25.0, 80.0], True, Signal.EXIT),
        ([25.0, 80.0], False, Signal.ENTER),
        ([25.0, 35.0], True, Signal.HOLD),
        ([75.0, 65.0], True, Signal.HOLD),
        ([35.0, 25.0], False, Signal.HOLD),
        ([50.0, 55.0], True, Signal.HOLD),
    ],
)
def test_threshold_signals(make_bars, values, held, expected):
    rule = ThresholdRule()
    state = IndicatorState(columns={"rsi": np.array(values)})
    assert rule.evaluate(1, make_bars([1.0, 1.0]), state, _position(held)) is expected


def test_threshold_equal_lines_exit_while_held(make_bars):
    rule = ThresholdRule(ThresholdParams(oversold=50.0, overbought=50.0))
    state = IndicatorState(columns={"rsi": np.array([45.0, 55.0])})
    bars = make_bars([1.0, 1.0])

    assert rule.evaluate(1, bars, state, _position(False)) is Signal.ENTER
    assert rule.evaluate(1, bars, state, _position(True)) is Signal.EXIT


def test_threshold_label_and_validation():
    rule = ThresholdRule()
    assert rule.label == "RSI (14) Overbought/Oversold"
    assert rule.warmup == 15
    with pytest.raises(InvalidInputError):
        ThresholdRule(ThresholdParams(oversold=80.0, overbought=70.0))
    with pytest.raises(InvalidInputError):
        ThresholdRule(ThresholdParams(overbought=120.0))


def _edge_signals(rule, bars, position):
    state = rule.prepare(bars)
    return [rule.evaluate(i, bars, state, position) for i in range(rule.warmup, len(bars))]


def test_edge_rule_is_reproducible_with_seed(rising_bars):
    rule = EdgeSimulationRule(EdgeParams(seed=11))
    first = _edge_signals(rule, rising_bars, PositionState())
    second = _edge_signals(rule, rising_bars, PositionState())
    assert first == second
    assert set(first) <= {Signal.ENTER, Signal.HOLD}


def test_edge_rule_certain_draws(rising_bars):
    always_up = EdgeSimulationRule(EdgeParams(edge=1.0, seed=1))
    assert set(_edge_signals(always_up, rising_bars, PositionState())) == {Signal.ENTER}

    held = PositionState()
    held.open(rising_bars[20].close)
    always_down = EdgeSimulationRule(EdgeParams(edge=0.0, seed=1))
    assert set(_edge_signals(always_down, rising_bars, held)) == {Signal.EXIT}


@pytest.mark.parametrize(
    "close,expected",
    [(106.0, Signal.EXIT), (104.0, Signal.HOLD), (98.0, Signal.HOLD), (96.0, Signal.EXIT)],
)
def test_edge_rule_take_profit_and_stop_loss(make_bars, close, expected):
    rule = EdgeSimulationRule(EdgeParams(edge=1.0, warmup=1, seed=3))
    bars = make_bars([100.0, close])
    position = PositionState()
    position.open(100.0)
    assert rule.evaluate(1, bars, rule.prepare(bars), position) is expected


def test_edge_rule_label_and_validation():
    rule = EdgeSimulationRule(EdgeParams())
    assert rule.label == "ML-based Strategy (Simulation)"
    assert rule.warmup == 20
    with pytest.raises(InvalidInputError):
        EdgeSimulationRule(EdgeParams(edge=1.5))
    with pytest.raises(InvalidInputError):
        EdgeSimulationRule(EdgeParams(stop_loss=0.0))


def test_edge_params_from_settings_ignores_none():
    params = EdgeParams.from_settings(seed=None, edge=0.6)
    assert params.edge == 0.6
    assert params.seed is None
    assert math.isclose(params.take_profit, 0.05)


@pytest.mark.parametrize(
    "kind,cls",
    [
        ("crossover", CrossoverRule),
        ("SMA-Crossover", CrossoverRule),
        ("rsi", ThresholdRule),
        ("threshold", ThresholdRule),
        ("ml", EdgeSimulationRule),
        ("edge simulation", EdgeSimulationRule),
    ],
)
def test_build_rule_aliases(kind, cls):
    assert isinstance(build_rule(kind), cls)


def test_build_rule_passes_params_and_rejects_unknown():
    rule = build_rule("crossover", short_period=3, long_period=7)
    assert rule.warmup == 7
    with pytest.raises(InvalidInputError):
        build_rule("crossover", fast=3)
    with pytest.raises(InvalidInputError):
        build_rule("momentum")
