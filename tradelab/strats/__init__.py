from __future__ import annotations

# Public API for signal rules

from dataclasses import fields
from typing import Any, Callable, Dict

from tradelab.core.exceptions import InvalidInputError

from .base import IndicatorState, SignalRule, crossed_above, crossed_below
from .crossover import CrossoverRule
from .edge import EdgeSimulationRule
from .params import CrossoverParams, EdgeParams, ThresholdParams
from .threshold import ThresholdRule


def _crossover(**params: Any) -> SignalRule:
    return CrossoverRule(CrossoverParams(**params))


def _threshold(**params: Any) -> SignalRule:
    return ThresholdRule(ThresholdParams(**params))


def _edge(**params: Any) -> SignalRule:
    return EdgeSimulationRule(EdgeParams.from_settings(**params))


_RULES: Dict[str, Callable[..., SignalRule]] = {
    "crossover": _crossover,
    "sma_crossover": _crossover,
    "threshold": _threshold,
    "rsi": _threshold,
    "edge": _edge,
    "edge_simulation": _edge,
    "ml": _edge,
}

_PARAMS = {
    _crossover: CrossoverParams,
    _threshold: ThresholdParams,
    _edge: EdgeParams,
}

RULE_KINDS = ("crossover", "threshold", "edge")


def build_rule(kind: str, **params: Any) -> SignalRule:
    """Instantiate a signal rule by name with dataclass parameters as keywords."""
    key = str(kind).strip().lower().replace("-", "_").replace(" ", "_")
    factory = _RULES.get(key)
    if factory is None:
        raise InvalidInputError(
            f"unknown rule {kind!r}; expected one of {sorted(_RULES)}"
        )
    allowed = {f.name for f in fields(_PARAMS[factory])}
    unknown = sorted(set(params) - allowed)
    if unknown:
        raise InvalidInputError(f"unknown parameters for {key}: {unknown}")
    return factory(**params)


__all__ = [
    "RULE_KINDS",
    "SignalRule",
    "IndicatorState",
    "crossed_above",
    "crossed_below",
    "CrossoverRule",
    "ThresholdRule",
    "EdgeSimulationRule",
    "CrossoverParams",
    "ThresholdParams",
    "EdgeParams",
    "build_rule",
]
