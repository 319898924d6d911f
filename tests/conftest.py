from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

import numpy as np
import pytest

from tradelab.core.models import Bar, Bars
from tradelab.logging_utils import setup_test_logging

os.environ.setdefault("TRADELAB_ENV", "test")


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    setup_test_logging(level=os.getenv("PYTEST_LOGLEVEL", "INFO"))
    yield


def build_bars(
    closes: Sequence[float],
    *,
    start: datetime = datetime(2024, 1, 1),
    step: timedelta = timedelta(days=1),
    volumes: Optional[Sequence[float]] = None,
    spread: float = 1.0,
) -> Bars:
    """Daily bars around ``closes``; open equals the previous close."""
    vols = volumes if volumes is not None else [1_000.0] * len(closes)
    out = Bars()
    prev = float(closes[0]) if len(closes) else 0.0
    for i, close in enumerate(closes):
        close = float(close)
        out.append(
            Bar(
                timestamp=start + i * step,
                open=prev,
                high=max(prev, close) + spread,
                low=min(prev, close) - spread,
                close=close,
                volume=float(vols[i]),
            )
        )
        prev = close
    return out


@pytest.fixture
def make_bars() -> Callable[..., Bars]:
    return build_bars


@pytest.fixture(scope="module")
def random_walk_bars() -> Bars:
    """Deterministic 250-bar random walk with positive prices and varied volume."""
    rng = np.random.default_rng(seed=42)
    n = 250
    close = 100.0 * np.cumprod(1 + rng.normal(0.0005, 0.015, n))
    volume = rng.integers(1_000_000, 5_000_000, n).astype(float)
    return build_bars(np.round(close, 2), volumes=volume, spread=0.5)


@pytest.fixture(scope="module")
def constant_bars() -> Bars:
    return build_bars([100.0] * 60, spread=0.0)


@pytest.fixture(scope="module")
def rising_bars() -> Bars:
    return build_bars([100.0 + i for i in range(60)])


@pytest.fixture
def std_records():
    """Stdlib records forwarded by the loguru bridge while the test runs."""
    records = []

    class ListHandler(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = ListHandler(level=logging.DEBUG)
    root = logging.getLogger()
    prev_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    try:
        yield records
    finally:
        root.removeHandler(handler)
        root.setLevel(prev_level)
