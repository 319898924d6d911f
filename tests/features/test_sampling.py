from __future__ import annotations

import random
from datetime import timedelta

import pytest

from tradelab.core.exceptions import InvalidInputError
from tradelab.core.models import Bars
from tradelab.features.sampling import (
    aggregate_ohlcv,
    resample_by_volume,
    sample_bars,
    sort_bars,
)


def _is_sorted(bars: Bars) -> bool:
    stamps = [bar.timestamp for bar in bars]
    return stamps == sorted(stamps)


def test_volume_bars_conserve_volume_on_shuffled_input(random_walk_bars):
    shuffled = list(random_walk_bars)
    random.Random(7).shuffle(shuffled)

    out = resample_by_volume(shuffled)

    assert sum(b.volume for b in out) == pytest.approx(sum(b.volume for b in random_walk_bars))
    assert 0 < len(out) <= min(20, len(random_walk_bars))
    assert _is_sorted(out)
    assert out[-1].timestamp == random_walk_bars[-1].timestamp
    assert out[-1].close == random_walk_bars[-1].close


def test_volume_bars_fold_ohlc(make_bars):
    bars = make_bars([float(i) for i in range(10, 20)], volumes=[1.0] * 10)

    out = resample_by_volume(bars)

    assert len(out) == 5
    for k, vb in enumerate(out):
        first, second = bars[2 * k], bars[2 * k + 1]
        assert vb.volume == 2.0
        assert vb.open == first.open
        assert vb.close == second.close
        assert vb.timestamp == second.timestamp
        assert vb.high == max(first.high, second.high)
        assert vb.low == min(first.low, second.low)


def test_volume_bar_cap_controls_group_size(make_bars):
    bars = make_bars([100.0] * 10, volumes=[1.0] * 10)
    out = resample_by_volume(bars, max_bars=2)
    assert [b.volume for b in out] == [5.0, 5.0]


def test_short_input_is_only_sorted(make_bars):
    bars = make_bars([5.0, 4.0, 3.0, 2.0, 1.0])
    reversed_bars = Bars(list(reversed(bars.data)))

    out = resample_by_volume(reversed_bars)

    assert out.data == bars.data


def test_volume_bars_reject_non_positive_cap(make_bars):
    with pytest.raises(InvalidInputError):
        resample_by_volume(make_bars([1.0] * 12), max_bars=0)


def test_sort_bars_is_stable_copy(make_bars):
    bars = make_bars([1.0, 2.0, 3.0])
    shuffled = Bars([bars[2], bars[0], bars[1]])
    out = sort_bars(shuffled)
    assert out.data == bars.data
    assert shuffled[0] is bars[2]


def test_aggregate_hourly_to_daily(make_bars):
    hourly = make_bars(
        [100.0 + (i % 7) for i in range(48)], step=timedelta(hours=1)
    )
    daily = aggregate_ohlcv(hourly.to_dataframe(), "1D")

    assert 1 < len(daily) < len(hourly)
    assert daily["volume"].sum() == pytest.approx(48 * 1_000.0)
    assert daily["high"].max() == max(b.high for b in hourly)
    assert daily["low"].min() == min(b.low for b in hourly)
    assert daily["close"].iloc[-1] == hourly[-1].close


def test_sample_bars_methods(make_bars, random_walk_bars):
    timed = sample_bars(Bars(list(reversed(random_walk_bars.data))), "time")
    assert timed.data == random_walk_bars.data

    bucketed = sample_bars(
        make_bars([100.0] * 48, step=timedelta(hours=1)), "time", rule="1D"
    )
    assert len(bucketed) < 48
    assert sum(b.volume for b in bucketed) == pytest.approx(48_000.0)

    by_volume = sample_bars(random_walk_bars, "Volume")
    assert len(by_volume) <= 20

    with pytest.raises(InvalidInputError):
        sample_bars(random_walk_bars, "tick")
