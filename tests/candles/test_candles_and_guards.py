# tests/candles/test_candles_and_guards.py
from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from solbt.candles.candle import Candle, Timeframe
from solbt.candles.series_guards import SeriesGuards
from solbt.utils.errors import PriceContractError, SeriesContractError, TimeContractError


def test_candle_rejects_inverted_range(utc):
    with pytest.raises(PriceContractError, match="high < low"):
        Candle(utc(2024, 1, 8, 12), open=100, high=99, low=100, close=100)


@pytest.mark.parametrize("bad", [0.0, -1.0, float("nan"), float("inf")])
def test_candle_rejects_bad_prices(utc, bad):
    with pytest.raises(PriceContractError):
        Candle(utc(2024, 1, 8, 12), open=bad, high=101, low=99, close=100)


def test_candle_requires_utc():
    with pytest.raises(TimeContractError):
        Candle(datetime(2024, 1, 8, 12), open=100, high=101, low=99, close=100)


def test_timeframe_steps():
    assert Timeframe.M1.step == timedelta(minutes=1)
    assert Timeframe.H1.step == timedelta(hours=1)
    assert Timeframe.H6.step == timedelta(hours=6)


def test_ensure_non_empty():
    with pytest.raises(SeriesContractError, match="empty"):
        SeriesGuards.ensure_non_empty([], "x")


def test_duplicate_vs_non_monotonic(utc, candle_path):
    bars = candle_path(utc(2024, 1, 8, 12), [100, 101, 102])
    dup = [bars[0], bars[1], bars[1]]
    with pytest.raises(SeriesContractError, match="duplicate"):
        SeriesGuards.ensure_strictly_ascending_utc(dup, lambda c: c.open_time, "m1")

    back = [bars[0], bars[2], bars[1]]
    with pytest.raises(SeriesContractError, match="non-monotonic"):
        SeriesGuards.ensure_strictly_ascending_utc(back, lambda c: c.open_time, "m1")


def test_sort_by_key_fixes_order_but_not_duplicates(utc, candle_path):
    bars = candle_path(utc(2024, 1, 8, 12), [100, 101, 102])
    out = SeriesGuards.sort_by_key_utc([bars[2], bars[0], bars[1]], lambda c: c.open_time, "m1")
    assert out == bars

    with pytest.raises(SeriesContractError, match="duplicate"):
        SeriesGuards.sort_by_key_utc([bars[1], bars[0], bars[1]], lambda c: c.open_time, "m1")


def test_step_violations_report_expected_and_actual(utc, candle_path):
    bars = candle_path(utc(2024, 1, 8, 12), [100, 101])
    later = candle_path(utc(2024, 1, 8, 12, 5), [102])
    out = SeriesGuards.step_violations(bars + later, lambda c: c.open_time, Timeframe.M1.step)
    assert out == [(utc(2024, 1, 8, 12, 2), utc(2024, 1, 8, 12, 5))]
