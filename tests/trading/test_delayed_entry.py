# tests/trading/test_delayed_entry.py
from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from solbt.data.records import DelayedIntradayResult
from solbt.trading.delayed_entry import DelayedEntryEvaluator
from solbt.utils.errors import PriceContractError, SeriesContractError, TimeContractError

H1 = timedelta(hours=1)


@pytest.fixture
def hourly(candle_path, mon_entry):
    def build(bars, start=None):
        return candle_path(start or mon_entry, bars, step=H1)
    return build


def _eval(candles, entry, **kw):
    args = dict(
        go_long=True,
        go_short=False,
        entry_price=100.0,
        day_min_move=0.03,
        strong_signal=True,
        delay_factor=0.5,
        max_delay_hours=6.0,
    )
    args.update(kw)
    return DelayedEntryEvaluator.evaluate(candles, entry, **args)


def test_long_fill_then_take_profit(hourly, mon_entry):
    bars = hourly([(100.5, 99.5, 100), (100, 98.4, 98.8), (102.5, 99, 102)])
    r = _eval(bars, mon_entry)

    assert r.used and r.executed
    assert r.direction == 1
    assert r.target_delayed_price == pytest.approx(98.5)
    assert r.executed_at == mon_entry + H1
    assert r.delay_hours == pytest.approx(1.0)
    assert r.tp_pct == pytest.approx(0.0375)
    assert r.sl_pct == pytest.approx(0.0165)
    assert r.intraday_result is DelayedIntradayResult.TP_FIRST

    facts = r.to_execution_facts()
    assert facts.executed_at == mon_entry + H1
    assert facts.entry_price == pytest.approx(98.5)
    assert facts.intraday_result is DelayedIntradayResult.TP_FIRST


def test_short_fill_then_stop_loss(hourly, mon_entry):
    bars = hourly([(101.6, 99.8, 101.4), (103.5, 101, 103)])
    r = _eval(bars, mon_entry, go_long=False, go_short=True)

    assert r.direction == -1
    assert r.executed_at == mon_entry
    assert r.target_delayed_price == pytest.approx(101.5)
    # sl = 101.5 * 1.0165 = 103.17
    assert r.intraday_result is DelayedIntradayResult.SL_FIRST


def test_both_levels_in_one_bar_is_ambiguous(hourly, mon_entry):
    bars = hourly([(100, 98.4, 98.8), (103, 96, 99)])
    r = _eval(bars, mon_entry)
    assert r.intraday_result is DelayedIntradayResult.AMBIGUOUS


def test_no_fill_within_max_delay(hourly, mon_entry):
    bars = hourly([(100.5, 99.5, 100)] * 3 + [(100, 98, 98.5)])
    r = _eval(bars, mon_entry, max_delay_hours=2.0)

    assert r.used and not r.executed
    assert r.target_delayed_price == pytest.approx(98.5)
    assert r.to_execution_facts() is None


def test_quiet_day_is_not_traded(hourly, mon_entry):
    bars = hourly([(100, 90, 95)])
    r = _eval(bars, mon_entry, day_min_move=0.017)
    assert r.used and not r.executed


def test_bars_outside_baseline_window_are_ignored(hourly, mon_entry):
    # 入口前一根 bar 会成交，但它不在窗口里
    before = hourly([(100, 90, 95)], start=mon_entry - H1)
    inside = hourly([(100.5, 99.5, 100), (100, 98.4, 98.8)])
    r = _eval(before + inside, mon_entry)
    assert r.executed_at == mon_entry + H1


def test_tp_sl_floors():
    assert DelayedEntryEvaluator.tp_sl_pct(0.02, strong_signal=False) == (pytest.approx(0.022), pytest.approx(0.01))
    assert DelayedEntryEvaluator.tp_sl_pct(0.01, strong_signal=False) == (pytest.approx(0.017), pytest.approx(0.008))
    assert DelayedEntryEvaluator.tp_sl_pct(0.01, strong_signal=True) == (pytest.approx(0.022), pytest.approx(0.009))


def test_invalid_inputs(hourly, mon_entry):
    bars = hourly([100])
    with pytest.raises(PriceContractError, match="exactly one"):
        _eval(bars, mon_entry, go_long=True, go_short=True)
    with pytest.raises(PriceContractError):
        _eval(bars, mon_entry, entry_price=0.0)
    with pytest.raises(PriceContractError):
        _eval(bars, mon_entry, delay_factor=float("nan"))
    with pytest.raises(SeriesContractError):
        _eval([], mon_entry)
    with pytest.raises(TimeContractError):
        _eval(bars, datetime(2024, 1, 8, 12))
