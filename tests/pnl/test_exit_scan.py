# tests/pnl/test_exit_scan.py
from __future__ import annotations

import pytest

from solbt.pnl.exit_scan import (
    ExitReason,
    compute_mae_mfe,
    find_first_hit_or_fail,
    first_minute_index_at_or_after,
    try_hit_daily_exit,
)
from solbt.utils.errors import PipelineContractError, SeriesContractError


@pytest.fixture
def day_end(utc):
    return utc(2024, 1, 9, 11, 58)


def test_take_profit_long(utc, candle_path, day_end):
    bars = candle_path(utc(2024, 1, 8, 12), [(101, 99, 100), (103.2, 100, 103)])
    hit = try_hit_daily_exit(100.0, True, 0.03, 0.05, bars, day_end)
    assert hit.reason is ExitReason.TAKE_PROFIT
    assert hit.price == pytest.approx(103.0)
    assert hit.index == 1
    assert hit.time == utc(2024, 1, 8, 12, 1)


def test_stop_loss_wins_same_bar_tie(utc, candle_path, day_end):
    bars = candle_path(utc(2024, 1, 8, 12), [(104, 94, 100)])
    hit = try_hit_daily_exit(100.0, True, 0.03, 0.05, bars, day_end)
    assert hit.reason is ExitReason.STOP_LOSS
    assert hit.price == pytest.approx(95.0)

    short_bars = candle_path(utc(2024, 1, 8, 12), [(106, 96, 100)])
    short = try_hit_daily_exit(100.0, False, 0.03, 0.05, short_bars, day_end)
    assert short.reason is ExitReason.STOP_LOSS
    assert short.price == pytest.approx(105.0)


def test_disabled_stop_loss_closes_at_day_end(utc, candle_path, day_end):
    bars = candle_path(utc(2024, 1, 8, 12), [(101, 90, 92), (95, 91, 93)])
    hit = try_hit_daily_exit(100.0, True, 0.03, 0.0, bars, day_end)
    assert hit.reason is ExitReason.CLOSE
    assert hit.price == 93
    assert hit.time == day_end
    assert hit.index == 1


def test_find_first_hit_or_fail(utc, candle_path):
    bars = candle_path(utc(2024, 1, 8, 12), [(101, 99, 100), (102.5, 100, 102)])
    assert find_first_hit_or_fail(bars, True, ExitReason.TAKE_PROFIT, 102.0) == (utc(2024, 1, 8, 12, 1), 1)
    assert find_first_hit_or_fail(bars, False, ExitReason.STOP_LOSS, 101.0) == (utc(2024, 1, 8, 12), 0)

    with pytest.raises(PipelineContractError, match="expected tp hit not found"):
        find_first_hit_or_fail(bars, True, ExitReason.TAKE_PROFIT, 110.0)
    with pytest.raises(SeriesContractError):
        find_first_hit_or_fail([], True, ExitReason.TAKE_PROFIT, 110.0)


def test_first_minute_index(utc, candle_path):
    bars = candle_path(utc(2024, 1, 8, 12), [100, 100, 100])
    assert first_minute_index_at_or_after(bars, utc(2024, 1, 8, 12, 1)) == 1
    assert first_minute_index_at_or_after(bars, utc(2024, 1, 8, 13)) == -1


def test_mae_mfe(utc, candle_path):
    bars = candle_path(utc(2024, 1, 8, 12), [(102, 97, 100), (101, 98, 99)])
    mae, mfe = compute_mae_mfe(100.0, True, bars)
    assert mae == pytest.approx(0.03)
    assert mfe == pytest.approx(0.02)

    mae, mfe = compute_mae_mfe(100.0, False, bars)
    assert mae == pytest.approx(0.02)
    assert mfe == pytest.approx(0.03)
