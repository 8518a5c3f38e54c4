# tests/analytics/test_min_move.py
from __future__ import annotations

from datetime import date, timedelta

import pytest

from solbt.analytics.min_move import (
    MinMoveConfig,
    MinMoveEngine,
    MinMoveHistoryRow,
    MinMoveState,
    ensure_history_monotonic,
)
from solbt.utils.errors import PriceContractError, SeriesContractError


def _history(last_day: date, n: int, amplitude: float) -> list:
    return [MinMoveHistoryRow(last_day - timedelta(days=n - 1 - i), amplitude) for i in range(n)]


def test_local_vol_blend_cap_and_floor():
    cfg = MinMoveConfig()
    assert MinMoveEngine.compute_local_vol(0.02, 0.01, cfg) == pytest.approx(0.016)
    assert MinMoveEngine.compute_local_vol(0.9, 0.9, cfg) == pytest.approx(0.25)
    assert MinMoveEngine.compute_local_vol(0.0, 0.0, cfg) == pytest.approx(0.0075)


def test_first_day_without_history(utc):
    cfg = MinMoveConfig()
    state = MinMoveState()
    r = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.03, 0.03, [], cfg, state)

    assert r.min_move == pytest.approx(0.03)
    assert r.quantile_used == pytest.approx(cfg.quantile_start)
    assert state.ewma_vol == pytest.approx(0.03)
    # 数据不足：不记录 tune 日期
    assert state.last_quantile_tune is None


def test_regime_down_and_clamp(utc):
    cfg = MinMoveConfig()
    r = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), True, 0.03, 0.03, [], cfg, MinMoveState())
    assert r.min_move == pytest.approx(0.036)

    r = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.25, 0.25, [], cfg, MinMoveState())
    assert r.min_move == pytest.approx(cfg.min_ceil_pct)

    r = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.001, 0.001, [], cfg, MinMoveState())
    assert r.min_move == pytest.approx(cfg.min_floor_pct)


def test_ewma_moves_toward_local_vol(utc):
    cfg = MinMoveConfig()
    state = MinMoveState(ewma_vol=0.02, q_current=0.6)
    r = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.04, 0.04, [], cfg, state)
    assert r.ewma_vol == pytest.approx(0.02 + 0.15 * (0.04 - 0.02))
    assert state.ewma_vol == pytest.approx(r.ewma_vol)


def test_quantile_steps_up_when_realized_is_small(utc):
    cfg = MinMoveConfig()
    state = MinMoveState()
    hist = _history(date(2024, 2, 29), 40, 0.01)

    r = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.03, 0.03, hist, cfg, state)

    assert r.quantile_used == pytest.approx(0.65)
    assert state.last_quantile_tune == date(2024, 3, 1)
    assert r.min_move == pytest.approx(0.03 * 0.65 / 0.6)


def test_quantile_steps_down_when_realized_is_large(utc):
    cfg = MinMoveConfig()
    state = MinMoveState()
    hist = _history(date(2024, 2, 29), 40, 0.2)

    r = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.03, 0.03, hist, cfg, state)
    assert r.quantile_used == pytest.approx(0.55)


def test_retune_respects_cadence(utc):
    cfg = MinMoveConfig()
    state = MinMoveState()
    hist = _history(date(2024, 2, 29), 40, 0.01)

    MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.03, 0.03, hist, cfg, state)
    r = MinMoveEngine.compute_adaptive(utc(2024, 3, 4, 12), False, 0.03, 0.03, hist, cfg, state)

    # 3 天后不重调
    assert r.quantile_used == pytest.approx(0.65)
    assert state.last_quantile_tune == date(2024, 3, 1)


def test_future_history_rows_are_never_read(utc):
    """
    Contract:
      day >= as_of 的 history 行不影响结果
    """
    cfg = MinMoveConfig()
    past = _history(date(2024, 2, 29), 40, 0.01)
    future = [MinMoveHistoryRow(date(2024, 3, 1) + timedelta(days=i), 0.5) for i in range(10)]

    s1, s2 = MinMoveState(), MinMoveState()
    a = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.03, 0.03, past, cfg, s1)
    b = MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, 0.03, 0.03, past + future, cfg, s2)

    assert a == b
    assert s1 == s2


@pytest.mark.parametrize("atr, dyn", [(float("nan"), 0.02), (-0.01, 0.02), (0.02, float("nan")), (0.02, -1.0)])
def test_invalid_inputs_fail(utc, atr, dyn):
    with pytest.raises(PriceContractError):
        MinMoveEngine.compute_adaptive(utc(2024, 3, 1, 12), False, atr, dyn, [], MinMoveConfig(), MinMoveState())


def test_history_must_be_monotonic():
    rows = [MinMoveHistoryRow(date(2024, 1, 2), 0.01), MinMoveHistoryRow(date(2024, 1, 2), 0.02)]
    with pytest.raises(SeriesContractError):
        ensure_history_monotonic(rows)


def test_config_validation():
    with pytest.raises(ValueError):
        MinMoveConfig(min_floor_pct=0.1, min_ceil_pct=0.05)
    with pytest.raises(ValueError):
        MinMoveConfig(quantile_low=0.7, quantile_start=0.6)
