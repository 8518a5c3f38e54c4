# tests/pnl/test_liquidation.py
from __future__ import annotations

import pytest

from solbt.pnl.liquidation import (
    LiquidationMath,
    cap_exit_at_liquidation,
    check_liquidation,
    conservative_liquidation_price,
    liquidation_adverse_fraction,
    theoretical_liquidation_price,
)
from solbt.utils.errors import LeverageConfigError, PriceContractError


def test_adverse_fraction_5x():
    assert liquidation_adverse_fraction(5.0) == pytest.approx(0.196)
    assert liquidation_adverse_fraction(2.0) == pytest.approx(0.496)


@pytest.mark.parametrize("lev", [0.0, -1.0, float("nan"), 300.0])
def test_invalid_leverage(lev):
    with pytest.raises(LeverageConfigError):
        liquidation_adverse_fraction(lev)


def test_prices_long_and_short():
    assert theoretical_liquidation_price(100.0, True, 5.0) == pytest.approx(80.4)
    assert theoretical_liquidation_price(100.0, False, 5.0) == pytest.approx(119.6)
    assert conservative_liquidation_price(100.0, True, 5.0) == pytest.approx(100 * (1 - 0.196 * 0.97))
    assert conservative_liquidation_price(100.0, False, 5.0) == pytest.approx(100 * (1 + 0.196 * 0.97))


def test_conservative_is_closer_than_theoretical():
    liq = LiquidationMath()
    for lev in (1.5, 2.0, 3.0, 5.0, 10.0):
        assert liq.conservative_price(100.0, True, lev) > liq.theoretical_price(100.0, True, lev)
        assert liq.conservative_price(100.0, False, lev) < liq.theoretical_price(100.0, False, lev)


def test_check_returns_first_hit(utc, candle_path):
    bars = candle_path(utc(2024, 1, 8, 12), [(100, 90, 95), (95, 80, 81), (85, 70, 75)])
    hit, t = check_liquidation(100.0, True, 5.0, bars)
    assert hit
    assert t == utc(2024, 1, 8, 12, 1)

    hit, t = check_liquidation(100.0, False, 5.0, bars)
    assert not hit
    assert t is None


def test_cap_exit():
    liq_px = conservative_liquidation_price(100.0, True, 5.0)
    assert cap_exit_at_liquidation(100.0, True, 5.0, 70.0) == (pytest.approx(liq_px), True)
    assert cap_exit_at_liquidation(100.0, True, 5.0, 95.0) == (95.0, False)

    with pytest.raises(PriceContractError):
        cap_exit_at_liquidation(100.0, True, 5.0, 0.0)


def test_from_config_reads_pnl_constants():
    from solbt.config.pnl_config import PnlConfig

    liq = LiquidationMath.from_config(PnlConfig(maintenance_margin_rate=0.01, liq_shrink=0.9))
    assert liq.adverse_fraction(5.0) == pytest.approx(0.19)
    assert liq.conservative_adverse_fraction(5.0) == pytest.approx(0.171)
