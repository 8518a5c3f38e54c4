# solbt/pnl/liquidation.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

from solbt.candles.candle import Candle
from solbt.utils.errors import LeverageConfigError, PriceContractError


@dataclass(frozen=True)
class LiquidationMath:
    """
    LiquidationMath（纯数值函数）

    adverse = 1 / leverage - maintenance_margin_rate
      - theoretical：交易所公式
      - conservative：adverse * shrink（< 1），吸收滑点 / 手续费 / funding
    回测只用 conservative 价格触发强平。
    """
    maintenance_margin_rate: float = 0.004
    shrink: float = 0.97

    def __post_init__(self):
        if not 0.0 <= self.maintenance_margin_rate < 1.0:
            raise LeverageConfigError(
                f"[liq] maintenance_margin_rate must be in [0, 1), got {self.maintenance_margin_rate}."
            )
        if not 0.0 < self.shrink <= 1.0:
            raise LeverageConfigError(f"[liq] shrink must be in (0, 1], got {self.shrink}.")

    @classmethod
    def from_config(cls, cfg) -> "LiquidationMath":
        return cls(maintenance_margin_rate=cfg.maintenance_margin_rate, shrink=cfg.liq_shrink)

    # --------------------------------------------------
    def adverse_fraction(self, leverage: float) -> float:
        if not math.isfinite(leverage) or leverage <= 0.0:
            raise LeverageConfigError(f"[liq] leverage must be > 0, got {leverage}.")
        adverse = 1.0 / leverage - self.maintenance_margin_rate
        if adverse <= 0.0:
            raise LeverageConfigError(
                f"[liq] invalid leverage / margin combination: 1/{leverage} - "
                f"{self.maintenance_margin_rate} = {adverse:.6f} <= 0."
            )
        return adverse

    def conservative_adverse_fraction(self, leverage: float) -> float:
        return self.adverse_fraction(leverage) * self.shrink

    @staticmethod
    def _price_at(entry: float, is_long: bool, fraction: float) -> float:
        if not math.isfinite(entry) or entry <= 0.0:
            raise PriceContractError(f"[liq] entry price must be > 0, got {entry}.")
        return entry * (1.0 - fraction) if is_long else entry * (1.0 + fraction)

    def theoretical_price(self, entry: float, is_long: bool, leverage: float) -> float:
        return self._price_at(entry, is_long, self.adverse_fraction(leverage))

    def conservative_price(self, entry: float, is_long: bool, leverage: float) -> float:
        return self._price_at(entry, is_long, self.conservative_adverse_fraction(leverage))

    # --------------------------------------------------
    def check(
        self,
        entry: float,
        is_long: bool,
        leverage: float,
        minutes: Iterable[Candle],
    ) -> Tuple[bool, Optional[datetime]]:
        """
        第一根触及 conservative 强平价的 bar：
          long: low <= liq ; short: high >= liq
        """
        liq = self.conservative_price(entry, is_long, leverage)
        for m in minutes:
            if is_long and m.low <= liq:
                return True, m.open_time
            if not is_long and m.high >= liq:
                return True, m.open_time
        return False, None

    def cap_exit(
        self,
        entry: float,
        is_long: bool,
        leverage: float,
        exit_price: float,
    ) -> Tuple[float, bool]:
        """
        任何比 conservative 强平更差的出场价，一律截到强平价。
        返回 (final_exit, capped)
        """
        if not math.isfinite(exit_price) or exit_price <= 0.0:
            raise PriceContractError(f"[liq] exit price must be > 0, got {exit_price}.")
        liq = self.conservative_price(entry, is_long, leverage)
        if is_long and exit_price < liq:
            return liq, True
        if not is_long and exit_price > liq:
            return liq, True
        return exit_price, False


_DEFAULT = LiquidationMath()


def liquidation_adverse_fraction(leverage: float, maintenance_margin_rate: float = 0.004) -> float:
    return LiquidationMath(maintenance_margin_rate=maintenance_margin_rate).adverse_fraction(leverage)


def theoretical_liquidation_price(entry: float, is_long: bool, leverage: float) -> float:
    return _DEFAULT.theoretical_price(entry, is_long, leverage)


def conservative_liquidation_price(entry: float, is_long: bool, leverage: float) -> float:
    return _DEFAULT.conservative_price(entry, is_long, leverage)


def check_liquidation(entry: float, is_long: bool, leverage: float, minutes: Iterable[Candle]):
    return _DEFAULT.check(entry, is_long, leverage, minutes)


def cap_exit_at_liquidation(entry: float, is_long: bool, leverage: float, exit_price: float):
    return _DEFAULT.cap_exit(entry, is_long, leverage, exit_price)
