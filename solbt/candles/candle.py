# solbt/candles/candle.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from solbt.time.types import require_utc
from solbt.utils.errors import PriceContractError


class Timeframe(str, Enum):
    M1 = "1m"
    H1 = "1h"
    H6 = "6h"

    @property
    def step(self) -> timedelta:
        return _STEPS[self]


_STEPS = {
    Timeframe.M1: timedelta(minutes=1),
    Timeframe.H1: timedelta(hours=1),
    Timeframe.H6: timedelta(hours=6),
}


@dataclass(frozen=True)
class Candle:
    """
    Candle（FINAL / FROZEN）

    open_time: bar 开始时间（UTC）
    OHLC 必须有限且 > 0，high >= max(open, close, low)
    """
    open_time: datetime
    open: float
    high: float
    low: float
    close: float

    def __post_init__(self):
        require_utc(self.open_time, "open_time", who="candle")
        for name in ("open", "high", "low", "close"):
            v = getattr(self, name)
            if not math.isfinite(v) or v <= 0.0:
                raise PriceContractError(
                    f"[candle] {name} must be finite and > 0 at {self.open_time.isoformat()}, got {v}."
                )
        if self.high < self.low:
            raise PriceContractError(
                f"[candle] high < low at {self.open_time.isoformat()}: high={self.high}, low={self.low}."
            )
