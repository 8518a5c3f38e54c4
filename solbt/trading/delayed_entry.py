# solbt/trading/delayed_entry.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from solbt.candles.candle import Candle
from solbt.candles.series_guards import SeriesGuards
from solbt.data.records import DelayedExecutionFacts, DelayedIntradayResult
from solbt.time.types import require_utc
from solbt.time.windowing import NyWindowing
from solbt.utils.errors import PriceContractError, SeriesContractError

# min_move 小于该值：当天波动太小，delayed 层直接放弃
MIN_DAY_TRADEABLE = 0.018

STRONG_TP_MULT, STRONG_TP_FLOOR = 1.25, 0.022
STRONG_SL_MULT, STRONG_SL_FLOOR = 0.55, 0.009
WEAK_TP_MULT, WEAK_TP_FLOOR = 1.10, 0.017
WEAK_SL_MULT, WEAK_SL_FLOOR = 0.50, 0.008


@dataclass(frozen=True)
class DelayedEntryResult:
    """
    DelayedEntryResult（FINAL / FROZEN）

    used=False     : 未启用（方向缺失等）
    executed=False : 启用了但价格在 max_delay_hours 内没回到限价
    """
    used: bool
    executed: bool
    direction: int = 0                      # 1 long / -1 short / 0 none
    target_delayed_price: float = 0.0
    executed_price: float = 0.0
    executed_at: Optional[datetime] = None
    delay_hours: float = 0.0
    tp_pct: float = 0.0
    sl_pct: float = 0.0
    intraday_result: DelayedIntradayResult = DelayedIntradayResult.NONE

    @classmethod
    def not_executed(cls, direction: int = 0, target: float = 0.0) -> "DelayedEntryResult":
        return cls(used=True, executed=False, direction=direction, target_delayed_price=target)

    def to_execution_facts(self) -> Optional[DelayedExecutionFacts]:
        if not self.executed or self.executed_at is None:
            return None
        return DelayedExecutionFacts(
            executed_at=self.executed_at,
            entry_price=self.executed_price,
            intraday_result=self.intraday_result,
        )


def _require_finite_positive(v: float, name: str) -> None:
    if not math.isfinite(v) or v <= 0.0:
        raise PriceContractError(f"[delayed] {name} must be finite and > 0, got {v}.")


class DelayedEntryEvaluator:
    """
    DelayedEntryEvaluator

    在 baseline 窗口 [entry, settlement) 的 1h bar 上：
      1. 挂一个更优的限价：entry * (1 -/+ delay_factor * min_move)
      2. max_delay_hours 内第一根穿过限价的 bar 成交
      3. 从成交 bar 起扫 TP / SL：同一 bar 都触及 -> AMBIGUOUS
    """

    @staticmethod
    def tp_sl_pct(day_min_move: float, strong_signal: bool):
        if strong_signal:
            tp = max(day_min_move * STRONG_TP_MULT, STRONG_TP_FLOOR)
            sl = max(day_min_move * STRONG_SL_MULT, STRONG_SL_FLOOR)
        else:
            tp = max(day_min_move * WEAK_TP_MULT, WEAK_TP_FLOOR)
            sl = max(day_min_move * WEAK_SL_MULT, WEAK_SL_FLOOR)
        return tp, sl

    @classmethod
    def evaluate(
        cls,
        candles_1h: Sequence[Candle],
        entry_utc: datetime,
        go_long: bool,
        go_short: bool,
        entry_price: float,
        day_min_move: float,
        strong_signal: bool,
        delay_factor: float,
        max_delay_hours: float,
    ) -> DelayedEntryResult:
        if go_long == go_short:
            raise PriceContractError("[delayed] exactly one of go_long / go_short must be set.")
        require_utc(entry_utc, "entry_utc", who="delayed")
        _require_finite_positive(entry_price, "entry_price")
        _require_finite_positive(day_min_move, "day_min_move")
        _require_finite_positive(delay_factor, "delay_factor")
        _require_finite_positive(max_delay_hours, "max_delay_hours")
        SeriesGuards.ensure_non_empty(candles_1h, "delayed.candles_1h")
        SeriesGuards.ensure_strictly_ascending_utc(candles_1h, lambda c: c.open_time, "delayed.candles_1h")

        direction = 1 if go_long else -1

        if day_min_move < MIN_DAY_TRADEABLE:
            return DelayedEntryResult.not_executed(direction)

        if go_long:
            target = entry_price * (1.0 - delay_factor * day_min_move)
        else:
            target = entry_price * (1.0 + delay_factor * day_min_move)

        day_end = NyWindowing.settlement_of(entry_utc)
        day_bars = [c for c in candles_1h if entry_utc <= c.open_time < day_end]
        if not day_bars:
            raise SeriesContractError(
                f"[delayed] no 1h candles in baseline window {entry_utc.isoformat()}..{day_end.isoformat()}."
            )

        fill_idx = -1
        delay_hours = 0.0
        for i, bar in enumerate(day_bars):
            hours = (bar.open_time - entry_utc).total_seconds() / 3600.0
            if hours > max_delay_hours:
                break
            if (go_long and bar.low <= target) or (go_short and bar.high >= target):
                fill_idx = i
                delay_hours = hours
                break

        if fill_idx < 0:
            return DelayedEntryResult.not_executed(direction, target)

        tp_pct, sl_pct = cls.tp_sl_pct(day_min_move, strong_signal)
        if go_long:
            tp, sl = target * (1.0 + tp_pct), target * (1.0 - sl_pct)
        else:
            tp, sl = target * (1.0 - tp_pct), target * (1.0 + sl_pct)

        outcome = DelayedIntradayResult.NONE
        for bar in day_bars[fill_idx:]:
            if go_long:
                hit_tp, hit_sl = bar.high >= tp, bar.low <= sl
            else:
                hit_tp, hit_sl = bar.low <= tp, bar.high >= sl

            if hit_tp and hit_sl:
                outcome = DelayedIntradayResult.AMBIGUOUS
                break
            if hit_tp:
                outcome = DelayedIntradayResult.TP_FIRST
                break
            if hit_sl:
                outcome = DelayedIntradayResult.SL_FIRST
                break

        return DelayedEntryResult(
            used=True,
            executed=True,
            direction=direction,
            target_delayed_price=target,
            executed_price=target,
            executed_at=day_bars[fill_idx].open_time,
            delay_hours=delay_hours,
            tp_pct=tp_pct,
            sl_pct=sl_pct,
            intraday_result=outcome,
        )
