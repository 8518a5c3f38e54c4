# solbt/analytics/min_move.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from solbt.time.types import DayKey, require_utc
from solbt.utils.errors import PriceContractError, SeriesContractError

# 单窗口 25% 已经是极端值，截断避免撕裂 EWMA
_VOL_INPUT_CAP = 0.25
_QUANTILE_STEP = 0.05
_RETUNE_LOW_BAND = 0.9
_RETUNE_HIGH_BAND = 1.1


@dataclass(frozen=True)
class MinMoveConfig:
    """
    MinMoveConfig（冻结配置）

    语义：每日“多大的移动才算移动”的自适应阈值
      - floor / ceil：硬边界
      - atr / dyn 权重：局部波动混合
      - quantile_*：按历史 path 振幅周期性微调
    """
    min_floor_pct: float = 0.015
    min_ceil_pct: float = 0.08
    atr_weight: float = 0.6
    dyn_vol_weight: float = 0.4
    ewma_alpha: float = 0.15
    quantile_start: float = 0.6
    quantile_low: float = 0.5
    quantile_high: float = 0.8
    quantile_window_days: int = 90
    quantile_retune_every_days: int = 10
    regime_down_mul: float = 1.2
    min_history: int = 30

    def __post_init__(self):
        if not 0.0 < self.min_floor_pct <= self.min_ceil_pct:
            raise ValueError("min_floor_pct must be in (0, min_ceil_pct]")
        if self.atr_weight < 0 or self.dyn_vol_weight < 0 or (self.atr_weight + self.dyn_vol_weight) <= 0:
            raise ValueError("atr/dyn weights must be non-negative with positive sum")
        if not 0.0 < self.ewma_alpha <= 1.0:
            raise ValueError("ewma_alpha must be in (0, 1]")
        if not 0.0 < self.quantile_low <= self.quantile_start <= self.quantile_high < 1.0:
            raise ValueError("quantiles must satisfy 0 < low <= start <= high < 1")
        if self.quantile_window_days <= 0 or self.quantile_retune_every_days <= 0:
            raise ValueError("quantile window / retune cadence must be positive")
        if self.regime_down_mul <= 0:
            raise ValueError("regime_down_mul must be positive")
        if self.min_history <= 0:
            raise ValueError("min_history must be positive")


@dataclass
class MinMoveState:
    """
    可变状态：只允许单一 owner 按时间顺序逐日推进，不跨 run 共享。
    """
    ewma_vol: float = 0.0
    q_current: float = 0.0
    last_quantile_tune: Optional[date] = None


@dataclass(frozen=True)
class MinMoveHistoryRow:
    """已结算日的 path 振幅（day 结束后才允许 append）"""
    day: date
    realized_amplitude: float


@dataclass(frozen=True)
class MinMoveResult:
    as_of: datetime
    regime_down: bool
    min_move: float
    local_vol: float
    ewma_vol: float
    quantile_used: float


def ensure_history_monotonic(history: Sequence[MinMoveHistoryRow], tag: str = "min-move.history") -> None:
    for i in range(1, len(history)):
        if history[i].day <= history[i - 1].day:
            raise SeriesContractError(
                f"[{tag}] history must be strictly increasing by day: "
                f"prev={history[i - 1].day}, cur={history[i].day}, idx={i}."
            )


class MinMoveEngine:
    """
    MinMoveEngine（FINAL）

    严格 causal：
      - 只用当前 atr / dyn_vol
      - state 只由过去的天累积
      - history 只读 (yesterday - N, yesterday]，day >= as_of 的行永远不读
    """

    @staticmethod
    def compute_local_vol(atr_pct: float, dyn_vol: float, cfg: MinMoveConfig) -> float:
        a = min(atr_pct, _VOL_INPUT_CAP)
        d = min(dyn_vol, _VOL_INPUT_CAP)
        v = cfg.atr_weight * a + cfg.dyn_vol_weight * d
        return max(v, cfg.min_floor_pct * 0.5)

    @staticmethod
    def _retune_window(history: Sequence[MinMoveHistoryRow], as_of_day: date, window_days: int) -> list:
        end = as_of_day - timedelta(days=1)
        start_exclusive = end - timedelta(days=window_days)
        values = [
            r.realized_amplitude
            for r in history
            if start_exclusive < r.day <= end
            and math.isfinite(r.realized_amplitude)
            and r.realized_amplitude > 0.0
        ]
        values.sort()
        return values

    @classmethod
    def compute_adaptive(
        cls,
        as_of: datetime,
        regime_down: bool,
        atr_pct: float,
        dyn_vol: float,
        history: Sequence[MinMoveHistoryRow],
        cfg: MinMoveConfig,
        state: MinMoveState,
    ) -> MinMoveResult:
        require_utc(as_of, "as_of", who="min-move")

        if math.isnan(atr_pct) or atr_pct < 0:
            raise PriceContractError(f"[min-move] invalid atr_pct={atr_pct} at {as_of.isoformat()}.")
        if math.isnan(dyn_vol) or dyn_vol < 0:
            raise PriceContractError(f"[min-move] invalid dyn_vol={dyn_vol} at {as_of.isoformat()}.")

        as_of_day = DayKey.of(as_of).date
        local_vol = cls.compute_local_vol(atr_pct, dyn_vol, cfg)

        if state.ewma_vol <= 0.0:
            ewma = local_vol
        else:
            ewma = state.ewma_vol + cfg.ewma_alpha * (local_vol - state.ewma_vol)

        q = state.q_current if state.q_current > 0.0 else cfg.quantile_start

        due = (
            state.last_quantile_tune is None
            or (as_of_day - state.last_quantile_tune).days >= cfg.quantile_retune_every_days
        )
        if due:
            window = cls._retune_window(history, as_of_day, cfg.quantile_window_days)

            # 数据不足：不记录 tune 日期，下一天继续尝试
            if len(window) >= cfg.min_history:
                idx = int(round(q * (len(window) - 1)))
                idx = min(max(idx, 0), len(window) - 1)
                realized = window[idx]
                target = max(cfg.min_floor_pct, ewma)

                if realized < target * _RETUNE_LOW_BAND and q < cfg.quantile_high:
                    q = min(cfg.quantile_high, q + _QUANTILE_STEP)
                elif realized > target * _RETUNE_HIGH_BAND and q > cfg.quantile_low:
                    q = max(cfg.quantile_low, q - _QUANTILE_STEP)

                state.last_quantile_tune = as_of_day

        state.ewma_vol = ewma
        state.q_current = q

        min_move = max(local_vol, ewma) * (q / cfg.quantile_start)
        if regime_down:
            min_move *= cfg.regime_down_mul
        min_move = min(max(min_move, cfg.min_floor_pct), cfg.min_ceil_pct)

        return MinMoveResult(
            as_of=as_of,
            regime_down=regime_down,
            min_move=min_move,
            local_vol=local_vol,
            ewma_vol=ewma,
            quantile_used=q,
        )
