# solbt/pnl/anti_direction.py
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict

from solbt import logs
from solbt.data.records import CausalPredictionRecord
from solbt.pnl.liquidation import LiquidationMath
from solbt.utils.errors import PriceContractError


class AntiDirectionOverlay:
    """
    Anti-direction：在以下 causal 条件全部满足时翻转方向
      1. SL 层明确标记高风险（sl_high_decision is True；None = 未计算 -> 不用）
      2. min_move 在合理区间（不太死、不太极端）
      3. 理论强平距离 >= K * min_move（日常噪声不足以把翻转后的单子打爆）
    """

    def __init__(self, cfg, liq: LiquidationMath):
        self._k = cfg.k
        self._low = cfg.min_move_low
        self._high = cfg.min_move_high
        self._liq = liq

    def should_apply(self, causal: CausalPredictionRecord, leverage: float) -> bool:
        if causal.sl_high_decision is not True:
            return False

        mm = causal.min_move
        if mm is None or math.isnan(mm) or mm <= 0.0:
            raise PriceContractError(f"[anti-d] min_move must be > 0 at {causal.entry}, got {mm}.")

        if mm < self._low or mm > self._high:
            return False

        return self._liq.adverse_fraction(leverage) >= self._k * mm


@dataclass
class AntiDirectionStats:
    """单 run 的 anti-direction 计数；run 结束时 log 一次 summary"""
    checked: int = 0
    applied: int = 0
    by_pred_label: Counter = field(default_factory=Counter)
    by_leverage: Counter = field(default_factory=Counter)
    min_move_sum: float = 0.0
    min_move_min: float = math.inf
    min_move_max: float = 0.0

    def record_check(self) -> None:
        self.checked += 1

    def record_applied(self, causal: CausalPredictionRecord, leverage: float) -> None:
        self.applied += 1
        self.by_pred_label[causal.pred_label] += 1
        self.by_leverage[leverage] += 1
        mm = causal.min_move
        self.min_move_sum += mm
        self.min_move_min = min(self.min_move_min, mm)
        self.min_move_max = max(self.min_move_max, mm)

    def as_dict(self) -> Dict[str, float]:
        return {
            "anti_d_checked": self.checked,
            "anti_d_applied": self.applied,
        }

    def log_summary(self, policy_name: str) -> None:
        if self.checked == 0:
            return

        pct = self.applied / self.checked * 100.0
        logs.info(
            f"[anti-d][summary] policy={policy_name}, checked={self.checked}, "
            f"applied={self.applied} ({pct:.1f}%)"
        )
        logs.info(
            f"[anti-d][labels] label0={self.by_pred_label[0]}, "
            f"label1={self.by_pred_label[1]}, label2={self.by_pred_label[2]}"
        )
        if self.by_leverage:
            parts = ", ".join(f"{lev:g}x:{n}" for lev, n in sorted(self.by_leverage.items()))
            logs.info(f"[anti-d][by-lev] {parts}")
        if self.applied:
            avg = self.min_move_sum / self.applied
            logs.info(
                f"[anti-d][minMove] count={self.applied}, avg={avg:.3f}, "
                f"min={self.min_move_min:.3f}, max={self.min_move_max:.3f}"
            )
