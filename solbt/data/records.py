# solbt/data/records.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from solbt.candles.candle import Candle
from solbt.candles.series_guards import SeriesGuards
from solbt.time.types import DayKey, TradingEntry, require_utc
from solbt.utils.errors import PipelineContractError, PriceContractError

_PROB_SUM_TOL = 1e-6


class DelayedIntradayResult(str, Enum):
    NONE = "none"
    TP_FIRST = "tp_first"
    SL_FIRST = "sl_first"
    AMBIGUOUS = "ambiguous"


def _require_positive(v: float, name: str, who: str) -> float:
    if v is None or not math.isfinite(v) or v <= 0.0:
        raise PriceContractError(f"[{who}] {name} must be finite and > 0, got {v}.")
    return v


@dataclass(frozen=True)
class ProbTriple:
    """
    (up, flat, down) 概率三元组

    不变量：有限、[0, 1]、和 ≈ 1
    """
    up: float
    flat: float
    down: float

    def __post_init__(self):
        for name in ("up", "flat", "down"):
            v = getattr(self, name)
            if not math.isfinite(v) or v < 0.0 or v > 1.0:
                raise PriceContractError(f"[prob] {name} must be in [0, 1], got {v}.")
        s = self.up + self.flat + self.down
        if abs(s - 1.0) > _PROB_SUM_TOL:
            raise PriceContractError(
                f"[prob] degenerate triple: up={self.up}, flat={self.flat}, down={self.down}, sum={s}."
            )


@dataclass(frozen=True)
class DelayedExecutionFacts:
    """外部给定的 delayed 入场事实（已成交时间 / 价格 / intraday 结果）"""
    executed_at: datetime
    entry_price: float
    intraday_result: DelayedIntradayResult = DelayedIntradayResult.NONE

    def __post_init__(self):
        require_utc(self.executed_at, "executed_at", who="delayed-exec")
        _require_positive(self.entry_price, "entry_price", "delayed-exec")


@dataclass(frozen=True)
class CausalPredictionRecord:
    """
    CausalPredictionRecord（FINAL / FROZEN）

    decision 时刻可得的全部事实：
      - 各层概率（day / day+micro / day+micro+sl）
      - regime、min_move
      - SL 层输出（可能未计算 -> None）
      - delayed 层参数

    leverage / skip / anti-direction 只允许读这里。
    """
    entry: TradingEntry
    pred_label: int
    pred_label_day_micro: int
    prob_day: ProbTriple
    prob_day_micro: ProbTriple
    prob_total: ProbTriple
    min_move: float
    regime_down: bool = False
    pred_micro_up: bool = False
    pred_micro_down: bool = False
    conf_day: float = 0.0
    conf_micro: float = 0.0
    sl_prob: Optional[float] = None
    sl_high_decision: Optional[bool] = None
    delayed_source: Optional[str] = None
    delayed_intraday_tp_pct: Optional[float] = None
    delayed_intraday_sl_pct: Optional[float] = None
    reason: str = ""

    def __post_init__(self):
        if not isinstance(self.entry, TradingEntry):
            raise TypeError(f"entry must be TradingEntry, got {type(self.entry).__name__}")
        for name in ("pred_label", "pred_label_day_micro"):
            if getattr(self, name) not in (0, 1, 2):
                raise PriceContractError(f"[causal] {name} must be 0/1/2, got {getattr(self, name)}.")
        if self.pred_micro_up and self.pred_micro_down:
            raise PriceContractError(f"[causal] micro up and down both set at {self.entry}.")
        _require_positive(self.min_move, "min_move", "causal")
        if self.sl_prob is not None and (not math.isfinite(self.sl_prob) or not 0.0 <= self.sl_prob <= 1.0):
            raise PriceContractError(f"[causal] sl_prob must be in [0, 1], got {self.sl_prob}.")
        if self.delayed_source not in (None, "A", "B"):
            raise PriceContractError(f"[causal] delayed_source must be A/B/None, got {self.delayed_source!r}.")

    @property
    def entry_utc(self) -> datetime:
        return self.entry.value

    @property
    def day_key(self) -> DayKey:
        return self.entry.day_key

    @property
    def micro_predicted(self) -> bool:
        return self.pred_micro_up or self.pred_micro_down

    # -------------------- or-throw accessors --------------------
    def get_sl_prob_or_throw(self) -> float:
        if self.sl_prob is None:
            raise PipelineContractError(f"[causal] sl_prob is None at {self.entry}: SL layer missing.")
        return self.sl_prob

    def get_delayed_tp_pct_or_throw(self) -> float:
        if self.delayed_intraday_tp_pct is None:
            raise PipelineContractError(f"[causal] delayed_intraday_tp_pct is None at {self.entry}.")
        return _require_positive(self.delayed_intraday_tp_pct, "delayed_intraday_tp_pct", "causal")

    def get_delayed_sl_pct_or_throw(self) -> float:
        if self.delayed_intraday_sl_pct is None:
            raise PipelineContractError(f"[causal] delayed_intraday_sl_pct is None at {self.entry}.")
        return _require_positive(self.delayed_intraday_sl_pct, "delayed_intraday_sl_pct", "causal")


@dataclass(frozen=True)
class ForwardOutcomes:
    """
    ForwardOutcomes（FINAL / FROZEN）

    decision 之后真实发生的事实，只用于模拟成交，绝不参与决策。
    day_minutes = baseline 窗口 [entry, window_end) 的 1m 路径。
    """
    entry_price: float
    window_end: datetime
    day_minutes: Tuple[Candle, ...]
    min_move: float
    true_label: int = 1
    fact_micro_up: bool = False
    fact_micro_down: bool = False
    ambiguous: bool = False
    path_first_pass_dir: int = 0
    path_first_pass_time: Optional[datetime] = None
    path_reached_up_pct: float = 0.0
    path_reached_down_pct: float = 0.0
    delayed_execution: Optional[DelayedExecutionFacts] = None
    max_high: float = field(init=False)
    min_low: float = field(init=False)
    close: float = field(init=False)

    def __post_init__(self):
        _require_positive(self.entry_price, "entry_price", "forward")
        require_utc(self.window_end, "window_end", who="forward")
        SeriesGuards.ensure_non_empty(self.day_minutes, "forward.day_minutes")
        SeriesGuards.ensure_strictly_ascending_utc(self.day_minutes, lambda c: c.open_time, "forward.day_minutes")
        object.__setattr__(self, "day_minutes", tuple(self.day_minutes))
        object.__setattr__(self, "max_high", max(c.high for c in self.day_minutes))
        object.__setattr__(self, "min_low", min(c.low for c in self.day_minutes))
        object.__setattr__(self, "close", self.day_minutes[-1].close)


@dataclass(frozen=True)
class BacktestRecord:
    """causal / forward 成对；两层在同一 entry 上对齐"""
    causal: CausalPredictionRecord
    forward: ForwardOutcomes

    @property
    def entry_utc(self) -> datetime:
        return self.causal.entry_utc

    @property
    def day_key(self) -> DayKey:
        return self.causal.day_key
