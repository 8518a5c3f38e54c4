# solbt/pnl/direction.py
from __future__ import annotations

from enum import Enum
from typing import Optional

from solbt.data.records import CausalPredictionRecord


class PredictionMode(str, Enum):
    DAY_ONLY = "day_only"
    DAY_PLUS_MICRO = "day_plus_micro"
    DAY_PLUS_MICRO_PLUS_SL = "day_plus_micro_plus_sl"


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"

    @property
    def is_long(self) -> bool:
        return self is Direction.LONG

    def flipped(self) -> "Direction":
        return Direction.SHORT if self is Direction.LONG else Direction.LONG


def resolve_direction(causal: CausalPredictionRecord, mode: PredictionMode) -> Optional[Direction]:
    """
    三种模式，每个 run 只启用一种：
      - DAY_ONLY：day 标签；flat 时看 micro
      - DAY_PLUS_MICRO：day+micro 融合标签
      - DAY_PLUS_MICRO_PLUS_SL：total 概率严格 argmax（平局 -> 不交易）
    """
    mode = PredictionMode(mode)

    if mode is PredictionMode.DAY_ONLY:
        label = causal.pred_label
        go_long = label == 2 or (label == 1 and causal.pred_micro_up)
        go_short = label == 0 or (label == 1 and causal.pred_micro_down)
    elif mode is PredictionMode.DAY_PLUS_MICRO:
        cls = causal.pred_label_day_micro
        go_long = cls == 2
        go_short = cls == 0
    else:
        p = causal.prob_total
        go_long = p.up > p.down and p.up > p.flat
        go_short = p.down > p.up and p.down > p.flat

    if go_long:
        return Direction.LONG
    if go_short:
        return Direction.SHORT
    return None
