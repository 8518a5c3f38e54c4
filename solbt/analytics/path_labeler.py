# solbt/analytics/path_labeler.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Iterable, Optional

from solbt.candles.candle import Candle
from solbt.utils.errors import PriceContractError, SeriesContractError

# flat 日 micro 方向的迟滞带
MICRO_HYSTERESIS = 0.001


class PathLabel(IntEnum):
    DOWN = 0
    FLAT = 1
    UP = 2


class MicroDirection(IntEnum):
    DOWN = -1
    NEUTRAL = 0
    UP = 1


@dataclass(frozen=True)
class PathLabelResult:
    """
    PathLabelResult（FINAL / FROZEN）

    - label：first-touch 结果（down / flat / up）
    - ambiguous：第一根触线 bar 同时触及上下阈值（不猜，label 保持 flat，不可用于监督学习）
    - micro：仅 flat 且非 ambiguous 时有意义
    - reached_up_pct / reached_down_pct：整段路径的最大上 / 下振幅（down 为负数）
    """
    label: PathLabel
    ambiguous: bool
    first_pass_dir: int
    first_pass_time: Optional[datetime]
    reached_up_pct: float
    reached_down_pct: float
    micro: MicroDirection

    @property
    def usable_for_training(self) -> bool:
        return not self.ambiguous

    @property
    def realized_amplitude(self) -> float:
        """MinMove history 的输入：max(up, |down|)"""
        return max(self.reached_up_pct, abs(self.reached_down_pct))

    @property
    def fact_micro_up(self) -> bool:
        return self.micro is MicroDirection.UP

    @property
    def fact_micro_down(self) -> bool:
        return self.micro is MicroDirection.DOWN


class PathLabeler:
    """
    PathLabeler（纯函数，可重复执行）

    输入：entry 价格、min_move 阈值、entry -> settlement 的有序 1m 路径
    """

    @staticmethod
    def micro_direction(reached_up_pct: float, reached_down_pct: float) -> MicroDirection:
        down_abs = abs(reached_down_pct)
        if reached_up_pct > down_abs + MICRO_HYSTERESIS:
            return MicroDirection.UP
        if down_abs > reached_up_pct + MICRO_HYSTERESIS:
            return MicroDirection.DOWN
        return MicroDirection.NEUTRAL

    @classmethod
    def label(
        cls,
        entry_price: float,
        min_move: float,
        minutes: Iterable[Candle],
    ) -> PathLabelResult:
        if not math.isfinite(entry_price) or entry_price <= 0.0:
            raise PriceContractError(f"[path-label] entry_price must be > 0, got {entry_price}.")
        if not math.isfinite(min_move) or min_move <= 0.0:
            raise PriceContractError(f"[path-label] min_move must be > 0, got {min_move}.")

        up_level = entry_price * (1.0 + min_move)
        down_level = entry_price * (1.0 - min_move)

        max_high = -math.inf
        min_low = math.inf
        first_dir = 0
        first_time: Optional[datetime] = None
        touched = False
        ambiguous = False
        count = 0

        for m in minutes:
            count += 1
            max_high = max(max_high, m.high)
            min_low = min(min_low, m.low)

            if touched:
                continue

            hit_up = m.high >= up_level
            hit_down = m.low <= down_level
            if not (hit_up or hit_down):
                continue

            touched = True
            first_time = m.open_time
            if hit_up and hit_down:
                ambiguous = True
            elif hit_up:
                first_dir = 1
            else:
                first_dir = -1

        if count == 0:
            raise SeriesContractError("[path-label] empty minute path.")

        if max_high <= 0.0 or min_low <= 0.0:
            raise PriceContractError(
                f"[path-label] non-positive extremes: max_high={max_high}, min_low={min_low}."
            )

        reached_up = max_high / entry_price - 1.0
        reached_down = min_low / entry_price - 1.0

        if first_dir > 0:
            label = PathLabel.UP
        elif first_dir < 0:
            label = PathLabel.DOWN
        else:
            label = PathLabel.FLAT

        micro = MicroDirection.NEUTRAL
        if label is PathLabel.FLAT and not ambiguous:
            micro = cls.micro_direction(reached_up, reached_down)

        return PathLabelResult(
            label=label,
            ambiguous=ambiguous,
            first_pass_dir=first_dir,
            first_pass_time=first_time,
            reached_up_pct=reached_up,
            reached_down_pct=reached_down,
            micro=micro,
        )
