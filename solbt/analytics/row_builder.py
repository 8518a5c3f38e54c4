# solbt/analytics/row_builder.py
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, List, Optional, Sequence, Tuple

from solbt import logs
from solbt.analytics.min_move import (
    MinMoveConfig,
    MinMoveEngine,
    MinMoveHistoryRow,
    MinMoveResult,
    MinMoveState,
)
from solbt.analytics.path_labeler import PathLabeler, PathLabelResult
from solbt.candles.candle import Candle, Timeframe
from solbt.candles.gaps import KnownGapRegistry, ensure_window_contiguous, ensure_window_has_no_gap
from solbt.candles.series_guards import SeriesGuards
from solbt.candles.window import BaselineMinuteWindow
from solbt.data.records import ForwardOutcomes
from solbt.time.types import TradingEntry
from solbt.utils.errors import SeriesContractError


@dataclass(frozen=True)
class DailyInputs:
    """单日 causal 输入：入口、入场价、ATR%、动态波动、下行 regime"""
    entry: TradingEntry
    entry_price: float
    atr_pct: float
    dyn_vol: float
    regime_down: bool = False


@dataclass(frozen=True)
class ForwardRow:
    inputs: DailyInputs
    min_move: MinMoveResult
    path: PathLabelResult
    forward: ForwardOutcomes


class ForwardRowBuilder:
    """
    ForwardRowBuilder（单 owner，单次升序遍历）

    每个入口：
      1. 用“已结算”的历史计算 min_move（state 只前进）
      2. 在 baseline 1m 窗口上做 path label
      3. 当天振幅进入 pending，直到某个后续入口 >= 其 settlement 才进入 history

    ambiguous 日同样进入 history（振幅是事实，方向不是）。
    """

    def __init__(
        self,
        cfg: Optional[MinMoveConfig] = None,
        registry: Optional[KnownGapRegistry] = None,
        symbol: str = "SOLUSDT",
    ):
        self._cfg = cfg or MinMoveConfig()
        self._registry = registry if registry is not None else KnownGapRegistry.default()
        self._symbol = symbol.strip().upper()
        self._state = MinMoveState()
        self._history: List[MinMoveHistoryRow] = []
        self._pending: Deque[Tuple[datetime, MinMoveHistoryRow]] = deque()
        self._last_entry: Optional[datetime] = None

    @property
    def config(self) -> MinMoveConfig:
        return self._cfg

    @property
    def state(self) -> MinMoveState:
        return self._state

    @property
    def history(self) -> List[MinMoveHistoryRow]:
        return list(self._history)

    # --------------------------------------------------
    def _release_settled(self, as_of: datetime) -> None:
        while self._pending and self._pending[0][0] <= as_of:
            _, row = self._pending.popleft()
            self._history.append(row)

    def _check_window(self, minutes: Sequence[Candle], window: BaselineMinuteWindow) -> None:
        """窗口内不能有任何缺口（含尾部），已知缺口也不行"""
        known = [g for g in self._registry.gaps_for(Timeframe.M1) if g.symbol == self._symbol]
        ensure_window_has_no_gap(known, window.entry, window.exit_exclusive, tag="row-builder")

        tail = min(window.end_idx + 1, len(minutes))
        ensure_window_contiguous(
            minutes[window.start_idx:tail],
            window.entry,
            window.exit_exclusive,
            self._symbol,
            self._registry,
            tag="row-builder",
        )

        last = minutes[tail - 1].open_time
        if last + Timeframe.M1.step < window.exit_exclusive:
            raise SeriesContractError(
                f"[row-builder] minutes end inside decision window: "
                f"last={last.isoformat()}, window_end={window.exit_exclusive.isoformat()}."
            )

    def step(self, inputs: DailyInputs, minutes: Sequence[Candle]) -> ForwardRow:
        entry_utc = inputs.entry.value
        if self._last_entry is not None and entry_utc <= self._last_entry:
            raise SeriesContractError(
                f"[row-builder] entries must be strictly ascending: "
                f"prev={self._last_entry.isoformat()}, cur={entry_utc.isoformat()}."
            )
        self._last_entry = entry_utc

        self._release_settled(entry_utc)

        window = BaselineMinuteWindow.create_for_baseline(minutes, entry_utc)
        self._check_window(minutes, window)

        mm = MinMoveEngine.compute_adaptive(
            as_of=entry_utc,
            regime_down=inputs.regime_down,
            atr_pct=inputs.atr_pct,
            dyn_vol=inputs.dyn_vol,
            history=self._history,
            cfg=self._cfg,
            state=self._state,
        )

        path = PathLabeler.label(inputs.entry_price, mm.min_move, window)

        forward = ForwardOutcomes(
            entry_price=inputs.entry_price,
            window_end=window.exit_exclusive,
            day_minutes=tuple(window),
            min_move=mm.min_move,
            true_label=int(path.label),
            fact_micro_up=path.fact_micro_up,
            fact_micro_down=path.fact_micro_down,
            ambiguous=path.ambiguous,
            path_first_pass_dir=path.first_pass_dir,
            path_first_pass_time=path.first_pass_time,
            path_reached_up_pct=path.reached_up_pct,
            path_reached_down_pct=path.reached_down_pct,
        )

        self._pending.append(
            (window.exit_exclusive, MinMoveHistoryRow(inputs.entry.day_key.date, path.realized_amplitude))
        )

        return ForwardRow(inputs=inputs, min_move=mm, path=path, forward=forward)

    @logs.progress("row-builder", total=lambda args: len(args[1]), unit="days")
    def build(self, days: Sequence[DailyInputs], minutes: Sequence[Candle], logger=None) -> List[ForwardRow]:
        SeriesGuards.ensure_strictly_ascending_utc(minutes, lambda c: c.open_time, "row-builder.minutes")

        rows = []
        for d in days:
            rows.append(self.step(d, minutes))
            logger.update(1)

        n_amb = sum(1 for r in rows if r.path.ambiguous)
        logs.info(
            f"[row-builder] days={len(rows)} ambiguous={n_amb} "
            f"history={len(self._history)} pending={len(self._pending)}"
        )
        return rows

