# solbt/candles/window.py
from __future__ import annotations

from bisect import bisect_left
from datetime import datetime
from typing import Iterator, List, Sequence

from solbt.candles.candle import Candle
from solbt.candles.series_guards import SeriesGuards
from solbt.time.types import require_utc
from solbt.time.windowing import NyWindowing
from solbt.utils.errors import SeriesContractError, TimeContractError


class BaselineMinuteWindow:
    """
    BaselineMinuteWindow（FINAL / FROZEN）

    [entry, exit_exclusive) 的 1m 视图：
      - 输入序列必须已排序（UTC）
      - 第一根 minute 必须恰好等于 entry（否则路径被截断，label / 极值不确定）
      - 窗口非空
    """

    __slots__ = ("_all", "entry", "exit_exclusive", "start_idx", "end_idx")

    def __init__(self, all_minutes: Sequence[Candle], entry: datetime, exit_exclusive: datetime,
                 start_idx: int, end_idx: int):
        self._all = all_minutes
        self.entry = entry
        self.exit_exclusive = exit_exclusive
        self.start_idx = start_idx
        self.end_idx = end_idx

    # --------------------------------------------------
    @classmethod
    def create_for_baseline(cls, minutes: Sequence[Candle], entry: datetime) -> "BaselineMinuteWindow":
        exit_exclusive = NyWindowing.settlement_of(entry)
        return cls.create(minutes, entry, exit_exclusive)

    @classmethod
    def create(cls, minutes: Sequence[Candle], entry: datetime, exit_exclusive: datetime) -> "BaselineMinuteWindow":
        SeriesGuards.ensure_non_empty(minutes, "baseline-1m")
        require_utc(entry, "entry", who="baseline-1m")
        require_utc(exit_exclusive, "exit_exclusive", who="baseline-1m")

        if exit_exclusive <= entry:
            raise TimeContractError(
                f"[baseline-1m] invalid window: exit <= entry. "
                f"entry={entry.isoformat()}, exit={exit_exclusive.isoformat()}."
            )

        start = bisect_left(minutes, entry, key=lambda c: c.open_time)
        end = bisect_left(minutes, exit_exclusive, key=lambda c: c.open_time)

        if start >= len(minutes):
            raise SeriesContractError(
                f"[baseline-1m] no minutes coverage for entry={entry.isoformat()}. "
                f"minutes=[{minutes[0].open_time.isoformat()}..{minutes[-1].open_time.isoformat()}]."
            )

        actual = minutes[start].open_time
        if actual != entry:
            raise SeriesContractError(
                f"[baseline-1m] entry minute is missing: expected={entry.isoformat()}, "
                f"actual={actual.isoformat()}, idx={start}."
            )

        if end <= start:
            raise SeriesContractError(
                f"[baseline-1m] no minutes in window [{entry.isoformat()}, {exit_exclusive.isoformat()})."
            )

        return cls(minutes, entry, exit_exclusive, start, end)

    # --------------------------------------------------
    def __len__(self) -> int:
        return self.end_idx - self.start_idx

    def __getitem__(self, offset: int) -> Candle:
        if not 0 <= offset < len(self):
            raise IndexError(f"offset={offset}, len={len(self)}")
        return self._all[self.start_idx + offset]

    def __iter__(self) -> Iterator[Candle]:
        for i in range(self.start_idx, self.end_idx):
            yield self._all[i]

    def to_list(self) -> List[Candle]:
        return list(self._all[self.start_idx:self.end_idx])
