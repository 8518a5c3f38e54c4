# solbt/candles/series_guards.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, List, Sequence, TypeVar

from solbt.time.types import require_utc
from solbt.utils.errors import SeriesContractError

T = TypeVar("T")


class SeriesGuards:
    """
    SeriesGuards（FINAL）

    所有序列在进入 core 之前必须过这里：
      - 非空
      - UTC
      - 严格递增（无重复时间戳）
    """

    @staticmethod
    def ensure_non_empty(items: Sequence[T], tag: str) -> None:
        if items is None or len(items) == 0:
            raise SeriesContractError(f"[series:{tag}] series is empty.")

    @staticmethod
    def ensure_strictly_ascending_utc(
        items: Sequence[T],
        key: Callable[[T], datetime],
        tag: str,
    ) -> None:
        if not items:
            return

        prev = require_utc(key(items[0]), f"{tag}[0]", who=f"series:{tag}")
        for i in range(1, len(items)):
            cur = require_utc(key(items[i]), f"{tag}[{i}]", who=f"series:{tag}")
            if cur <= prev:
                kind = "duplicate" if cur == prev else "non-monotonic"
                raise SeriesContractError(
                    f"[series:{tag}] {kind} timestamps at index {i}: "
                    f"prev={prev.isoformat()}, cur={cur.isoformat()}."
                )
            prev = cur

    @staticmethod
    def sort_by_key_utc(items: Sequence[T], key: Callable[[T], datetime], tag: str) -> List[T]:
        """排序后再做严格递增检查（重复时间戳排序也救不了）"""
        for i, x in enumerate(items):
            require_utc(key(x), f"{tag}[{i}]", who=f"series:{tag}")
        out = sorted(items, key=key)
        SeriesGuards.ensure_strictly_ascending_utc(out, key, tag)
        return out

    @staticmethod
    def step_violations(
        items: Sequence[T],
        key: Callable[[T], datetime],
        step: timedelta,
    ) -> List[tuple]:
        """
        返回所有 step 不均匀的位置 (expected_start, actual_start)。
        调用方负责和已知 gap 注册表对账。
        """
        out = []
        for i in range(1, len(items)):
            prev = key(items[i - 1])
            cur = key(items[i])
            if cur - prev != step:
                out.append((prev + step, cur))
        return out
