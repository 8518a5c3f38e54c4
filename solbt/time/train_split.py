# solbt/time/train_split.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from solbt import logs
from solbt.time.types import DayKey, SplitClass, TrainBoundary, require_utc
from solbt.time.windowing import NyWindowing
from solbt.utils.errors import SeriesContractError, TimeContractError

T = TypeVar("T")

_STRICT_SAMPLE_LIMIT = 10


@dataclass(frozen=True)
class Split(Generic[T]):
    train: List[T]
    oos: List[T]
    excluded: List[T]


def classify_by_baseline_exit(
    entry_utc: datetime,
    boundary: TrainBoundary,
) -> Tuple[SplitClass, Optional[DayKey]]:
    """
    entry -> (Train / OOS / Excluded, settlement day key)

    冻结规则：
      - 比较的是 settlement 的 day key，不是 entry 的 day key
      - 入口在边界前、settlement 在边界后 -> OOS
      - 周末（无 settlement）-> Excluded
    """
    require_utc(entry_utc, "entry_utc", who="split")
    if not isinstance(boundary, TrainBoundary):
        raise TypeError(f"boundary must be TrainBoundary, got {type(boundary).__name__}")

    settlement = NyWindowing.try_compute_settlement_instant(entry_utc)
    if settlement is None:
        return SplitClass.EXCLUDED, None

    exit_key = settlement.day_key
    if exit_key <= boundary.day_key:
        return SplitClass.TRAIN, exit_key
    return SplitClass.OOS, exit_key


def split_by_baseline_exit(
    ordered: Sequence[T],
    key: Callable[[T], datetime],
    boundary: TrainBoundary,
) -> Split[T]:
    """
    ordered 必须按 key(...)（UTC）严格递增。
    """
    train: List[T] = []
    oos: List[T] = []
    excluded: List[T] = []

    prev: Optional[datetime] = None
    for item in ordered:
        cur = require_utc(key(item), "key(item)", who="split")
        if prev is not None and cur <= prev:
            raise SeriesContractError(
                f"[split] ordered must be strictly ascending by entry utc. "
                f"prev={prev.isoformat()}, cur={cur.isoformat()}."
            )
        prev = cur

        cls, _ = classify_by_baseline_exit(cur, boundary)
        if cls is SplitClass.TRAIN:
            train.append(item)
        elif cls is SplitClass.OOS:
            oos.append(item)
        else:
            excluded.append(item)

    return Split(train=train, oos=oos, excluded=excluded)


def split_by_baseline_exit_strict(
    ordered: Sequence[T],
    key: Callable[[T], datetime],
    boundary: TrainBoundary,
    tag: str,
) -> Tuple[List[T], List[T]]:
    """
    causal 数据上 Excluded 非空 = pipeline bug，不允许静默丢弃。
    """
    split = split_by_baseline_exit(ordered, key, boundary)

    if split.excluded:
        sample = ", ".join(
            key(x).isoformat() for x in split.excluded[:_STRICT_SAMPLE_LIMIT]
        )
        raise TimeContractError(
            f"[split:{tag}] excluded entries are not allowed: count={len(split.excluded)}, "
            f"boundary={boundary}, sample=[{sample}]."
        )

    logs.info(
        f"[split:{tag}] boundary={boundary} train={len(split.train)} oos={len(split.oos)}"
    )
    return split.train, split.oos
