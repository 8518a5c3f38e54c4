# tests/time/test_train_split.py
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from solbt.time.train_split import (
    classify_by_baseline_exit,
    split_by_baseline_exit,
    split_by_baseline_exit_strict,
)
from solbt.time.types import SplitClass, TrainBoundary
from solbt.utils.errors import SeriesContractError, TimeContractError


@pytest.fixture
def boundary() -> TrainBoundary:
    return TrainBoundary.from_date(date(2024, 1, 8))


def test_exit_on_boundary_day_is_train(utc, boundary):
    # Fri 2024-01-05 -> settlement Mon 2024-01-08
    cls, key = classify_by_baseline_exit(utc(2024, 1, 5, 12), boundary)
    assert cls is SplitClass.TRAIN
    assert str(key) == "2024-01-08"


def test_entry_before_boundary_exit_after_is_oos(utc, boundary):
    """
    Contract:
      比较 settlement 的 day key；entry 在边界当天，exit 在次日 -> OOS
    """
    cls, key = classify_by_baseline_exit(utc(2024, 1, 8, 12), boundary)
    assert cls is SplitClass.OOS
    assert str(key) == "2024-01-09"


def test_weekend_is_excluded(utc, boundary):
    cls, key = classify_by_baseline_exit(utc(2024, 1, 6, 12), boundary)
    assert cls is SplitClass.EXCLUDED
    assert key is None


def test_split_requires_strictly_ascending(utc, boundary):
    items = [utc(2024, 1, 9, 12), utc(2024, 1, 8, 12)]
    with pytest.raises(SeriesContractError, match="strictly ascending"):
        split_by_baseline_exit(items, lambda x: x, boundary)


def test_split_partitions_in_order(utc, boundary):
    items = [utc(2024, 1, 4, 12), utc(2024, 1, 5, 12), utc(2024, 1, 6, 12), utc(2024, 1, 8, 12)]
    split = split_by_baseline_exit(items, lambda x: x, boundary)
    assert split.train == items[:2]
    assert split.excluded == [items[2]]
    assert split.oos == [items[3]]


def test_strict_split_rejects_excluded(utc, boundary):
    items = [utc(2024, 1, 5, 12), utc(2024, 1, 6, 12)]
    with pytest.raises(TimeContractError, match="excluded entries are not allowed: count=1"):
        split_by_baseline_exit_strict(items, lambda x: x, boundary, tag="causal")


def test_strict_split_returns_train_and_oos(utc, boundary):
    items = [utc(2024, 1, 5, 12), utc(2024, 1, 8, 12), utc(2024, 1, 9, 12)]
    train, oos = split_by_baseline_exit_strict(items, lambda x: x, boundary, tag="causal")
    assert train == items[:1]
    assert oos == items[1:]


# 2024-03-08 Fri .. 03-12 Tue，跨 DST 切换（03-10），逐 30 分钟
_WEEK = [datetime(2024, 3, 8, tzinfo=timezone.utc) + timedelta(minutes=30 * i) for i in range(5 * 48)]


@pytest.mark.parametrize("boundary_day", [date(2024, 3, 8), date(2024, 3, 11), date(2024, 3, 12)])
def test_classification_is_repeatable(boundary_day):
    boundary = TrainBoundary.from_date(boundary_day)

    first = [classify_by_baseline_exit(t, boundary) for t in _WEEK]
    second = [classify_by_baseline_exit(t, boundary) for t in _WEEK]
    assert first == second

    a = split_by_baseline_exit(_WEEK, lambda x: x, boundary)
    b = split_by_baseline_exit(_WEEK, lambda x: x, boundary)
    assert (a.train, a.oos, a.excluded) == (b.train, b.oos, b.excluded)
    assert len(a.train) + len(a.oos) + len(a.excluded) == len(_WEEK)
    # 每个交易日恰好一个入口
    assert len(a.train) + len(a.oos) == 3
