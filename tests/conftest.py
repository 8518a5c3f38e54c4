# tests/conftest.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Sequence

import pytest
from loguru import logger

from solbt.candles.candle import Candle
from solbt.data.records import (
    BacktestRecord,
    CausalPredictionRecord,
    ForwardOutcomes,
    ProbTriple,
)
from solbt.time.windowing import NyWindowing

UTC = timezone.utc


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


def _utc(y: int, mo: int, d: int, h: int = 0, mi: int = 0) -> datetime:
    return datetime(y, mo, d, h, mi, tzinfo=UTC)


def _path(start: datetime, bars: Sequence, step: timedelta = timedelta(minutes=1)) -> list:
    """
    bars: float（open=high=low=close）或 (high, low, close)
    """
    out = []
    for i, b in enumerate(bars):
        if isinstance(b, tuple):
            high, low, close = b
        else:
            high = low = close = float(b)
        out.append(Candle(start + i * step, open=close, high=high, low=low, close=close))
    return out


@pytest.fixture
def utc():
    return _utc


@pytest.fixture
def candle_path():
    return _path


# -----------------------------------------------------------------------------
# 冬令时工作日：NY 07:00 = 12:00 UTC
# -----------------------------------------------------------------------------
@pytest.fixture
def mon_entry() -> datetime:
    return _utc(2024, 1, 8, 12, 0)


@pytest.fixture
def week_entries() -> list:
    # Mon .. Fri, 2024-01-08 .. 2024-01-12
    return [_utc(2024, 1, d, 12, 0) for d in range(8, 13)]


@pytest.fixture
def make_record():
    """
    BacktestRecord builder。forward.window_end 使用 baseline settlement。
    """

    def build(
        entry_utc: datetime,
        bars: Sequence,
        *,
        entry_price: float = 100.0,
        pred_label: int = 2,
        min_move: float = 0.03,
        delayed_execution=None,
        **causal_overrides,
    ) -> BacktestRecord:
        entry = NyWindowing.make_trading_entry_or_fail(entry_utc)
        causal_kwargs = dict(
            entry=entry,
            pred_label=pred_label,
            pred_label_day_micro=pred_label,
            prob_day=ProbTriple(0.6, 0.3, 0.1),
            prob_day_micro=ProbTriple(0.6, 0.3, 0.1),
            prob_total=ProbTriple(0.6, 0.3, 0.1),
            min_move=min_move,
        )
        causal_kwargs.update(causal_overrides)
        causal = CausalPredictionRecord(**causal_kwargs)

        forward = ForwardOutcomes(
            entry_price=entry_price,
            window_end=NyWindowing.settlement_of(entry_utc),
            day_minutes=tuple(_path(entry_utc, bars)),
            min_move=min_move,
            delayed_execution=delayed_execution,
        )
        return BacktestRecord(causal=causal, forward=forward)

    return build
