from .types import DayKey, SettlementInstant, SplitClass, TradingEntry, TrainBoundary, require_utc
from .windowing import NyWindowing
from .train_split import (
    Split,
    classify_by_baseline_exit,
    split_by_baseline_exit,
    split_by_baseline_exit_strict,
)

__all__ = [
    "DayKey", "SettlementInstant", "SplitClass", "TradingEntry", "TrainBoundary", "require_utc",
    "NyWindowing",
    "Split", "classify_by_baseline_exit", "split_by_baseline_exit", "split_by_baseline_exit_strict",
]
