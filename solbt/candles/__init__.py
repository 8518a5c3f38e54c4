from .candle import Candle, Timeframe
from .series_guards import SeriesGuards
from .gaps import KnownCandleGap, KnownGapRegistry, ensure_window_has_no_gap, find_gaps, reconcile_gaps
from .window import BaselineMinuteWindow

__all__ = [
    "Candle", "Timeframe",
    "SeriesGuards",
    "KnownCandleGap", "KnownGapRegistry", "ensure_window_has_no_gap", "find_gaps", "reconcile_gaps",
    "BaselineMinuteWindow",
]
