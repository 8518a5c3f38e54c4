# solbt/candles/gaps.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from solbt import logs
from solbt.candles.candle import Candle, Timeframe
from solbt.candles.series_guards import SeriesGuards
from solbt.time.types import require_utc
from solbt.utils.errors import SeriesContractError


@dataclass(frozen=True)
class KnownCandleGap:
    """
    已知数据缺口：期望的下一根 bar 时间 vs 实际续上的 bar 时间。
    gap-scan 给出精确值，匹配严格相等。
    """
    symbol: str
    timeframe: Timeframe
    expected_start: datetime
    actual_start: datetime

    def intersects(self, start: datetime, end: datetime) -> bool:
        """缺口 [expected_start, actual_start) 与窗口 [start, end) 是否相交"""
        return self.expected_start < end and start < self.actual_start


def _utc(y, mo, d, h, mi) -> datetime:
    return datetime(y, mo, d, h, mi, tzinfo=timezone.utc)


# Binance 1m：SOL / BTC 同一批缺口
_BUILTIN_1M: Tuple[Tuple[datetime, datetime], ...] = (
    (_utc(2021, 8, 13, 2, 0), _utc(2021, 8, 13, 6, 30)),
    (_utc(2021, 9, 29, 7, 0), _utc(2021, 9, 29, 9, 0)),
    (_utc(2023, 3, 24, 12, 40), _utc(2023, 3, 24, 14, 0)),
)


class KnownGapRegistry:
    """
    KnownGapRegistry（集中注册）

    - 新发现的缺口只在这里登记，不散落在加载代码里
    - 已知缺口：记录日志、不做 synthetic fill
    - 未知缺口：直接失败
    """

    def __init__(self, gaps: Iterable[KnownCandleGap] = ()):
        self._gaps: Dict[Timeframe, List[KnownCandleGap]] = {tf: [] for tf in Timeframe}
        for g in gaps:
            self.register(g)

    @classmethod
    def default(cls) -> "KnownGapRegistry":
        gaps = [
            KnownCandleGap(sym, Timeframe.M1, exp, act)
            for exp, act in _BUILTIN_1M
            for sym in ("SOLUSDT", "BTCUSDT")
        ]
        return cls(gaps)

    def register(self, gap: KnownCandleGap) -> None:
        require_utc(gap.expected_start, "expected_start", who="gaps")
        require_utc(gap.actual_start, "actual_start", who="gaps")
        if gap.actual_start <= gap.expected_start:
            raise SeriesContractError(
                f"[gaps] actual_start must be after expected_start: {gap}."
            )
        self._gaps[gap.timeframe].append(
            KnownCandleGap(gap.symbol.strip().upper(), gap.timeframe, gap.expected_start, gap.actual_start)
        )

    def gaps_for(self, timeframe: Timeframe) -> List[KnownCandleGap]:
        return list(self._gaps[timeframe])

    def try_match_known_gap(
        self,
        symbol: str,
        timeframe: Timeframe,
        expected_start: datetime,
        actual_start: datetime,
    ) -> Optional[KnownCandleGap]:
        if not symbol or not symbol.strip():
            return None
        sym = symbol.strip().upper()
        for g in self._gaps[timeframe]:
            if g.symbol != sym:
                continue
            if g.expected_start == expected_start and g.actual_start == actual_start:
                return g
        return None


def find_gaps(series: Sequence[Candle], timeframe: Timeframe) -> List[Tuple[datetime, datetime]]:
    SeriesGuards.ensure_strictly_ascending_utc(series, lambda c: c.open_time, f"gaps.{timeframe.value}")
    return SeriesGuards.step_violations(series, lambda c: c.open_time, timeframe.step)


def reconcile_gaps(
    series: Sequence[Candle],
    symbol: str,
    timeframe: Timeframe,
    registry: KnownGapRegistry,
) -> List[KnownCandleGap]:
    """
    每个 step 违规都必须能在注册表里找到，否则 fail。
    返回匹配到的已知缺口（调用方可在决策窗口上再做 ensure_window_has_no_gap）。
    """
    matched: List[KnownCandleGap] = []
    for expected, actual in find_gaps(series, timeframe):
        g = registry.try_match_known_gap(symbol, timeframe, expected, actual)
        if g is None:
            raise SeriesContractError(
                f"[gaps] unknown {timeframe.value} gap for {symbol}: "
                f"expected={expected.isoformat()}, actual={actual.isoformat()}."
            )
        logs.warning(
            f"[gaps] known {timeframe.value} gap for {symbol}: "
            f"{expected.isoformat()} -> {actual.isoformat()}"
        )
        matched.append(g)
    return matched


def ensure_window_has_no_gap(
    gaps: Sequence[KnownCandleGap],
    start: datetime,
    end: datetime,
    tag: str,
) -> None:
    """
    决策窗口 [start, end) 内不允许任何缺口（已知缺口也不行：路径被截断）。
    """
    require_utc(start, "start", who="gaps")
    require_utc(end, "end", who="gaps")
    for g in gaps:
        if g.intersects(start, end):
            raise SeriesContractError(
                f"[gaps:{tag}] gap {g.expected_start.isoformat()} -> {g.actual_start.isoformat()} "
                f"intersects decision window [{start.isoformat()}, {end.isoformat()})."
            )


def ensure_window_contiguous(
    bars: Sequence[Candle],
    start: datetime,
    end: datetime,
    symbol: str,
    registry: KnownGapRegistry,
    tag: str,
    timeframe: Timeframe = Timeframe.M1,
) -> None:
    """
    决策窗口 [start, end) 上 bar 必须连续。

    bars 是窗口切片，可以多带一根窗口之后的 bar（这样尾部缺口也能被发现）。
    已知缺口只影响报错信息，落在窗口里一样失败。
    """
    require_utc(start, "start", who="gaps")
    require_utc(end, "end", who="gaps")
    for expected, actual in SeriesGuards.step_violations(bars, lambda c: c.open_time, timeframe.step):
        if not (expected < end and start < actual):
            continue
        known = registry.try_match_known_gap(symbol, timeframe, expected, actual)
        kind = "known" if known is not None else "unknown"
        raise SeriesContractError(
            f"[gaps:{tag}] {kind} {timeframe.value} gap for {symbol} "
            f"{expected.isoformat()} -> {actual.isoformat()} "
            f"intersects decision window [{start.isoformat()}, {end.isoformat()})."
        )
