# solbt/pnl/exit_scan.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence, Tuple

from solbt.candles.candle import Candle
from solbt.utils.errors import PipelineContractError, PriceContractError, SeriesContractError

# sl_pct 小于该值视为关闭止损
_SL_DISABLED_EPS = 1e-9


class ExitReason(str, Enum):
    TAKE_PROFIT = "tp"
    STOP_LOSS = "sl"
    CLOSE = "close"
    LIQUIDATION = "liq"


@dataclass(frozen=True)
class ExitHit:
    price: float
    time: datetime
    index: int
    reason: ExitReason


def _require_path(minutes: Sequence[Candle], entry_price: float, who: str) -> None:
    if not minutes:
        raise SeriesContractError(f"[pnl] {who}: minutes is empty.")
    if entry_price <= 0.0:
        raise PriceContractError(f"[pnl] {who}: entry price must be > 0, got {entry_price}.")


def try_hit_daily_exit(
    entry_price: float,
    is_long: bool,
    tp_pct: float,
    sl_pct: float,
    minutes: Sequence[Candle],
    day_end: datetime,
) -> ExitHit:
    """
    第一根触及 TP / SL 的 bar 出场；同一 bar 两者都触及 -> SL（悲观）。
    都没触及 -> 最后一根 close，时间记为 day_end。
    """
    _require_path(minutes, entry_price, "try_hit_daily_exit")

    sl_enabled = sl_pct > _SL_DISABLED_EPS
    if is_long:
        tp = entry_price * (1.0 + tp_pct)
        sl = entry_price * (1.0 - sl_pct)
    else:
        tp = entry_price * (1.0 - tp_pct)
        sl = entry_price * (1.0 + sl_pct)

    for i, m in enumerate(minutes):
        if is_long:
            hit_tp = m.high >= tp
            hit_sl = sl_enabled and m.low <= sl
        else:
            hit_tp = m.low <= tp
            hit_sl = sl_enabled and m.high >= sl

        if hit_sl:
            return ExitHit(sl, m.open_time, i, ExitReason.STOP_LOSS)
        if hit_tp:
            return ExitHit(tp, m.open_time, i, ExitReason.TAKE_PROFIT)

    return ExitHit(minutes[-1].close, day_end, len(minutes) - 1, ExitReason.CLOSE)


def find_first_hit_or_fail(
    minutes: Sequence[Candle],
    is_long: bool,
    reason: ExitReason,
    level: float,
) -> Tuple[datetime, int]:
    """
    delayed 层说了 TP / SL 先到，1m 路径上就必须找得到，否则是数据不一致。
    """
    if not minutes:
        raise SeriesContractError("[pnl] find_first_hit_or_fail: minutes is empty.")
    if level <= 0.0:
        raise PriceContractError(f"[pnl] find_first_hit_or_fail: level must be > 0, got {level}.")

    for i, m in enumerate(minutes):
        if reason is ExitReason.TAKE_PROFIT:
            hit = m.high >= level if is_long else m.low <= level
        else:
            hit = m.low <= level if is_long else m.high >= level
        if hit:
            return m.open_time, i

    raise PipelineContractError(
        f"[pnl] expected {reason.value} hit not found in minute path: level={level:.8f}. "
        f"delayed layer / day minutes mismatch."
    )


def first_minute_index_at_or_after(minutes: Sequence[Candle], t: datetime) -> int:
    for i, m in enumerate(minutes):
        if m.open_time >= t:
            return i
    return -1


def compute_mae_mfe(entry_price: float, is_long: bool, minutes: Sequence[Candle]) -> Tuple[float, float]:
    """最大不利 / 有利偏移（比例，>= 0）"""
    _require_path(minutes, entry_price, "compute_mae_mfe")

    mae = 0.0
    mfe = 0.0
    for m in minutes:
        if is_long:
            adverse = (entry_price - m.low) / entry_price
            favorable = (m.high - entry_price) / entry_price
        else:
            adverse = (m.high - entry_price) / entry_price
            favorable = (entry_price - m.low) / entry_price
        mae = max(mae, adverse)
        mfe = max(mfe, favorable)
    return mae, mfe
