# solbt/time/windowing.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional

from solbt.time.types import (
    SETTLEMENT_SAFETY_MARGIN,
    SettlementInstant,
    TradingEntry,
    _issue_trading_entry,
    require_utc,
)
from solbt.utils.datetime_utils import DateTimeUtils
from solbt.utils.errors import TimeContractError


class NyWindowing:
    """
    NyWindowing（FINAL / FROZEN）

    唯一职责：
      - 定义“合法交易入口”（NY 早盘窗口，非周末）
      - 定义 baseline exit（settlement instant）

    DST 一律在目标日期的本地 12:00 判断，避免 02:00 切换点的歧义。
    """

    NY_TZ = DateTimeUtils.NY_TZ
    MORNING_HOUR_DST = 8
    MORNING_HOUR_STD = 7

    # --------------------------------------------------
    @classmethod
    def is_dst_at_local_noon(cls, d: date) -> bool:
        noon = datetime.combine(d, time(12, 0), tzinfo=cls.NY_TZ)
        return bool(noon.dst())

    @classmethod
    def morning_hour_local(cls, d: date) -> int:
        return cls.MORNING_HOUR_DST if cls.is_dst_at_local_noon(d) else cls.MORNING_HOUR_STD

    @classmethod
    def is_weekend_local(cls, t: datetime) -> bool:
        require_utc(t, "t", who="windowing")
        return DateTimeUtils.to_local(t).weekday() >= 5

    @classmethod
    def is_morning_window_local(cls, t: datetime) -> bool:
        require_utc(t, "t", who="windowing")
        local = DateTimeUtils.to_local(t)
        if local.minute or local.second or local.microsecond:
            return False
        return local.hour == cls.morning_hour_local(local.date())

    # --------------------------------------------------
    # 唯一合法的 TradingEntry 工厂
    # --------------------------------------------------
    @classmethod
    def try_make_trading_entry(cls, t: datetime) -> Optional[TradingEntry]:
        require_utc(t, "t", who="windowing")
        if cls.is_weekend_local(t):
            return None
        if not cls.is_morning_window_local(t):
            return None
        return _issue_trading_entry(t)

    @classmethod
    def make_trading_entry_or_fail(cls, t: datetime) -> TradingEntry:
        require_utc(t, "t", who="windowing")
        local = DateTimeUtils.to_local(t)

        if cls.is_weekend_local(t):
            raise TimeContractError(
                f"[windowing] weekend entry is not a trading entry: "
                f"utc={t.isoformat()}, local={local.isoformat()} ({local.strftime('%A')})."
            )

        if not cls.is_morning_window_local(t):
            raise TimeContractError(
                f"[windowing] entry is outside NY morning window: utc={t.isoformat()}, "
                f"local={local.isoformat()}, expected local hour="
                f"{cls.morning_hour_local(local.date())}:00."
            )

        return _issue_trading_entry(t)

    # --------------------------------------------------
    # Settlement / baseline exit
    # --------------------------------------------------
    @classmethod
    def compute_settlement_instant(cls, entry: TradingEntry) -> SettlementInstant:
        """
        entry 本地日期 +1 天（周五 +3 天 -> 周一），
        目标日期早盘小时（按目标日 DST），减 2 分钟，转 UTC。
        """
        if not isinstance(entry, TradingEntry):
            raise TypeError(f"entry must be TradingEntry, got {type(entry).__name__}")

        local = DateTimeUtils.to_local(entry.value)
        days_to_add = 3 if local.weekday() == 4 else 1
        exit_date = local.date() + timedelta(days=days_to_add)

        morning = DateTimeUtils.local_to_utc(exit_date, cls.morning_hour_local(exit_date))
        exit_utc = morning - SETTLEMENT_SAFETY_MARGIN

        if exit_utc <= entry.value:
            raise TimeContractError(
                f"[windowing] settlement must be strictly after entry: "
                f"entry={entry.value.isoformat()}, exit={exit_utc.isoformat()}."
            )

        return SettlementInstant(exit_utc)

    @classmethod
    def try_compute_settlement_instant(cls, t: datetime) -> Optional[SettlementInstant]:
        """
        周末 -> None（expected exclusion）。
        非周末但非早盘 -> 硬错误（不是合法入口却被拿来算 settlement）。
        """
        require_utc(t, "t", who="windowing")
        if cls.is_weekend_local(t):
            return None
        return cls.compute_settlement_instant(cls.make_trading_entry_or_fail(t))

    @classmethod
    def settlement_of(cls, t: datetime) -> datetime:
        """utc -> settlement utc；t 必须是合法入口。"""
        return cls.compute_settlement_instant(cls.make_trading_entry_or_fail(t)).value
