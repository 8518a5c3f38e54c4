# solbt/time/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum

from solbt.utils.datetime_utils import DateTimeUtils
from solbt.utils.errors import TimeContractError

# 只有 windowing 工厂持有这个 token
_FACTORY_TOKEN = object()


def require_utc(dt_: datetime, name: str, who: str = "time") -> datetime:
    return DateTimeUtils.require_utc(dt_, name, who)


@dataclass(frozen=True, order=True)
class DayKey:
    """
    DayKey（FINAL / FROZEN）

    语义：
      - NY 本地日历日，规范化为该日期的 UTC 00:00
      - 只用于分组 / 比较，不参与任何价格路径计算
    """
    value: datetime

    def __post_init__(self):
        require_utc(self.value, "DayKey.value", who="day-key")
        v = self.value
        if v.hour or v.minute or v.second or v.microsecond:
            raise TimeContractError(f"[day-key] must be a UTC day start, got {v.isoformat()}.")

    @classmethod
    def of(cls, t: datetime) -> "DayKey":
        require_utc(t, "t", who="day-key")
        return cls(DateTimeUtils.utc_day_start(DateTimeUtils.local_date(t)))

    @classmethod
    def from_date(cls, d: date) -> "DayKey":
        return cls(DateTimeUtils.utc_day_start(d))

    @property
    def date(self) -> date:
        return self.value.date()

    def __str__(self) -> str:
        return self.value.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class TradingEntry:
    """
    TradingEntry（FINAL / FROZEN）

    不变量：
      - UTC、非 default
      - NY 本地非周末
      - NY 本地早盘窗口（DST: 08:00，否则 07:00），分/秒/微秒为 0

    只能通过 NyWindowing.try_make_trading_entry / make_trading_entry_or_fail 构造。
    """
    value: datetime
    _token: object = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self._token is not _FACTORY_TOKEN:
            raise TypeError(
                "TradingEntry cannot be constructed directly; "
                "use NyWindowing.try_make_trading_entry / make_trading_entry_or_fail."
            )

    @property
    def day_key(self) -> DayKey:
        return DayKey.of(self.value)

    def __str__(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class SettlementInstant:
    """Baseline exit: 下一个早盘窗口（周五 -> 周一）减去安全边际。"""
    value: datetime

    def __post_init__(self):
        require_utc(self.value, "SettlementInstant.value", who="settlement")

    @property
    def day_key(self) -> DayKey:
        return DayKey.of(self.value)


@dataclass(frozen=True, order=True)
class TrainBoundary:
    """
    Train / OOS 边界：按 settlement 的 day key 比较（<= boundary -> Train）。
    """
    day_key: DayKey

    @classmethod
    def from_date(cls, d: date) -> "TrainBoundary":
        return cls(DayKey.from_date(d))

    def __str__(self) -> str:
        return str(self.day_key)


class SplitClass(str, Enum):
    TRAIN = "train"
    OOS = "oos"
    EXCLUDED = "excluded"


SETTLEMENT_SAFETY_MARGIN = timedelta(minutes=2)


def _issue_trading_entry(t: datetime) -> TradingEntry:
    # 绕过 __init__；replace() / 直接构造都拿不到 token
    entry = object.__new__(TradingEntry)
    object.__setattr__(entry, "value", t)
    object.__setattr__(entry, "_token", _FACTORY_TOKEN)
    return entry
