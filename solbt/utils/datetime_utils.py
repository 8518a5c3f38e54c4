#!filepath: solbt/utils/datetime_utils.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone, time, date
from typing import Union
from zoneinfo import ZoneInfo

from solbt.utils.errors import TimeContractError, UserInputError


class DateTimeUtils:
    NY_TZ = ZoneInfo("America/New_York")
    UTC = timezone.utc

    # ================================================================
    # UTC 契约
    # ================================================================
    @classmethod
    def is_utc(cls, dt_: datetime) -> bool:
        """
        aware + offset 0 + tzname == "UTC"
        （Europe/London 冬令时 offset 也是 0，但 tzname 是 GMT，不接受）
        """
        if not isinstance(dt_, datetime) or dt_.tzinfo is None:
            return False
        if dt_.utcoffset() != timedelta(0):
            return False
        return dt_.tzname() == "UTC"

    @classmethod
    def require_utc(cls, dt_: datetime, name: str, who: str = "time") -> datetime:
        if not isinstance(dt_, datetime):
            raise TimeContractError(f"[{who}] {name} must be datetime, got {type(dt_).__name__}.")
        if dt_.tzinfo is None:
            raise TimeContractError(f"[{who}] {name} must be UTC, got naive datetime {dt_.isoformat()}.")
        if not cls.is_utc(dt_):
            raise TimeContractError(
                f"[{who}] {name} must be UTC, got tz={dt_.tzname()} t={dt_.isoformat()}."
            )
        if dt_.replace(tzinfo=None) == datetime.min:
            raise TimeContractError(f"[{who}] {name} is default (datetime.min).")
        return dt_

    # ================================================================
    # 本地时间（America/New_York）
    # ================================================================
    @classmethod
    def to_local(cls, dt_: datetime) -> datetime:
        return dt_.astimezone(cls.NY_TZ)

    @classmethod
    def local_date(cls, dt_: datetime) -> date:
        return cls.to_local(dt_).date()

    @classmethod
    def local_to_utc(cls, d: date, hour: int, minute: int = 0) -> datetime:
        local = datetime.combine(d, time(hour, minute), tzinfo=cls.NY_TZ)
        return local.astimezone(cls.UTC)

    @classmethod
    def utc_day_start(cls, d: date) -> datetime:
        return datetime(d.year, d.month, d.day, tzinfo=cls.UTC)

    # ================================================================
    # parse_utc() 用于 CLI / YAML 输入
    # ================================================================
    @classmethod
    def parse_utc(cls, ts: Union[int, str, datetime]) -> datetime:
        """
        输入可能为：
            "2024-03-08T13:00:00Z"
            "2024-03-08 13:00:00"          # naive -> 视为 UTC
            1709902800                     # 秒
            1709902800000                  # 毫秒
        """
        if isinstance(ts, datetime):
            return ts.astimezone(cls.UTC) if ts.tzinfo else ts.replace(tzinfo=cls.UTC)

        if isinstance(ts, int):
            s = str(ts)
            if len(s) == 10:
                return datetime.fromtimestamp(ts, cls.UTC)
            if len(s) == 13:
                return datetime.fromtimestamp(ts / 1000, cls.UTC)
            raise UserInputError(f"无法识别的整数时间戳: {ts}")

        if isinstance(ts, str):
            s = ts.strip()
            if s.endswith("Z"):
                s = s[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(s)
            except ValueError as e:
                raise UserInputError(f"无法解析时间字符串: {ts}") from e
            return cls.parse_utc(parsed)

        raise UserInputError(f"不支持的时间类型: {type(ts)}")

    @classmethod
    def parse_date(cls, s: Union[str, date]) -> date:
        if isinstance(s, datetime):
            return s.date()
        if isinstance(s, date):
            return s
        try:
            return date.fromisoformat(str(s).strip())
        except ValueError as e:
            raise UserInputError(f"无法解析日期: {s}") from e
