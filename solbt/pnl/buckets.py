# solbt/pnl/buckets.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from solbt.utils.errors import PipelineContractError, PriceContractError

_PEAK_EPS = 1e-9


class MarginMode(str, Enum):
    ISOLATED = "isolated"
    CROSS = "cross"


@dataclass(frozen=True)
class BucketSnapshot:
    name: str
    start_capital: float
    equity_now: float
    withdrawn: float
    max_dd: float
    is_dead: bool


class CapitalBucket:
    """
    CapitalBucket（可变状态，仅由 BucketLedger.apply_trade 修改）

    visible equity = equity + withdrawn；drawdown 相对 visible 的历史峰值。
    """

    __slots__ = ("name", "base_capital", "equity", "peak_visible", "max_dd", "withdrawn", "is_dead")

    def __init__(self, name: str, base_capital: float):
        if not name or not name.strip():
            raise ValueError("bucket name must not be empty")
        if base_capital < 0.0:
            raise ValueError(f"bucket '{name}': base_capital must be non-negative")
        self.name = name
        self.base_capital = base_capital
        self.equity = base_capital
        self.peak_visible = base_capital
        self.max_dd = 0.0
        self.withdrawn = 0.0
        self.is_dead = False

    @property
    def visible_equity(self) -> float:
        return self.equity + self.withdrawn

    def snapshot(self) -> BucketSnapshot:
        return BucketSnapshot(
            name=self.name,
            start_capital=self.base_capital,
            equity_now=self.equity,
            withdrawn=self.withdrawn,
            max_dd=self.max_dd,
            is_dead=self.is_dead,
        )

    def __repr__(self) -> str:
        return (
            f"CapitalBucket(name={self.name!r}, base={self.base_capital}, equity={self.equity}, "
            f"withdrawn={self.withdrawn}, max_dd={self.max_dd:.4f}, dead={self.is_dead})"
        )


class BucketLedger:
    """
    BucketLedger（FINAL）

    唯一写入口：apply_trade()
      - ISOLATED：强平损失 margin + commission，equity <= 0 才死
      - CROSS：强平或 equity <= 0 -> 清零死亡，且整个账户死亡
      - 存活且 equity > base：超出部分计入 withdrawn，equity 回到 base（不复利）
    """

    def __init__(self, mode: MarginMode, buckets: Iterable[CapitalBucket]):
        self.mode = MarginMode(mode)
        self._buckets: Dict[str, CapitalBucket] = {}
        for b in buckets:
            key = b.name.lower()
            if key in self._buckets:
                raise ValueError(f"duplicate bucket '{b.name}'")
            self._buckets[key] = b
        self._account_dead = False

    @classmethod
    def from_config(cls, mode: MarginMode, pnl_cfg) -> "BucketLedger":
        return cls(
            mode,
            [
                CapitalBucket(name, pnl_cfg.total_capital * b.share)
                for name, b in pnl_cfg.buckets.items()
            ],
        )

    # --------------------------------------------------
    def bucket(self, name: str) -> CapitalBucket:
        b = self._buckets.get(name.lower())
        if b is None:
            raise PipelineContractError(f"[pnl] unknown bucket '{name}'.")
        return b

    @property
    def buckets(self) -> List[CapitalBucket]:
        return list(self._buckets.values())

    @property
    def is_account_dead(self) -> bool:
        return self._account_dead

    @property
    def total_equity(self) -> float:
        return sum(b.equity for b in self._buckets.values())

    @property
    def total_base_capital(self) -> float:
        return sum(b.base_capital for b in self._buckets.values())

    @property
    def total_withdrawn(self) -> float:
        return sum(b.withdrawn for b in self._buckets.values())

    @property
    def max_dd(self) -> float:
        return max((b.max_dd for b in self._buckets.values()), default=0.0)

    def snapshots(self) -> List[BucketSnapshot]:
        return [b.snapshot() for b in self._buckets.values()]

    # --------------------------------------------------
    def margin_for(self, bucket: CapitalBucket, position_fraction: float) -> Optional[float]:
        """
        margin = min(base * fraction, equity)
        equity <= 0（或 fraction == 0）-> None：拒绝开仓
        """
        if position_fraction < 0.0:
            raise PriceContractError(f"[pnl] position_fraction must be >= 0, got {position_fraction}.")
        target = bucket.base_capital * position_fraction
        if target <= 0.0 or bucket.equity <= 0.0:
            return None
        return min(target, bucket.equity)

    def apply_trade(
        self,
        bucket: CapitalBucket,
        margin_used: float,
        pnl: float,
        commission: float,
        liquidated: bool,
    ) -> bool:
        """
        返回：本笔是否导致 bucket 死亡
        """
        if bucket.is_dead:
            raise PipelineContractError(f"[pnl] bucket '{bucket.name}' is dead; trade must not reach ledger.")
        if margin_used < 0.0:
            raise PriceContractError(f"[pnl] margin_used must be non-negative, got {margin_used}.")

        died = False

        if self.mode is MarginMode.CROSS:
            if liquidated:
                new_equity = 0.0
                died = True
            else:
                new_equity = bucket.equity + pnl - commission
                if new_equity <= 0.0:
                    new_equity = 0.0
                    died = True
        else:
            if liquidated:
                new_equity = max(bucket.equity - margin_used - commission, 0.0)
            else:
                new_equity = bucket.equity + pnl - commission
            if new_equity <= 0.0:
                new_equity = 0.0
                died = True

        if not died and new_equity > bucket.base_capital:
            bucket.withdrawn += new_equity - bucket.base_capital
            new_equity = bucket.base_capital

        bucket.equity = new_equity
        if died:
            bucket.is_dead = True

        visible = bucket.visible_equity
        if visible > bucket.peak_visible:
            bucket.peak_visible = visible
        if bucket.peak_visible > _PEAK_EPS:
            dd = (bucket.peak_visible - visible) / bucket.peak_visible
            if dd > bucket.max_dd:
                bucket.max_dd = dd

        if died:
            if self.mode is MarginMode.CROSS:
                self._account_dead = True
            elif all(b.is_dead for b in self._buckets.values() if b.base_capital > 0.0):
                self._account_dead = True

        return died
