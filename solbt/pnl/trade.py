# solbt/pnl/trade.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class PnLTrade:
    """
    PnLTrade（FINAL / FROZEN）

    每笔成交只创建一次，之后不可变。
    百分比字段保留 4 位小数，equity_after 保留 2 位。
    """
    day: datetime
    entry_time: datetime
    exit_time: datetime
    source: str                 # Daily / DelayedA / DelayedB
    bucket: str                 # daily / delayed
    is_long: bool
    entry_price: float
    exit_price: float
    exit_reason: str
    margin_used: float
    leverage_used: float
    gross_return_pct: float
    net_return_pct: float
    commission: float
    equity_after: float
    is_liquidated: bool         # 价格强平 或 本笔导致 bucket 死亡
    is_real_liquidation: bool   # 价格层面触及 / 被截到 conservative 强平价
    liq_price: float            # theoretical
    liq_price_backtest: float   # conservative
    max_adverse_pct: float
    max_favorable_pct: float
    anti_direction_applied: bool = False

    @property
    def position_usd(self) -> float:
        return self.margin_used

    @property
    def notional(self) -> float:
        return self.margin_used * self.leverage_used

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
