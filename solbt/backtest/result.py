# solbt/backtest/result.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from solbt.pnl.engine import PnlReport


@dataclass(frozen=True)
class BacktestResult:
    """
    BacktestResult (FINAL / FROZEN)

    不可变事实结果，用于：
      - 结果回放
      - 回归测试
      - Metrics 派生
    """

    # -----------------------
    # Run identity
    # -----------------------
    name: str
    policy_name: str
    margin_mode: str          # isolated / cross
    use_stop_loss: bool
    use_anti_direction: bool
    prediction_mode: str

    # -----------------------
    # Facts
    # -----------------------
    report: PnlReport
    n_records: int

    @property
    def run_id(self) -> str:
        sl = "sl" if self.use_stop_loss else "nosl"
        ad = "antid" if self.use_anti_direction else "plain"
        return f"{self.policy_name}-{self.margin_mode}-{sl}-{ad}"

    def trades_as_dicts(self) -> List[Dict[str, Any]]:
        return [t.to_dict() for t in self.report.trades]
