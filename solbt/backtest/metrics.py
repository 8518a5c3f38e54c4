# solbt/backtest/metrics.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List

import numpy as np

from solbt.backtest.result import BacktestResult


class MetricsCollector(ABC):
    """
    MetricsCollector (FINAL)

    BacktestResult -> metrics dict

    Metrics 是 BacktestResult 的纯函数，不影响回测执行。
    """

    @abstractmethod
    def compute(self, result: BacktestResult) -> Dict[str, float]:
        ...


class SummaryMetrics(MetricsCollector):
    """PnlReport 里已经算好的汇总值，原样带出"""

    def compute(self, result: BacktestResult) -> Dict[str, float]:
        r = result.report
        return {
            "total_pnl_pct": r.total_pnl_pct,
            "max_dd_pct": r.max_dd_pct,
            "withdrawn_total": round(r.withdrawn_total, 2),
            "had_liquidation": float(r.had_liquidation),
            "account_dead": float(r.account_dead),
        }


class TradeMetrics(MetricsCollector):
    def compute(self, result: BacktestResult) -> Dict[str, float]:
        trades = result.report.trades
        if not trades:
            return {
                "n_trades": 0.0,
                "win_rate": 0.0,
                "avg_net_return_pct": 0.0,
                "n_liquidations": 0.0,
                "total_commission": 0.0,
            }

        net = np.array([t.net_return_pct for t in trades], dtype=float)
        liq = np.array([t.is_liquidated for t in trades], dtype=bool)
        comm = np.array([t.commission for t in trades], dtype=float)

        return {
            "n_trades": float(len(trades)),
            "win_rate": float(np.mean(net > 0.0)),
            "avg_net_return_pct": float(np.mean(net)),
            "n_liquidations": float(np.sum(liq)),
            "total_commission": float(np.sum(comm)),
        }


class BucketDrawdownMetrics(MetricsCollector):
    """
    每个 bucket 的 equity_after 曲线上的最大回撤（比例）。
    与 ledger 的 max_dd 不同：这里不含 withdrawn，只看仓内权益。
    """

    def compute(self, result: BacktestResult) -> Dict[str, float]:
        curves: Dict[str, List[float]] = {}
        starts = {s.name: s.start_capital for s in result.report.bucket_snapshots}
        for t in result.report.trades:
            curves.setdefault(t.bucket, [starts.get(t.bucket, 0.0)]).append(t.equity_after)

        out: Dict[str, float] = {}
        for name, curve in curves.items():
            eq = np.array(curve, dtype=float)
            peak = np.maximum.accumulate(eq)
            dd = np.where(peak > 0.0, (peak - eq) / np.where(peak > 0.0, peak, 1.0), 0.0)
            out[f"equity_dd_{name}"] = float(np.max(dd))
        return out


class MetricsPipeline:
    def __init__(self, collectors: list[MetricsCollector]):
        self._collectors = collectors

    @classmethod
    def default(cls) -> "MetricsPipeline":
        return cls([SummaryMetrics(), TradeMetrics(), BucketDrawdownMetrics()])

    def compute(self, result: BacktestResult) -> Dict[str, float]:
        metrics = {}
        for c in self._collectors:
            metrics.update(c.compute(result))
        return metrics
