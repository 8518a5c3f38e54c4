# solbt/backtest/report.py
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from solbt import logs
from solbt.backtest.metrics import MetricsPipeline
from solbt.backtest.result import BacktestResult


class Report(ABC):
    """
    Report (FINAL / FROZEN)

    BacktestResult -> side effects (files, figures)

    Reports 只读 BacktestResult，不改变回测 / metrics；
    删除 report 不影响可复现性。
    """

    @abstractmethod
    def render(self, result: BacktestResult) -> None:
        ...


def trades_frame(result: BacktestResult) -> pd.DataFrame:
    df = pd.DataFrame(result.trades_as_dicts())
    if not df.empty:
        df.insert(0, "run_id", result.run_id)
    return df


class TradesReport(Report):
    """.csv -> CSV；.parquet -> parquet（pyarrow）"""

    def __init__(self, output_path):
        self._path = Path(output_path)

    def render(self, result: BacktestResult) -> None:
        if not result.report.trades:
            logs.info(f"[report] {result.run_id}: no trades, skip {self._path.name}")
            return

        df = trades_frame(result)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if self._path.suffix == ".parquet":
            df.to_parquet(self._path, index=False, engine="pyarrow")
        else:
            df.to_csv(self._path, index=False)
        logs.info(f"[report] {result.run_id}: trades={len(df)} -> {self._path}")


class MetricsReport(Report):
    def __init__(self, output_path, pipeline: MetricsPipeline | None = None):
        self._path = Path(output_path)
        self._pipeline = pipeline or MetricsPipeline.default()

    def render(self, result: BacktestResult) -> None:
        payload = {
            "run_id": result.run_id,
            "policy": result.policy_name,
            "margin_mode": result.margin_mode,
            "use_stop_loss": result.use_stop_loss,
            "use_anti_direction": result.use_anti_direction,
            "trades_by_source": result.report.trades_by_source,
            "metrics": self._pipeline.compute(result),
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w") as f:
            json.dump(payload, f, indent=2)


class EquityCurveReport(Report):
    """每个 bucket 的 equity_after 曲线（含 withdrawn 累计）"""

    def __init__(self, output_path):
        self._path = Path(output_path)

    def render(self, result: BacktestResult) -> None:
        df = trades_frame(result)
        if df.empty:
            return

        plt.figure(figsize=(10, 4))
        for bucket, g in df.groupby("bucket"):
            plt.plot(g["exit_time"].dt.tz_convert(None), g["equity_after"], label=bucket)
        plt.title(f"Equity: {result.run_id}")
        plt.xlabel("Time")
        plt.ylabel("Equity")
        plt.legend()
        plt.tight_layout()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(self._path)
        plt.close()


class ReportPipeline:
    def __init__(self, reports: list[Report]):
        self._reports = reports

    @classmethod
    def for_directory(cls, out_dir, run_id: str, trades_format: str = "csv") -> "ReportPipeline":
        out = Path(out_dir)
        return cls([
            TradesReport(out / f"{run_id}_trades.{trades_format}"),
            MetricsReport(out / f"{run_id}_metrics.json"),
            EquityCurveReport(out / f"{run_id}_equity.png"),
        ])

    def render_all(self, result: BacktestResult):
        for r in self._reports:
            r.render(result)
