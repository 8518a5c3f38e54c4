# tests/backtest/test_metrics_report.py
from __future__ import annotations

import json

import pandas as pd
import pytest

from solbt.backtest.metrics import BucketDrawdownMetrics, MetricsPipeline, TradeMetrics
from solbt.backtest.report import EquityCurveReport, MetricsReport, ReportPipeline, TradesReport
from solbt.backtest.runner import RunSpec, execute_run
from solbt.config.backtest_config import PolicyConfig
from solbt.config.pnl_config import PnlConfig


@pytest.fixture
def result(make_record, week_entries):
    records = (
        make_record(week_entries[0], [(100, 100, 100), (103.5, 99, 103)]),
        make_record(week_entries[1], [(104, 94, 100)]),
    )
    spec = RunSpec("t", PolicyConfig(name="c2", policy_type="const", leverage=2.0), PnlConfig(), records)
    return execute_run(spec)


@pytest.fixture
def empty_result():
    spec = RunSpec("t", PolicyConfig(name="c2", policy_type="const", leverage=2.0), PnlConfig(), ())
    return execute_run(spec)


def test_trade_metrics(result):
    m = TradeMetrics().compute(result)
    assert m["n_trades"] == 2.0
    assert m["win_rate"] == pytest.approx(0.5)
    assert m["avg_net_return_pct"] == pytest.approx((5.84 + (-1200 - 19.2) / 12000 * 100) / 2, abs=1e-3)
    assert m["n_liquidations"] == 0.0
    assert m["total_commission"] == pytest.approx(38.4)


def test_bucket_drawdown_from_equity_curve(result):
    m = BucketDrawdownMetrics().compute(result)
    # 12000 -> 12000（sweep）-> 10780.8
    assert m["equity_dd_daily"] == pytest.approx(0.1016)


def test_pipeline_merges_collectors(result, empty_result):
    m = MetricsPipeline.default().compute(result)
    assert {"total_pnl_pct", "max_dd_pct", "win_rate", "equity_dd_daily"} <= set(m)

    empty = MetricsPipeline.default().compute(empty_result)
    assert empty["n_trades"] == 0.0
    assert empty["total_pnl_pct"] == 0.0


@pytest.mark.parametrize("fmt", ["csv", "parquet"])
def test_trades_report(tmp_path, result, fmt):
    path = tmp_path / f"trades.{fmt}"
    TradesReport(path).render(result)

    df = pd.read_csv(path) if fmt == "csv" else pd.read_parquet(path)
    assert len(df) == 2
    assert list(df["exit_reason"]) == ["tp", "sl"]
    assert set(df["run_id"]) == {result.run_id}


def test_trades_report_skips_empty(tmp_path, empty_result):
    path = tmp_path / "trades.csv"
    TradesReport(path).render(empty_result)
    assert not path.exists()


def test_metrics_report_json(tmp_path, result):
    path = tmp_path / "m.json"
    MetricsReport(path).render(result)
    payload = json.loads(path.read_text())
    assert payload["policy"] == "c2"
    assert payload["trades_by_source"] == {"Daily": 2}
    assert payload["metrics"]["n_trades"] == 2.0


def test_report_pipeline_for_directory(tmp_path, result):
    ReportPipeline.for_directory(tmp_path / "out", result.run_id).render_all(result)
    names = sorted(p.name for p in (tmp_path / "out").iterdir())
    assert names == sorted([
        f"{result.run_id}_trades.csv",
        f"{result.run_id}_metrics.json",
        f"{result.run_id}_equity.png",
    ])


def test_equity_curve_report(tmp_path, result):
    path = tmp_path / "eq.png"
    EquityCurveReport(path).render(result)
    assert path.stat().st_size > 0
