# tests/backtest/test_runner.py
from __future__ import annotations

from datetime import date

import pytest

from solbt.backtest.runner import BacktestRunner
from solbt.config.backtest_config import BacktestConfig, PolicyConfig


@pytest.fixture
def week_records(make_record, week_entries):
    out = []
    for i, e in enumerate(week_entries):
        bars = [(100, 100, 100), (103.5, 99, 103)] if i % 2 == 0 else [(104, 94, 100)]
        out.append(make_record(e, bars, sl_prob=0.2, sl_high_decision=(i == 1)))
    return out


def _config(**kw) -> BacktestConfig:
    base = dict(
        name="t",
        policies=[
            PolicyConfig(name="const_2x", policy_type="const", leverage=2.0, margin_mode="cross"),
            PolicyConfig(name="ultra_safe", policy_type="ultra_safe", margin_mode="isolated"),
        ],
        max_workers=1,
    )
    base.update(kw)
    return BacktestConfig(**base)


def test_run_matrix(week_records):
    results = BacktestRunner(_config(compare_stop_loss=True, compare_anti_direction=True)).run(week_records)

    assert len(results) == 8
    ids = [r.run_id for r in results]
    assert len(set(ids)) == 8
    assert ids[0] == "const_2x-cross-sl-plain"
    assert ids[-1] == "ultra_safe-isolated-nosl-antid"
    assert all(r.n_records == 5 for r in results)


def test_single_run_uses_base_flags(week_records):
    results = BacktestRunner(_config()).run(week_records)
    assert [r.run_id for r in results] == ["const_2x-cross-sl-plain", "ultra_safe-isolated-sl-plain"]

    const, ultra = results
    assert len(const.report.trades) == 5
    # ultra_safe 跳过 sl_high_decision 的那天
    assert len(ultra.report.trades) == 4


def test_runs_do_not_share_ledgers(week_records):
    cfg = _config(policies=[
        PolicyConfig(name="a", policy_type="const", leverage=2.0),
        PolicyConfig(name="b", policy_type="const", leverage=2.0),
    ])
    a, b = BacktestRunner(cfg).run(week_records)
    assert a.report == b.report


def test_train_until_keeps_oos_only(week_records):
    # Mon 的 settlement 在 Tue（01-09）-> train；其余 OOS
    results = BacktestRunner(_config(train_until=date(2024, 1, 9))).run(week_records)
    assert all(r.n_records == 4 for r in results)
    assert results[0].report.trades[0].day.date() == date(2024, 1, 9)


def test_process_pool_matches_sequential(week_records):
    seq = BacktestRunner(_config(max_workers=1)).run(week_records)
    par = BacktestRunner(_config(max_workers=2)).run(week_records)
    assert [r.report for r in seq] == [r.report for r in par]
