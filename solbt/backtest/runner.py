# solbt/backtest/runner.py
from __future__ import annotations

from dataclasses import dataclass
from itertools import product
from typing import List, Sequence, Tuple

from solbt import logs
from solbt.backtest.parallel import ParallelExecutor
from solbt.backtest.result import BacktestResult
from solbt.config.backtest_config import BacktestConfig, PolicyConfig
from solbt.config.pnl_config import PnlConfig
from solbt.data.records import BacktestRecord
from solbt.pnl.buckets import MarginMode
from solbt.pnl.engine import PnlEngine
from solbt.pnl.leverage_policies import PolicyFactory
from solbt.time.train_split import split_by_baseline_exit_strict
from solbt.time.types import TrainBoundary


@dataclass(frozen=True)
class RunSpec:
    """一个独立 run：策略 + 开关组合（可 pickle，供进程池使用）"""
    experiment: str
    policy: PolicyConfig
    pnl: PnlConfig
    records: Tuple[BacktestRecord, ...]
    symbol: str = "SOLUSDT"


def execute_run(spec: RunSpec) -> BacktestResult:
    policy = PolicyFactory.create(spec.policy)
    engine = PnlEngine(spec.pnl, policy, MarginMode(spec.policy.margin_mode), symbol=spec.symbol)
    report = engine.run(spec.records)
    return BacktestResult(
        name=spec.experiment,
        policy_name=policy.name,
        margin_mode=spec.policy.margin_mode,
        use_stop_loss=spec.pnl.use_daily_stop_loss,
        use_anti_direction=spec.pnl.use_anti_direction_overlay,
        prediction_mode=spec.pnl.prediction_mode,
        report=report,
        n_records=len(spec.records),
    )


class BacktestRunner:
    """
    BacktestRunner

    policies × (SL on/off) × (anti-D on/off) -> 独立 run 矩阵
      - 每个 run 自己的 ledger，互不影响
      - 配了 train_until：只在 OOS 记录上跑（按 settlement day key 严格切分）
    """

    def __init__(self, config: BacktestConfig):
        self._cfg = config

    def select_records(self, records: Sequence[BacktestRecord]) -> List[BacktestRecord]:
        if self._cfg.train_until is None:
            return list(records)

        boundary = TrainBoundary.from_date(self._cfg.train_until)
        _, oos = split_by_baseline_exit_strict(records, lambda r: r.entry_utc, boundary, self._cfg.name)
        return oos

    def build_specs(self, records: Sequence[BacktestRecord]) -> List[RunSpec]:
        base = self._cfg.pnl
        sl_options = [True, False] if self._cfg.compare_stop_loss else [base.use_daily_stop_loss]
        ad_options = [False, True] if self._cfg.compare_anti_direction else [base.use_anti_direction_overlay]

        frozen = tuple(records)
        specs = []
        for policy_cfg, use_sl, use_ad in product(self._cfg.policies, sl_options, ad_options):
            pnl = base.model_copy(update={
                "use_daily_stop_loss": use_sl,
                "use_anti_direction_overlay": use_ad,
            })
            specs.append(RunSpec(self._cfg.name, policy_cfg, pnl, frozen, self._cfg.symbol))
        return specs

    @logs.catch("backtest run failed")
    def run(self, records: Sequence[BacktestRecord]) -> List[BacktestResult]:
        selected = self.select_records(records)
        specs = self.build_specs(selected)

        logs.info(
            f"[runner] experiment={self._cfg.name} records={len(selected)} runs={len(specs)}"
        )

        results = ParallelExecutor.run(
            kind="pnl",
            items=specs,
            handler=execute_run,
            max_workers=self._cfg.max_workers,
        )

        for r in results:
            logs.info(
                f"[runner] {r.run_id}: pnl={r.report.total_pnl_pct}% dd={r.report.max_dd_pct}% "
                f"trades={len(r.report.trades)} liq={r.report.had_liquidation}"
            )
        return results
