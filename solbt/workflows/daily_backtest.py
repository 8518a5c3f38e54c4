#!filepath: solbt/workflows/daily_backtest.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from solbt import logs
from solbt.analytics.row_builder import DailyInputs, ForwardRow, ForwardRowBuilder
from solbt.backtest.result import BacktestResult
from solbt.backtest.runner import BacktestRunner
from solbt.candles.candle import Candle
from solbt.candles.gaps import KnownGapRegistry
from solbt.config.app_config import AppConfig
from solbt.data.records import BacktestRecord


@dataclass(frozen=True)
class DailyBacktestWorkflow:
    """
    AppConfig -> 各组件的唯一装配入口

      log       -> 全局 logs
      min_move  -> ForwardRowBuilder（MinMoveConfig）
      backtest  -> BacktestRunner（symbol 同时用于 gap 对账）
    """
    cfg: AppConfig
    registry: KnownGapRegistry

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        registry: Optional[KnownGapRegistry] = None,
        configure_logging: bool = True,
    ) -> "DailyBacktestWorkflow":
        cfg = AppConfig.load(path)
        return cls.from_config(cfg, registry, configure_logging)

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        registry: Optional[KnownGapRegistry] = None,
        configure_logging: bool = True,
    ) -> "DailyBacktestWorkflow":
        if configure_logging:
            logs.apply(cfg.log)
        return cls(cfg, registry if registry is not None else KnownGapRegistry.default())

    @property
    def symbol(self) -> str:
        return self.cfg.backtest.symbol

    def row_builder(self) -> ForwardRowBuilder:
        return ForwardRowBuilder(
            self.cfg.min_move.to_engine_config(),
            registry=self.registry,
            symbol=self.symbol,
        )

    def runner(self) -> BacktestRunner:
        return BacktestRunner(self.cfg.backtest)

    def build_rows(self, days: Sequence[DailyInputs], minutes: Sequence[Candle]) -> List[ForwardRow]:
        return self.row_builder().build(days, minutes)

    def run(self, records: Sequence[BacktestRecord]) -> List[BacktestResult]:
        logs.info(f"[workflow] {self.cfg.backtest.name} symbol={self.symbol} records={len(records)}")
        return self.runner().run(records)


if __name__ == "__main__":
    # python -m solbt.workflows.daily_backtest
    wf = DailyBacktestWorkflow.load()
    logs.info(f"[workflow] min_move={wf.row_builder().config}")
