# solbt/pnl/engine.py
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from solbt import logs
from solbt.candles.candle import Candle
from solbt.candles.gaps import KnownGapRegistry, ensure_window_contiguous
from solbt.candles.series_guards import SeriesGuards
from solbt.config.pnl_config import PnlConfig
from solbt.data.records import BacktestRecord, DelayedIntradayResult
from solbt.pnl.anti_direction import AntiDirectionOverlay, AntiDirectionStats
from solbt.pnl.buckets import BucketLedger, BucketSnapshot, MarginMode
from solbt.pnl.direction import Direction, PredictionMode, resolve_direction
from solbt.pnl.exit_scan import (
    ExitHit,
    ExitReason,
    compute_mae_mfe,
    find_first_hit_or_fail,
    first_minute_index_at_or_after,
    try_hit_daily_exit,
)
from solbt.pnl.leverage_policies import LeveragePolicy
from solbt.pnl.liquidation import LiquidationMath
from solbt.pnl.skip_rules import TradeSkipRules
from solbt.pnl.trade import PnLTrade
from solbt.time.windowing import NyWindowing
from solbt.utils.errors import LeverageConfigError, PipelineContractError

DAILY_SOURCE = "Daily"
DAILY_BUCKET = "daily"
DELAYED_BUCKET = "delayed"


@dataclass(frozen=True)
class PnlReport:
    """
    PnlReport（FINAL / FROZEN）

    单次 run 的全部输出；run 要么完整产出，要么抛错中止。
    """
    trades: List[PnLTrade]
    total_pnl_pct: float
    max_dd_pct: float
    trades_by_source: Dict[str, int]
    withdrawn_total: float
    bucket_snapshots: List[BucketSnapshot]
    had_liquidation: bool
    account_dead: bool = False
    counters: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "PnlReport":
        return cls(
            trades=[],
            total_pnl_pct=0.0,
            max_dd_pct=0.0,
            trades_by_source={},
            withdrawn_total=0.0,
            bucket_snapshots=[],
            had_liquidation=False,
        )


class PnlEngine:
    """
    PnlEngine（单线程、确定性、严格升序单次遍历）

    架构不变量：
      - 方向 / skip / 杠杆 / anti-direction 只读 causal
      - forward（day_minutes / entry_price / delayed facts）只用于模拟成交
      - 窗口 / 数据不一致不做 fallback，直接失败
      - 每次 run() 使用全新的 ledger，多个 run 之间没有共享可变状态
    """

    def __init__(
        self,
        config: PnlConfig,
        policy: LeveragePolicy,
        margin_mode: MarginMode,
        registry: Optional[KnownGapRegistry] = None,
        symbol: str = "SOLUSDT",
    ):
        self._cfg = config
        self._registry = registry if registry is not None else KnownGapRegistry.default()
        self._symbol = symbol.strip().upper()
        self._policy = policy
        self._mode = MarginMode(margin_mode)
        self._prediction_mode = PredictionMode(config.prediction_mode)
        self._liq = LiquidationMath.from_config(config)
        self._skip = TradeSkipRules(config.skip)
        self._anti = AntiDirectionOverlay(config.anti_direction, self._liq)

    @property
    def policy(self) -> LeveragePolicy:
        return self._policy

    @property
    def margin_mode(self) -> MarginMode:
        return self._mode

    # ==================================================
    # public
    # ==================================================
    def run(self, records: Sequence[BacktestRecord]) -> PnlReport:
        if not records:
            return PnlReport.empty()

        for i, rec in enumerate(records):
            if not isinstance(rec, BacktestRecord):
                raise PipelineContractError(f"[pnl] records[{i}] is not a BacktestRecord: {type(rec).__name__}.")
        SeriesGuards.ensure_strictly_ascending_utc(records, lambda r: r.entry_utc, "pnl.records")

        run = _Run(self, BucketLedger.from_config(self._mode, self._cfg))

        for rec in records:
            if run.ledger.is_account_dead:
                break
            run.process(rec)

        report = run.finish()

        if self._cfg.use_anti_direction_overlay:
            run.anti_stats.log_summary(self._policy.name)

        logs.info(
            f"[pnl] policy={self._policy.name} mode={self._mode.value} "
            f"prediction={self._prediction_mode.value} trades={len(report.trades)} "
            f"total_pnl_pct={report.total_pnl_pct} max_dd_pct={report.max_dd_pct} "
            f"withdrawn={report.withdrawn_total:.2f} liq={report.had_liquidation} "
            f"dead={report.account_dead}"
        )
        return report


class _Run:
    """单次 run 的私有可变状态（ledger、计数器、成交列表）"""

    def __init__(self, engine: PnlEngine, ledger: BucketLedger):
        self.engine = engine
        self.cfg: PnlConfig = engine._cfg
        self.liq: LiquidationMath = engine._liq
        self.ledger = ledger
        self.trades: List[PnLTrade] = []
        self.by_source: Counter = Counter()
        self.counters: Counter = Counter()
        self.anti_stats = AntiDirectionStats()
        self.any_liquidation = False

    # --------------------------------------------------
    def _day_end(self, rec: BacktestRecord) -> datetime:
        causal = rec.causal
        expected = NyWindowing.compute_settlement_instant(causal.entry).value
        window_end = rec.forward.window_end

        if window_end <= causal.entry_utc:
            raise PipelineContractError(
                f"[pnl] forward.window_end <= entry at {causal.day_key}: "
                f"entry={causal.entry_utc.isoformat()}, window_end={window_end.isoformat()}."
            )
        if window_end != expected:
            raise PipelineContractError(
                f"[pnl] forward.window_end disagrees with baseline settlement at {causal.day_key}: "
                f"forward={window_end.isoformat()}, expected={expected.isoformat()}."
            )
        return expected

    def _day_minutes(self, rec: BacktestRecord, day_end: datetime) -> Sequence[Candle]:
        minutes = rec.forward.day_minutes
        entry_utc = rec.entry_utc

        if minutes[0].open_time != entry_utc:
            raise PipelineContractError(
                f"[pnl] forward.day_minutes[0].open_time != causal entry at {rec.day_key}: "
                f"first={minutes[0].open_time.isoformat()}, entry={entry_utc.isoformat()}."
            )
        if minutes[-1].open_time >= day_end:
            raise PipelineContractError(
                f"[pnl] forward.day_minutes extends past baseline window at {rec.day_key}: "
                f"last={minutes[-1].open_time.isoformat()}, window_end={day_end.isoformat()}."
            )
        ensure_window_contiguous(
            minutes, entry_utc, day_end, self.engine._symbol, self.engine._registry, tag="pnl"
        )
        return minutes

    def _resolve_leverage(self, rec: BacktestRecord) -> float:
        policy = self.engine.policy
        lev = policy.resolve_leverage(rec.causal)
        if lev is None or not math.isfinite(lev) or lev <= 0.0:
            raise LeverageConfigError(
                f"[pnl] leverage policy '{policy.name}' returned invalid lev={lev} at {rec.day_key}."
            )
        return lev

    # --------------------------------------------------
    def process(self, rec: BacktestRecord) -> None:
        causal = rec.causal
        forward = rec.forward

        day_end = self._day_end(rec)
        minutes = self._day_minutes(rec, day_end)
        day = causal.day_key.value

        direction = resolve_direction(causal, self.engine._prediction_mode)
        if direction is None:
            self.counters["skipped_no_direction"] += 1
            return

        if self.engine._skip.should_skip_day(causal, self.engine.policy):
            self.counters["skipped_by_rule"] += 1
            return

        lev = self._resolve_leverage(rec)

        anti_applied = False
        if self.cfg.use_anti_direction_overlay:
            self.anti_stats.record_check()
            if self.engine._anti.should_apply(causal, lev):
                self.anti_stats.record_applied(causal, lev)
                direction = direction.flipped()
                anti_applied = True

        # ===== DAILY =====
        sl_pct = self.cfg.daily_stop_pct if self.cfg.use_daily_stop_loss else 0.0
        daily_exit = try_hit_daily_exit(
            forward.entry_price,
            direction.is_long,
            self.cfg.daily_tp_pct,
            sl_pct,
            minutes,
            day_end,
        )
        self.register_trade(
            day=day,
            entry_time=causal.entry_utc,
            source=DAILY_SOURCE,
            bucket_name=DAILY_BUCKET,
            direction=direction,
            entry_price=forward.entry_price,
            exit_hit=daily_exit,
            leverage=lev,
            trade_minutes=minutes,
            anti_applied=anti_applied,
        )

        if self.ledger.is_account_dead:
            return

        # ===== DELAYED =====
        exec_facts = forward.delayed_execution
        if not causal.delayed_source or exec_facts is None:
            return

        executed_at = exec_facts.executed_at
        if executed_at < causal.entry_utc or executed_at >= day_end:
            raise PipelineContractError(
                f"[pnl] delayed executed_at={executed_at.isoformat()} is outside baseline window "
                f"{causal.entry_utc.isoformat()}..{day_end.isoformat()}."
            )

        start_idx = first_minute_index_at_or_after(minutes, executed_at)
        if start_idx < 0:
            raise PipelineContractError(
                f"[pnl] no 1m candles for delayed window starting {executed_at.isoformat()}."
            )
        delayed_minutes = minutes[start_idx:]

        d_entry = exec_facts.entry_price
        is_long = direction.is_long
        result = exec_facts.intraday_result

        if result is DelayedIntradayResult.TP_FIRST:
            tp_pct = causal.get_delayed_tp_pct_or_throw()
            tp = d_entry * (1.0 + tp_pct) if is_long else d_entry * (1.0 - tp_pct)
            t, i = find_first_hit_or_fail(delayed_minutes, is_long, ExitReason.TAKE_PROFIT, tp)
            delayed_exit = ExitHit(tp, t, i, ExitReason.TAKE_PROFIT)
        elif result is DelayedIntradayResult.SL_FIRST and self.cfg.use_delayed_intraday_stops:
            sl_pct_d = causal.get_delayed_sl_pct_or_throw()
            sl = d_entry * (1.0 - sl_pct_d) if is_long else d_entry * (1.0 + sl_pct_d)
            t, i = find_first_hit_or_fail(delayed_minutes, is_long, ExitReason.STOP_LOSS, sl)
            delayed_exit = ExitHit(sl, t, i, ExitReason.STOP_LOSS)
        else:
            delayed_exit = ExitHit(
                delayed_minutes[-1].close, day_end, len(delayed_minutes) - 1, ExitReason.CLOSE
            )

        self.register_trade(
            day=day,
            entry_time=executed_at,
            source="DelayedA" if causal.delayed_source == "A" else "DelayedB",
            bucket_name=DELAYED_BUCKET,
            direction=direction,
            entry_price=d_entry,
            exit_hit=delayed_exit,
            leverage=lev,
            trade_minutes=delayed_minutes,
            anti_applied=anti_applied,
        )

    # --------------------------------------------------
    def register_trade(
        self,
        *,
        day: datetime,
        entry_time: datetime,
        source: str,
        bucket_name: str,
        direction: Direction,
        entry_price: float,
        exit_hit: ExitHit,
        leverage: float,
        trade_minutes: Sequence[Candle],
        anti_applied: bool,
    ) -> Optional[PnLTrade]:
        if self.ledger.is_account_dead:
            return None

        bucket = self.ledger.bucket(bucket_name)
        if bucket.is_dead:
            self.counters["skipped_bucket_dead"] += 1
            return None

        fraction = self.cfg.buckets[bucket.name].position_fraction
        margin = self.ledger.margin_for(bucket, fraction)
        if margin is None:
            self.counters["rejected_no_margin"] += 1
            logs.debug(f"[pnl] {source} rejected at {day.date()}: bucket '{bucket.name}' has no margin.")
            return None

        is_long = direction.is_long
        liq_theory = self.liq.theoretical_price(entry_price, is_long, leverage)
        liq_backtest = self.liq.conservative_price(entry_price, is_long, leverage)

        # 强平只在持仓期间（<= 出场 bar）才算数
        held = trade_minutes[: exit_hit.index + 1]
        liq_hit, liq_time = self.liq.check(entry_price, is_long, leverage, held)

        if liq_hit:
            liq_idx = next(i for i, m in enumerate(held) if m.open_time == liq_time)
            exit_hit = ExitHit(liq_backtest, liq_time, liq_idx, ExitReason.LIQUIDATION)
            final_exit, price_liquidated = liq_backtest, True
        else:
            final_exit, price_liquidated = self.liq.cap_exit(entry_price, is_long, leverage, exit_hit.price)

        mae, mfe = compute_mae_mfe(entry_price, is_long, trade_minutes[: exit_hit.index + 1])

        if is_long:
            rel_move = (final_exit - entry_price) / entry_price
        else:
            rel_move = (entry_price - final_exit) / entry_price

        notional = margin * leverage
        pnl = rel_move * leverage * margin
        commission = notional * self.cfg.commission_rate * 2.0

        died = self.ledger.apply_trade(bucket, margin, pnl, commission, price_liquidated)
        if price_liquidated or died:
            self.any_liquidation = True

        trade = PnLTrade(
            day=day,
            entry_time=entry_time,
            exit_time=exit_hit.time,
            source=source,
            bucket=bucket.name,
            is_long=is_long,
            entry_price=entry_price,
            exit_price=final_exit,
            exit_reason=exit_hit.reason.value,
            margin_used=margin,
            leverage_used=leverage,
            gross_return_pct=round(rel_move * 100.0, 4),
            net_return_pct=round((pnl - commission) / margin * 100.0, 4),
            commission=round(commission, 4),
            equity_after=round(bucket.equity, 2),
            is_liquidated=price_liquidated or died,
            is_real_liquidation=price_liquidated,
            liq_price=liq_theory,
            liq_price_backtest=liq_backtest,
            max_adverse_pct=round(mae * 100.0, 4),
            max_favorable_pct=round(mfe * 100.0, 4),
            anti_direction_applied=anti_applied,
        )

        self.trades.append(trade)
        self.by_source[source] += 1
        return trade

    # --------------------------------------------------
    def finish(self) -> PnlReport:
        # 收益基准是各 bucket 实际持有的资金（shares 之和可以 < 1）
        base_total = self.ledger.total_base_capital
        final_total = self.ledger.total_equity + self.ledger.total_withdrawn
        pnl_pct = (final_total - base_total) / base_total * 100.0 if base_total > 0.0 else 0.0

        counters = dict(self.counters)
        counters.update(self.anti_stats.as_dict())

        return PnlReport(
            trades=list(self.trades),
            total_pnl_pct=round(pnl_pct, 2),
            max_dd_pct=round(self.ledger.max_dd * 100.0, 2),
            trades_by_source=dict(self.by_source),
            withdrawn_total=self.ledger.total_withdrawn,
            bucket_snapshots=self.ledger.snapshots(),
            had_liquidation=self.any_liquidation,
            account_dead=self.ledger.is_account_dead,
            counters=counters,
        )
