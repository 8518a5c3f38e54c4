# solbt/pnl/skip_rules.py
from __future__ import annotations

from solbt.data.records import CausalPredictionRecord
from solbt.pnl.leverage_policies import LeveragePolicy, UltraSafePolicy


class TradeSkipRules:
    """
    TradeSkipRules（只读 causal）

    - day 层置信度 < min_conf_day -> skip
    - ultra_safe 策略：SL 层判高风险 或 下行 regime -> skip
    """

    def __init__(self, cfg):
        self._min_conf_day = cfg.min_conf_day
        self._ultra_safe_skip_risky = cfg.ultra_safe_skip_risky

    def should_skip_day(self, causal: CausalPredictionRecord, policy: LeveragePolicy) -> bool:
        if self._min_conf_day > 0.0 and causal.conf_day < self._min_conf_day:
            return True

        if self._ultra_safe_skip_risky and isinstance(policy, UltraSafePolicy):
            if causal.sl_high_decision is True or causal.regime_down:
                return True

        return False
