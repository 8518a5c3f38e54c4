# solbt/pnl/leverage_policies.py
from __future__ import annotations

import math
from typing import Dict, Protocol, Type

from solbt.data.records import CausalPredictionRecord


class LeveragePolicy(Protocol):
    """
    LeveragePolicy Contract (Frozen)

    唯一职责：
      - CausalPredictionRecord -> leverage (> 0)
      - 只允许读 causal 字段（签名上就拿不到 forward）
    """

    name: str

    def resolve_leverage(self, causal: CausalPredictionRecord) -> float:
        ...


class ConstPolicy:
    def __init__(self, name: str, leverage: float):
        if not name or not name.strip():
            raise ValueError("policy name must not be empty")
        if leverage is None or not math.isfinite(leverage) or leverage <= 0.0:
            raise ValueError(f"policy '{name}': leverage must be > 0, got {leverage}")
        self.name = name
        self._lev = float(leverage)

    def resolve_leverage(self, causal: CausalPredictionRecord) -> float:
        return self._lev


class RiskAwarePolicy:
    """
    regime_down & sl_prob > 0.6 -> 1x
    regime_down                 -> 2x
    sl_prob > 0.6               -> 2x
    otherwise                   -> 5x

    SL 层必须在 PnL 之前算好；sl_prob 缺失是 pipeline bug。
    """
    SL_THRESH = 0.6
    LEV_MIN = 1.0
    LEV_SAFE = 2.0
    LEV_NORM = 5.0

    def __init__(self, name: str = "risk_aware"):
        self.name = name

    def resolve_leverage(self, causal: CausalPredictionRecord) -> float:
        sl_prob = causal.get_sl_prob_or_throw()
        risky = sl_prob > self.SL_THRESH

        if causal.regime_down and risky:
            return self.LEV_MIN
        if causal.regime_down or risky:
            return self.LEV_SAFE
        return self.LEV_NORM


class UltraSafePolicy:
    LEV = 3.0

    def __init__(self, name: str = "ultra_safe"):
        self.name = name

    def resolve_leverage(self, causal: CausalPredictionRecord) -> float:
        return self.LEV


class PolicyFactory:
    """
    PolicyFactory (FINAL / FROZEN)

    注册式 LeveragePolicy 构造器

    All policies must be explicitly registered in PolicyFactory._REGISTRY.
    Registration is centralized and static.
    """

    _REGISTRY: Dict[str, Type] = {
        "const": ConstPolicy,
        "risk_aware": RiskAwarePolicy,
        "ultra_safe": UltraSafePolicy,
    }

    # --------------------------------------------------
    @classmethod
    def create(cls, cfg) -> LeveragePolicy:
        """
        cfg: PolicyConfig 或等价 dict

        冻结规则：
          - policy_type 必须存在
          - 未注册 type -> crash
        """
        if not isinstance(cfg, dict):
            cfg = cfg.model_dump()

        if "policy_type" not in cfg:
            raise KeyError("[PolicyFactory] missing 'policy_type' in policy config")

        typ = cfg["policy_type"]

        if typ not in cls._REGISTRY:
            raise ValueError(f"[PolicyFactory] unknown policy type: {typ}")

        name = cfg.get("name") or typ

        if typ == "const":
            return ConstPolicy(name, cfg.get("leverage"))

        return cls._REGISTRY[typ](name)
