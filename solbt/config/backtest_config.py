from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from solbt.config.pnl_config import PnlConfig


class PolicyConfig(BaseModel):
    """
    单个杠杆策略的声明式描述（不持有策略实例）

    policy_type:
      - "const"      -> ConstPolicy（需要 leverage）
      - "risk_aware" -> RiskAwarePolicy
      - "ultra_safe" -> UltraSafePolicy
    """
    name: str = Field(..., min_length=1)
    policy_type: Literal["const", "risk_aware", "ultra_safe"]
    leverage: Optional[float] = Field(None, gt=0.0)
    margin_mode: Literal["isolated", "cross"] = "cross"

    @model_validator(mode="after")
    def _const_needs_leverage(self) -> "PolicyConfig":
        if self.policy_type == "const" and self.leverage is None:
            raise ValueError(f"policy '{self.name}': const policy requires leverage")
        return self


class BacktestConfig(BaseModel):
    """
    BacktestConfig（FINAL / FROZEN）

    语义：
      - 回测“实验定义”
      - policies × (SL on/off) × (anti-D on/off) 构成独立 run 矩阵
      - 不定义数据路径
    """

    name: str = "default"
    symbol: str = Field("SOLUSDT", min_length=1)

    policies: List[PolicyConfig] = Field(..., min_length=1)

    pnl: PnlConfig = Field(default_factory=PnlConfig)

    # train / OOS 边界（settlement day key <= train_until -> train）
    train_until: Optional[date] = None

    # 额外对比 run（与 pnl 里的基础开关组合）
    compare_stop_loss: bool = False
    compare_anti_direction: bool = False

    max_workers: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def _unique_names(self) -> "BacktestConfig":
        names = [p.name for p in self.policies]
        if len(names) != len(set(names)):
            raise ValueError(f"policy names must be unique: {names}")
        return self
