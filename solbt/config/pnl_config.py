#!filepath: solbt/config/pnl_config.py
from __future__ import annotations

from typing import Dict, Literal

from pydantic import BaseModel, Field, model_validator


class BucketConfig(BaseModel):
    """
    share：占 total_capital 的比例（base capital）
    position_fraction：单笔交易使用 base capital 的比例（杠杆前 margin）
    """
    share: float = Field(..., ge=0.0, le=1.0)
    position_fraction: float = Field(..., ge=0.0, le=1.0)


def _default_buckets() -> Dict[str, BucketConfig]:
    return {
        "daily": BucketConfig(share=0.60, position_fraction=1.0),
        "intraday": BucketConfig(share=0.25, position_fraction=0.0),
        "delayed": BucketConfig(share=0.15, position_fraction=0.4),
    }


class AntiDirectionConfig(BaseModel):
    """
    anti-direction 触发条件（全部 causal）：
      - sl_high_decision is True
      - min_move 在 [min_move_low, min_move_high]
      - 理论强平距离 >= k * min_move
    """
    k: float = Field(2.0, gt=0.0)
    min_move_low: float = Field(0.005, gt=0.0)
    min_move_high: float = Field(0.12, gt=0.0)

    @model_validator(mode="after")
    def _band(self) -> "AntiDirectionConfig":
        if self.min_move_low >= self.min_move_high:
            raise ValueError("min_move_low must be < min_move_high")
        return self


class SkipConfig(BaseModel):
    """
    TradeSkipRules 参数（只读 causal 字段）
      - min_conf_day：day 层置信度低于该值跳过（0 = 关闭）
      - ultra_safe_skip_risky：ultra_safe 策略下跳过 SL 高风险 / 下行 regime 日
    """
    min_conf_day: float = Field(0.0, ge=0.0, le=1.0)
    ultra_safe_skip_risky: bool = True


class PnlConfig(BaseModel):
    """
    PnlConfig（FINAL）

    所有 PnL 常量集中在这里，构造一次后贯穿调用链，不使用模块级全局常量。
    """

    total_capital: float = Field(20000.0, gt=0.0)
    buckets: Dict[str, BucketConfig] = Field(default_factory=_default_buckets)

    # taker 费率，双边收取：notional * rate * 2
    commission_rate: float = Field(0.0004, ge=0.0)

    maintenance_margin_rate: float = Field(0.004, ge=0.0, lt=1.0)
    liq_shrink: float = Field(0.97, gt=0.0, le=1.0)

    daily_tp_pct: float = Field(0.03, gt=0.0)
    daily_stop_pct: float = Field(0.05, ge=0.0)
    use_daily_stop_loss: bool = True
    use_delayed_intraday_stops: bool = True

    use_anti_direction_overlay: bool = False
    anti_direction: AntiDirectionConfig = Field(default_factory=AntiDirectionConfig)

    prediction_mode: Literal["day_only", "day_plus_micro", "day_plus_micro_plus_sl"] = "day_only"

    skip: SkipConfig = Field(default_factory=SkipConfig)

    @model_validator(mode="after")
    def _check_buckets(self) -> "PnlConfig":
        total_share = sum(b.share for b in self.buckets.values())
        if total_share > 1.0 + 1e-9:
            raise ValueError(f"bucket shares sum to {total_share:.4f} > 1")
        for name in ("daily", "delayed"):
            if name not in self.buckets:
                raise ValueError(f"bucket '{name}' is required")
        return self
