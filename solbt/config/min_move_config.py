#!filepath: solbt/config/min_move_config.py
from pydantic import BaseModel, Field

from solbt.analytics.min_move import MinMoveConfig


class MinMoveConfigModel(BaseModel):
    """YAML 侧的 min-move 参数；engine 使用冻结的 MinMoveConfig"""
    min_floor_pct: float = Field(0.015, gt=0.0)
    min_ceil_pct: float = Field(0.08, gt=0.0)
    atr_weight: float = 0.6
    dyn_vol_weight: float = 0.4
    ewma_alpha: float = 0.15
    quantile_start: float = 0.6
    quantile_low: float = 0.5
    quantile_high: float = 0.8
    quantile_window_days: int = 90
    quantile_retune_every_days: int = 10
    regime_down_mul: float = 1.2
    min_history: int = 30

    def to_engine_config(self) -> MinMoveConfig:
        return MinMoveConfig(**self.model_dump())
