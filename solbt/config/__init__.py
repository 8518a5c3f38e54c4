from .log_config import LogConfig
from .pnl_config import AntiDirectionConfig, BucketConfig, PnlConfig, SkipConfig
from .backtest_config import BacktestConfig, PolicyConfig
from .min_move_config import MinMoveConfigModel
from .app_config import AppConfig

__all__ = [
    "LogConfig",
    "AntiDirectionConfig", "BucketConfig", "PnlConfig", "SkipConfig",
    "BacktestConfig", "PolicyConfig",
    "MinMoveConfigModel",
    "AppConfig",
]
