from .liquidation import LiquidationMath
from .buckets import BucketLedger, BucketSnapshot, CapitalBucket, MarginMode
from .direction import Direction, PredictionMode, resolve_direction
from .leverage_policies import ConstPolicy, LeveragePolicy, PolicyFactory, RiskAwarePolicy, UltraSafePolicy
from .skip_rules import TradeSkipRules
from .anti_direction import AntiDirectionOverlay, AntiDirectionStats
from .trade import PnLTrade
from .engine import PnlEngine, PnlReport

__all__ = [
    "LiquidationMath",
    "BucketLedger", "BucketSnapshot", "CapitalBucket", "MarginMode",
    "Direction", "PredictionMode", "resolve_direction",
    "ConstPolicy", "LeveragePolicy", "PolicyFactory", "RiskAwarePolicy", "UltraSafePolicy",
    "TradeSkipRules",
    "AntiDirectionOverlay", "AntiDirectionStats",
    "PnLTrade",
    "PnlEngine", "PnlReport",
]
