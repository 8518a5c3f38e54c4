from .records import (
    BacktestRecord,
    CausalPredictionRecord,
    DelayedExecutionFacts,
    DelayedIntradayResult,
    ForwardOutcomes,
    ProbTriple,
)

__all__ = [
    "BacktestRecord", "CausalPredictionRecord", "DelayedExecutionFacts",
    "DelayedIntradayResult", "ForwardOutcomes", "ProbTriple",
]
