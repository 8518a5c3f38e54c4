from .min_move import MinMoveConfig, MinMoveEngine, MinMoveHistoryRow, MinMoveResult, MinMoveState
from .path_labeler import MicroDirection, PathLabel, PathLabeler, PathLabelResult
from .row_builder import DailyInputs, ForwardRow, ForwardRowBuilder

__all__ = [
    "MinMoveConfig", "MinMoveEngine", "MinMoveHistoryRow", "MinMoveResult", "MinMoveState",
    "MicroDirection", "PathLabel", "PathLabeler", "PathLabelResult",
    "DailyInputs", "ForwardRow", "ForwardRowBuilder",
]
