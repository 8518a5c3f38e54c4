from .daily_backtest import DailyBacktestWorkflow

__all__ = ["DailyBacktestWorkflow"]
