from .result import BacktestResult
from .metrics import BucketDrawdownMetrics, MetricsCollector, MetricsPipeline, SummaryMetrics, TradeMetrics
from .report import EquityCurveReport, MetricsReport, Report, ReportPipeline, TradesReport
from .parallel import ParallelExecutor
from .runner import BacktestRunner, RunSpec, execute_run

__all__ = [
    "BacktestResult",
    "MetricsCollector", "SummaryMetrics", "TradeMetrics", "BucketDrawdownMetrics", "MetricsPipeline",
    "Report", "TradesReport", "MetricsReport", "EquityCurveReport", "ReportPipeline",
    "ParallelExecutor",
    "BacktestRunner", "RunSpec", "execute_run",
]
