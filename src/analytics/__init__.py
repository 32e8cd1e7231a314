"""Performance analytics over paper trade history."""

from .engine import AnalyticsEngine
from .models import (
    AdvancedMetrics,
    ChartPoint,
    EquityPoint,
    PerformanceMetrics,
    TimeframeAnalysis,
    TimeframeStats,
)
from .report import format_report

__all__ = [
    "AnalyticsEngine",
    "AdvancedMetrics",
    "ChartPoint",
    "EquityPoint",
    "PerformanceMetrics",
    "TimeframeAnalysis",
    "TimeframeStats",
    "format_report",
]
