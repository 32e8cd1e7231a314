"""Read-only analytics views derived from a trade history."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class PerformanceMetrics:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0  # percent
    total_pnl: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0  # absolute value
    profit_factor: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    average_holding_period: float = 0.0  # minutes
    best_trade: float = 0.0
    worst_trade: float = 0.0
    consecutive_wins: int = 0
    consecutive_losses: int = 0
    value_at_risk: float = 0.0  # 95%, percent of initial balance
    expected_shortfall: float = 0.0
    calmar_ratio: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AdvancedMetrics:
    ulcer_index: float = 0.0
    sortino_ratio: float = 0.0
    information_ratio: float = 0.0
    treynor_ratio: float = 0.0
    max_consecutive_losses: int = 0
    average_time_to_profit: float = 0.0  # minutes
    profitability_index: float = 0.0
    recovery_factor: float = 0.0
    payoff_ratio: float = 0.0
    expectancy: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EquityPoint:
    timestamp: datetime
    balance: float
    drawdown: float
    pnl: float


@dataclass(frozen=True)
class ChartPoint:
    """One bar of a distribution chart."""

    key: str
    value: float
    label: str


@dataclass(frozen=True)
class TimeframeStats:
    win_rate: float = 0.0
    avg_return: float = 0.0
    count: int = 0


@dataclass(frozen=True)
class TimeframeAnalysis:
    hourly: TimeframeStats
    daily: TimeframeStats
    weekly: TimeframeStats
