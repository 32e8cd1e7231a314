"""Performance and risk analytics over a paper trade history.

Every calculation is a pure function of the trade list passed in plus the
assumed starting balance: only closed trades count, in chronological order of
execution, and degenerate input (no trades, zero variance, zero drawdown)
produces zeros instead of errors.
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

import numpy as np

from src.analytics.models import (
    AdvancedMetrics,
    ChartPoint,
    EquityPoint,
    PerformanceMetrics,
    TimeframeAnalysis,
    TimeframeStats,
)
from src.execution.models import PaperTrade, TradeStatus

TRADING_PERIODS_PER_YEAR = 252
VAR_CONFIDENCE = 0.05  # 95% VaR / ES tail
SORTINO_NO_DOWNSIDE = 10.0
PNL_BINS = 10

_EPS = 1e-12


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _std(values: Sequence[float]) -> float:
    """Population standard deviation, with float noise snapped to zero."""
    if not values:
        return 0.0
    std = float(np.std(values))
    return 0.0 if std < _EPS else std


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def _streaks(pnls: Sequence[float]) -> tuple[int, int]:
    """Longest run of wins and of losses; a flat trade breaks both."""
    best_wins = best_losses = 0
    wins = losses = 0
    for pnl in pnls:
        if pnl > 0:
            wins += 1
            losses = 0
            best_wins = max(best_wins, wins)
        elif pnl < 0:
            losses += 1
            wins = 0
            best_losses = max(best_losses, losses)
        else:
            wins = losses = 0
    return best_wins, best_losses


class AnalyticsEngine:
    """Stateless calculator; the same input always gives the same output."""

    def __init__(
        self,
        initial_balance: float = 10000.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.initial_balance = initial_balance
        self._clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def closed_trades(trades: Sequence[PaperTrade]) -> list[PaperTrade]:
        closed = [t for t in trades if t.status is TradeStatus.CLOSED]
        return sorted(closed, key=lambda t: t.executed_at)

    def _returns(self, closed: Sequence[PaperTrade]) -> list[float]:
        """Per-trade return as a percentage of the initial balance."""
        if self.initial_balance <= 0:
            return [0.0 for _ in closed]
        return [t.pnl / self.initial_balance * 100.0 for t in closed]

    def _drawdown(self, closed: Sequence[PaperTrade]) -> tuple[float, float]:
        """Max drawdown in currency and in percent of the running peak."""
        balance = peak = self.initial_balance
        max_dd = max_dd_pct = 0.0
        for trade in closed:
            balance += trade.pnl
            peak = max(peak, balance)
            dd = peak - balance
            max_dd = max(max_dd, dd)
            if peak > 0:
                max_dd_pct = max(max_dd_pct, dd / peak * 100.0)
        return max_dd, max_dd_pct

    @staticmethod
    def _value_at_risk(returns: Sequence[float]) -> tuple[float, float]:
        """Empirical VaR and Expected Shortfall at the 95% level."""
        if not returns:
            return 0.0, 0.0
        ordered = sorted(returns)
        index = int(math.floor(len(ordered) * VAR_CONFIDENCE))
        tail = ordered[: index + 1]
        return ordered[index], _mean(tail)

    # ------------------------------------------------------------------
    # Core metrics
    # ------------------------------------------------------------------

    def calculate_performance_metrics(self, trades: Sequence[PaperTrade]) -> PerformanceMetrics:
        closed = self.closed_trades(trades)
        if not closed:
            return PerformanceMetrics()

        pnls = [t.pnl for t in closed]
        wins = [p for p in pnls if p > 0]
        losses = [p for p in pnls if p < 0]

        total_pnl = float(sum(pnls))
        win_rate = len(wins) / len(closed) * 100.0
        average_win = _mean(wins)
        average_loss = abs(_mean(losses))
        profit_factor = average_win / average_loss if average_loss > 0 else 0.0

        returns = self._returns(closed)
        std = _std(returns)
        sharpe = _mean(returns) / std * math.sqrt(TRADING_PERIODS_PER_YEAR) if std > 0 else 0.0

        max_dd, max_dd_pct = self._drawdown(closed)

        holding = [
            (t.closed_at - t.executed_at).total_seconds() / 60.0
            for t in closed
            if t.closed_at is not None
        ]

        consecutive_wins, consecutive_losses = _streaks(pnls)
        var, expected_shortfall = self._value_at_risk(returns)

        total_return_pct = (
            total_pnl / self.initial_balance * 100.0 if self.initial_balance > 0 else 0.0
        )
        calmar = total_return_pct / max_dd_pct if max_dd_pct > 0 else 0.0

        return PerformanceMetrics(
            total_trades=len(closed),
            winning_trades=len(wins),
            losing_trades=len(losses),
            win_rate=win_rate,
            total_pnl=total_pnl,
            average_win=average_win,
            average_loss=average_loss,
            profit_factor=profit_factor,
            sharpe_ratio=sharpe,
            max_drawdown=max_dd,
            max_drawdown_percent=max_dd_pct,
            average_holding_period=_mean(holding),
            best_trade=max(pnls),
            worst_trade=min(pnls),
            consecutive_wins=consecutive_wins,
            consecutive_losses=consecutive_losses,
            value_at_risk=var,
            expected_shortfall=expected_shortfall,
            calmar_ratio=calmar,
        )

    # ------------------------------------------------------------------
    # Equity curve and distributions
    # ------------------------------------------------------------------

    def generate_equity_curve(self, trades: Sequence[PaperTrade]) -> list[EquityPoint]:
        """Running balance, one point per closed trade after a leading point."""
        closed = self.closed_trades(trades)
        start = closed[0].executed_at if closed else self._clock() - timedelta(days=1)

        balance = peak = self.initial_balance
        curve = [EquityPoint(timestamp=start, balance=balance, drawdown=0.0, pnl=0.0)]
        for trade in closed:
            balance += trade.pnl
            peak = max(peak, balance)
            curve.append(
                EquityPoint(
                    timestamp=trade.closed_at or trade.executed_at,
                    balance=balance,
                    drawdown=peak - balance,
                    pnl=trade.pnl,
                )
            )
        return curve

    def generate_pnl_distribution(
        self, trades: Sequence[PaperTrade], bins: int = PNL_BINS
    ) -> list[ChartPoint]:
        pnls = [t.pnl for t in self.closed_trades(trades)]
        if not pnls:
            return []

        counts, edges = np.histogram(pnls, bins=bins)
        return [
            ChartPoint(
                key=f"{edges[i]:.0f} to {edges[i + 1]:.0f}",
                value=int(counts[i]),
                label=f"${edges[i]:.0f} - ${edges[i + 1]:.0f}",
            )
            for i in range(len(counts))
        ]

    def generate_win_loss_chart(self, trades: Sequence[PaperTrade]) -> list[ChartPoint]:
        closed = self.closed_trades(trades)
        wins = sum(1 for t in closed if t.pnl > 0)
        losses = sum(1 for t in closed if t.pnl < 0)
        breakeven = sum(1 for t in closed if t.pnl == 0)
        return [
            ChartPoint("Wins", wins, f"{wins} Winning Trades"),
            ChartPoint("Losses", losses, f"{losses} Losing Trades"),
            ChartPoint("Breakeven", breakeven, f"{breakeven} Breakeven Trades"),
        ]

    def generate_monthly_returns(self, trades: Sequence[PaperTrade]) -> list[ChartPoint]:
        monthly: dict[str, float] = defaultdict(float)
        for trade in self.closed_trades(trades):
            when = trade.closed_at or trade.executed_at
            monthly[when.strftime("%Y-%m")] += trade.pnl

        return [
            ChartPoint(key=month, value=pnl, label=f"{month}: ${pnl:.2f}")
            for month, pnl in sorted(monthly.items())
        ]

    # ------------------------------------------------------------------
    # Extended metrics
    # ------------------------------------------------------------------

    def calculate_advanced_metrics(self, trades: Sequence[PaperTrade]) -> AdvancedMetrics:
        closed = self.closed_trades(trades)
        if not closed:
            return AdvancedMetrics()

        wins = [t for t in closed if t.pnl > 0]
        losses = [t for t in closed if t.pnl < 0]
        total_wins = sum(t.pnl for t in wins)
        total_losses = abs(sum(t.pnl for t in losses))
        total_pnl = sum(t.pnl for t in closed)

        max_dd, _ = self._drawdown(closed)
        avg_win = total_wins / len(wins) if wins else 0.0
        avg_loss = total_losses / len(losses) if losses else 0.0
        win_rate = len(wins) / len(closed)

        return AdvancedMetrics(
            ulcer_index=self._ulcer_index(closed),
            sortino_ratio=self._sortino_ratio(closed),
            information_ratio=self._information_ratio(closed),
            treynor_ratio=self._treynor_ratio(closed),
            max_consecutive_losses=_streaks([t.pnl for t in closed])[1],
            average_time_to_profit=_mean([t.holding_period for t in wins]),
            profitability_index=total_wins / total_losses if total_losses > 0 else 0.0,
            recovery_factor=total_pnl / max_dd if max_dd > 0 else 0.0,
            payoff_ratio=avg_win / avg_loss if avg_loss > 0 else 0.0,
            expectancy=win_rate * avg_win - (1 - win_rate) * avg_loss,
        )

    def _ulcer_index(self, closed: Sequence[PaperTrade]) -> float:
        """RMS of percentage drawdown across the equity curve."""
        curve = self.generate_equity_curve(closed)
        if len(curve) < 2:
            return 0.0

        peak = self.initial_balance
        squared = []
        for point in curve:
            peak = max(peak, point.balance)
            dd_pct = (peak - point.balance) / peak * 100.0 if peak > 0 else 0.0
            squared.append(dd_pct**2)
        return math.sqrt(_mean(squared))

    def _sortino_ratio(self, closed: Sequence[PaperTrade]) -> float:
        returns = self._returns(closed)
        if not returns:
            return 0.0

        avg = _mean(returns)
        downside = [r for r in returns if r < 0]
        if not downside:
            return SORTINO_NO_DOWNSIDE if avg > 0 else 0.0

        downside_dev = math.sqrt(_mean([r**2 for r in downside]))
        if downside_dev <= 0:
            return 0.0
        return avg / downside_dev * math.sqrt(TRADING_PERIODS_PER_YEAR)

    @staticmethod
    def _information_ratio(closed: Sequence[PaperTrade]) -> float:
        """Excess return per unit tracking error against a 0% benchmark."""
        if len(closed) < 2:
            return 0.0
        benchmark = 0.0
        excess = [t.return_percentage - benchmark for t in closed]
        tracking_error = _std(excess)
        return _mean(excess) / tracking_error if tracking_error > 0 else 0.0

    def _treynor_ratio(self, closed: Sequence[PaperTrade]) -> float:
        """Total return percent per unit beta, with beta assumed to be 1."""
        if not closed or self.initial_balance <= 0:
            return 0.0
        beta = 1.0
        total_return = sum(t.pnl for t in closed) / self.initial_balance * 100.0
        return total_return / beta

    # ------------------------------------------------------------------
    # Timeframes
    # ------------------------------------------------------------------

    def generate_timeframe_analysis(self, trades: Sequence[PaperTrade]) -> TimeframeAnalysis:
        """Bucket closed trades by holding period: <=1h, <=1d, longer."""
        closed = self.closed_trades(trades)
        hourly = [t for t in closed if t.holding_period <= 60]
        daily = [t for t in closed if 60 < t.holding_period <= 1440]
        weekly = [t for t in closed if t.holding_period > 1440]
        return TimeframeAnalysis(
            hourly=self._timeframe_stats(hourly),
            daily=self._timeframe_stats(daily),
            weekly=self._timeframe_stats(weekly),
        )

    @staticmethod
    def _timeframe_stats(trades: Sequence[PaperTrade]) -> TimeframeStats:
        if not trades:
            return TimeframeStats()
        wins = sum(1 for t in trades if t.pnl > 0)
        return TimeframeStats(
            win_rate=wins / len(trades) * 100.0,
            avg_return=_mean([t.return_percentage for t in trades]),
            count=len(trades),
        )
