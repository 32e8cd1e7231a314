"""Plain-text performance summary."""

from typing import Optional

from src.analytics.models import AdvancedMetrics, PerformanceMetrics
from src.execution.models import TradingAccount


def format_report(
    metrics: PerformanceMetrics,
    advanced: Optional[AdvancedMetrics] = None,
    account: Optional[TradingAccount] = None,
    portfolio_heat: Optional[float] = None,
) -> str:
    lines = [
        "=" * 50,
        "PAPER TRADING PERFORMANCE",
        "=" * 50,
    ]
    if account is not None:
        lines.append(f"Balance:        ${account.balance:,.2f}")
        lines.append(f"Daily loss:     ${account.daily_loss_used:,.2f}")
    if portfolio_heat is not None:
        lines.append(f"Portfolio heat: {portfolio_heat:.2f}%")

    lines += [
        f"Trades:         {metrics.total_trades} "
        f"({metrics.winning_trades}W / {metrics.losing_trades}L)",
        "-" * 50,
        f"Total P&L:      ${metrics.total_pnl:,.2f}",
        f"Win Rate:       {metrics.win_rate:.1f}%",
        f"Avg Win/Loss:   ${metrics.average_win:,.2f} / ${metrics.average_loss:,.2f}",
        f"Profit Factor:  {metrics.profit_factor:.2f}",
        f"Sharpe Ratio:   {metrics.sharpe_ratio:.2f}",
        f"Max Drawdown:   ${metrics.max_drawdown:,.2f} ({metrics.max_drawdown_percent:.2f}%)",
        f"Calmar Ratio:   {metrics.calmar_ratio:.2f}",
        f"VaR 95% / ES:   {metrics.value_at_risk:.3f}% / {metrics.expected_shortfall:.3f}%",
        f"Best / Worst:   ${metrics.best_trade:,.2f} / ${metrics.worst_trade:,.2f}",
        f"Streaks:        {metrics.consecutive_wins}W / {metrics.consecutive_losses}L",
        f"Avg Holding:    {metrics.average_holding_period:.1f} min",
    ]

    if advanced is not None:
        lines += [
            "-" * 50,
            f"Sortino Ratio:  {advanced.sortino_ratio:.2f}",
            f"Ulcer Index:    {advanced.ulcer_index:.3f}",
            f"Recovery:       {advanced.recovery_factor:.2f}",
            f"Payoff Ratio:   {advanced.payoff_ratio:.2f}",
            f"Expectancy:     ${advanced.expectancy:,.2f}",
        ]

    lines.append("=" * 50)
    return "\n".join(lines)
