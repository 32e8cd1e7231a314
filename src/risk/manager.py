"""Risk Manager for paper trading.

Owns the risk policy and answers four questions for the trading engine:
- may this signal be executed, and at what size
- where do its stop-loss and take-profit sit
- should an open trade be force-closed at the current price
- how much of the account is at risk across open positions

It also keeps the account's daily loss counter, resetting it on the first
use after the calendar day changes. Everything else here is advisory.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Sequence

import structlog

from src.execution.models import PaperTrade, TradingAccount
from src.risk.settings import RiskSettings
from src.risk.sizing import kelly_criterion, optimal_position_size
from src.signals.models import Action, RiskLevel, Symbol, TradingSignal

logger = structlog.get_logger()

# Adjusted quantities are floored to this many decimals
QUANTITY_DECIMALS = 2


class RejectCode(str, Enum):
    DAILY_LOSS_LIMIT = "daily_loss_limit"
    MAX_OPEN_POSITIONS = "max_open_positions"
    POSITION_TOO_LARGE = "position_too_large"
    INSUFFICIENT_BALANCE = "insufficient_balance"


@dataclass(frozen=True)
class RiskDecision:
    """Outcome of a pre-trade check."""

    allowed: bool
    reason: Optional[str] = None
    adjusted_quantity: Optional[float] = None
    code: Optional[RejectCode] = None

    def quantity_for(self, signal: TradingSignal) -> float:
        if self.adjusted_quantity is not None:
            return self.adjusted_quantity
        return signal.quantity


@dataclass(frozen=True)
class RiskLevels:
    stop_loss: float
    take_profit: float


@dataclass(frozen=True)
class ExitDecision:
    should_close: bool
    reason: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RiskManager:
    """Risk gate between parsed signals and the paper trading engine.

    Args:
        settings: Initial policy. Defaults to the configured policy.
        clock: Returns the current time; drives the daily loss reset.
    """

    def __init__(
        self,
        settings: Optional[RiskSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings or RiskSettings.from_config()
        self._clock = clock
        self._lock = threading.Lock()

        logger.info("risk_manager_initialized", **self._settings.as_dict())

    @property
    def settings(self) -> RiskSettings:
        return self._settings

    def get_settings(self) -> RiskSettings:
        """Current policy (immutable snapshot)."""
        return self._settings

    def update_settings(self, **changes: Any) -> RiskSettings:
        """Apply a partial update to the policy and return the new settings."""
        with self._lock:
            self._settings = self._settings.updated(**changes)
            logger.info("risk_settings_updated", **changes)
            return self._settings

    # ------------------------------------------------------------------
    # Pre-trade validation
    # ------------------------------------------------------------------

    def validate_signal_execution(
        self,
        signal: TradingSignal,
        account: TradingAccount,
        open_positions: Sequence[PaperTrade],
    ) -> RiskDecision:
        """Check a signal against the daily loss, capacity, size and balance rules.

        The first failing rule wins. An oversized position is not rejected but
        scaled down to fit the notional cap, unless the scaled quantity rounds
        to zero.
        """
        settings = self._settings

        if settings.enable_daily_loss_limit:
            decision = self._check_daily_loss_limit(account, settings)
            if not decision.allowed:
                return self._reject(signal, decision)

        if len(open_positions) >= settings.max_open_positions:
            return self._reject(
                signal,
                RiskDecision(
                    allowed=False,
                    reason=f"Maximum open positions reached ({settings.max_open_positions})",
                    code=RejectCode.MAX_OPEN_POSITIONS,
                ),
            )

        quantity = signal.quantity
        adjusted: Optional[float] = None
        adjust_reason: Optional[str] = None

        position_value = signal.price * quantity
        max_position_value = settings.max_position_value(account.balance)

        if position_value > max_position_value:
            adjusted = self._floor_quantity(max_position_value / signal.price)
            if adjusted <= 0:
                return self._reject(
                    signal,
                    RiskDecision(
                        allowed=False,
                        reason=f"Position size too large. Max allowed: ${max_position_value:.2f}",
                        code=RejectCode.POSITION_TOO_LARGE,
                    ),
                )
            adjust_reason = (
                f"Position size adjusted from {signal.quantity} to {adjusted} "
                f"to comply with risk limits"
            )
            quantity = adjusted
            position_value = signal.price * quantity

        if signal.action is Action.BUY and position_value > account.balance:
            return self._reject(
                signal,
                RiskDecision(
                    allowed=False,
                    reason=(
                        f"Insufficient balance. Required: ${position_value:.2f}, "
                        f"Available: ${account.balance:.2f}"
                    ),
                    code=RejectCode.INSUFFICIENT_BALANCE,
                ),
            )

        if adjusted is not None:
            logger.info(
                "position_size_adjusted",
                signal_id=signal.id,
                requested=signal.quantity,
                adjusted=adjusted,
                max_position_value=max_position_value,
            )

        return RiskDecision(allowed=True, reason=adjust_reason, adjusted_quantity=adjusted)

    @staticmethod
    def _floor_quantity(quantity: float) -> float:
        factor = 10**QUANTITY_DECIMALS
        return math.floor(quantity * factor) / factor

    @staticmethod
    def _reject(signal: TradingSignal, decision: RiskDecision) -> RiskDecision:
        logger.warning(
            "signal_rejected",
            signal_id=signal.id,
            symbol=signal.symbol.value,
            code=decision.code.value if decision.code else None,
            reason=decision.reason,
        )
        return decision

    # ------------------------------------------------------------------
    # Daily loss tracking
    # ------------------------------------------------------------------

    def check_daily_reset(self, account: TradingAccount) -> None:
        """Zero the daily loss counter on first use of a new calendar day."""
        now = self._clock()
        last = account.last_reset_date
        if last is not None and last.date() == now.date():
            return

        if account.daily_loss_used:
            logger.info(
                "daily_loss_reset",
                account_id=account.id,
                previous_loss=account.daily_loss_used,
            )
        account.daily_loss_used = 0.0
        account.last_reset_date = now

    def _check_daily_loss_limit(
        self, account: TradingAccount, settings: RiskSettings
    ) -> RiskDecision:
        self.check_daily_reset(account)

        used = account.daily_loss_used
        cap = account.max_daily_loss if account.max_daily_loss else settings.max_daily_loss

        if used >= cap:
            return RiskDecision(
                allowed=False,
                reason=f"Daily loss limit reached (${used:.2f} / ${cap:.2f})",
                code=RejectCode.DAILY_LOSS_LIMIT,
            )
        return RiskDecision(allowed=True)

    def record_loss(self, account: TradingAccount, pnl: float) -> None:
        """Count a realised loss against the daily limit. Gains are ignored."""
        if pnl >= 0:
            return
        self.check_daily_reset(account)
        account.daily_loss_used += abs(pnl)

        logger.info(
            "daily_loss_recorded",
            account_id=account.id,
            loss=abs(pnl),
            daily_loss_used=account.daily_loss_used,
        )

    # ------------------------------------------------------------------
    # Stops and exits
    # ------------------------------------------------------------------

    def calculate_risk_levels(self, signal: TradingSignal) -> RiskLevels:
        """Stop-loss and take-profit as percentage offsets from the signal price."""
        settings = self._settings
        stop_mult = settings.stop_loss_percentage / 100.0
        target_mult = settings.take_profit_percentage / 100.0

        if signal.action is Action.BUY:
            return RiskLevels(
                stop_loss=signal.price * (1 - stop_mult),
                take_profit=signal.price * (1 + target_mult),
            )
        return RiskLevels(
            stop_loss=signal.price * (1 + stop_mult),
            take_profit=signal.price * (1 - target_mult),
        )

    def check_exit_conditions(self, trade: PaperTrade, current_price: float) -> ExitDecision:
        """Whether ``trade`` has hit its stop-loss or take-profit at ``current_price``."""
        if trade.stop_loss is None and trade.take_profit is None:
            return ExitDecision(should_close=False)

        settings = self._settings
        check_stop = settings.enable_auto_stop_loss and trade.stop_loss is not None
        check_target = settings.enable_auto_take_profit and trade.take_profit is not None

        if trade.action is Action.BUY:
            stop_hit = check_stop and current_price <= trade.stop_loss
            target_hit = check_target and current_price >= trade.take_profit
        else:
            stop_hit = check_stop and current_price >= trade.stop_loss
            target_hit = check_target and current_price <= trade.take_profit

        if stop_hit:
            return ExitDecision(True, f"Stop loss triggered at ${current_price:.2f}")
        if target_hit:
            return ExitDecision(True, f"Take profit triggered at ${current_price:.2f}")
        return ExitDecision(should_close=False)

    # ------------------------------------------------------------------
    # Portfolio level
    # ------------------------------------------------------------------

    def calculate_portfolio_heat(
        self, open_positions: Sequence[PaperTrade], balance: float
    ) -> float:
        """Worst-case loss across open positions if all stops fill, in percent of balance."""
        stop_pct = self._settings.stop_loss_percentage / 100.0
        at_risk = sum(trade.notional * stop_pct for trade in open_positions)
        if not at_risk:
            return 0.0
        if balance <= 0:
            # Exposure with no equity left is unbounded
            logger.warning(
                "portfolio_heat_nonpositive_balance",
                balance=balance,
                at_risk=round(at_risk, 2),
                open_positions=len(open_positions),
            )
            return math.inf
        return at_risk / balance * 100.0

    # ------------------------------------------------------------------
    # Advisory
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_trade_drawdown(trade: PaperTrade, price_history: Sequence[float]) -> float:
        """Largest adverse move from the best price seen, in price units."""
        if trade.current_price is None or not price_history:
            return 0.0

        max_drawdown = 0.0
        peak = trade.entry_price
        for price in price_history:
            if trade.action is Action.BUY:
                peak = max(peak, price)
                drawdown = peak - price
            else:
                peak = min(peak, price)
                drawdown = price - peak
            max_drawdown = max(max_drawdown, drawdown)
        return max_drawdown

    def calculate_optimal_position_size(
        self, signal: TradingSignal, account: TradingAccount
    ) -> float:
        settings = self._settings
        return optimal_position_size(
            price=signal.price,
            stop_loss=self.calculate_risk_levels(signal).stop_loss,
            quantity=signal.quantity,
            balance=account.balance,
            risk_per_trade=settings.risk_per_trade,
            max_position_size=settings.max_position_size,
        )

    @staticmethod
    def calculate_kelly_criterion(
        win_rate: float, average_win: float, average_loss: float
    ) -> float:
        return kelly_criterion(win_rate, average_win, average_loss)

    def assess_signal_risk(
        self,
        signal: TradingSignal,
        market_volatility: float,
        now: Optional[datetime] = None,
    ) -> RiskLevel:
        """Categorical risk from volatility, size, time of day and instrument."""
        score = 0

        if market_volatility > 0.05:
            score += 2
        elif market_volatility > 0.03:
            score += 1

        position_value = signal.notional
        if position_value > 1000:
            score += 2
        elif position_value > 500:
            score += 1

        now = now or self._clock()
        if now.weekday() >= 5:
            score += 1
        if now.hour < 6 or now.hour > 20:
            score += 1

        # Crypto trades around the clock and moves more
        if signal.symbol is Symbol.BTC:
            score += 1

        if score >= 4:
            return RiskLevel.HIGH
        if score >= 2:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW
