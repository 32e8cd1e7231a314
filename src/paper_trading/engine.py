# src/paper_trading/engine.py
"""Paper trading engine.

Owns the simulated account, the list of paper trades and the mock quote
table. Signals are executed only after the risk manager approves them, open
trades are re-marked on every price refresh, and trades whose stop-loss or
take-profit has been reached are closed within the same refresh pass.

All mutating operations are serialized through a single re-entrant lock.
Query methods return copies so callers can never mutate engine state.
"""

from __future__ import annotations

import math
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from src.exceptions import (
    DuplicateSignalError,
    ExecutionError,
    InsufficientBalanceError,
    RiskRejectedError,
    TradeAlreadyClosedError,
    TradeNotFoundError,
)
from src.execution.models import MarketPrice, PaperTrade, TradeStatus, TradingAccount
from src.paper_trading.price_feed import MockPriceFeed
from src.risk.manager import RejectCode, RiskManager
from src.signals.models import Action, Symbol, TradingSignal

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaperTradingEngine:
    """Risk-gated paper execution against a mock price feed.

    Args:
        risk_manager: Consulted before every execution and on every refresh.
        price_feed: Quote source. Defaults to a feed built from settings.
        initial_balance: Starting cash. Defaults to ``INITIAL_BALANCE``.
        clock: Returns the current time; used for trade timestamps.
    """

    def __init__(
        self,
        risk_manager: RiskManager,
        price_feed: Optional[MockPriceFeed] = None,
        initial_balance: Optional[float] = None,
        account_name: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        from config.settings import settings

        self._risk = risk_manager
        self._feed = price_feed or MockPriceFeed.from_settings()
        self._clock = clock
        self._lock = threading.RLock()

        balance = settings.INITIAL_BALANCE if initial_balance is None else initial_balance
        self._account = TradingAccount(
            balance=float(balance),
            account_name=account_name or settings.ACCOUNT_NAME,
            created_at=clock(),
        )
        self._trades: list[PaperTrade] = []
        self._trade_index: dict[str, PaperTrade] = {}
        # Best price seen per open trade, for the running in-trade drawdown
        self._best_prices: dict[str, float] = {}
        self._executed_signals: set[str] = set()

        logger.info(
            "paper_engine_initialized",
            balance=self._account.balance,
            symbols=[s.value for s in self._feed.symbols],
        )

    @property
    def risk_manager(self) -> RiskManager:
        return self._risk

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def execute_signal(self, signal: TradingSignal) -> PaperTrade:
        """Open a paper trade for ``signal``.

        Raises:
            DuplicateSignalError: The signal was already processed.
            InsufficientBalanceError: A BUY whose notional exceeds the balance.
            RiskRejectedError: Any other risk rule refused the signal.
        """
        with self._lock:
            if signal.id in self._executed_signals or not signal.is_pending:
                raise DuplicateSignalError(
                    f"signal {signal.id} already processed ({signal.status.value})"
                )

            open_trades = [t for t in self._trades if t.is_open]
            decision = self._risk.validate_signal_execution(
                signal, self._account, open_trades
            )
            if not decision.allowed:
                signal.mark_failed()
                reason = decision.reason or "Risk management validation failed"
                if decision.code is RejectCode.INSUFFICIENT_BALANCE:
                    raise InsufficientBalanceError(reason)
                code = decision.code.value if decision.code else "rejected"
                raise RiskRejectedError(reason, code=code)

            quantity = decision.quantity_for(signal)
            trade_value = signal.price * quantity

            if signal.action is Action.BUY and self._account.balance < trade_value:
                signal.mark_failed()
                raise InsufficientBalanceError("Insufficient balance for trade")

            levels = self._risk.calculate_risk_levels(signal)
            current_price = self._feed.quote(signal.symbol)

            trade = PaperTrade(
                signal_id=signal.id,
                symbol=signal.symbol,
                action=signal.action,
                entry_price=signal.price,
                quantity=quantity,
                executed_at=self._clock(),
                current_price=current_price,
                stop_loss=levels.stop_loss,
                take_profit=levels.take_profit,
            )

            if signal.action is Action.BUY:
                self._account.balance -= trade_value
            else:
                self._account.balance += trade_value

            self._trades.append(trade)
            self._trade_index[trade.id] = trade
            self._best_prices[trade.id] = trade.entry_price
            self._executed_signals.add(signal.id)
            self._mark(trade, current_price)
            signal.mark_executed()

            logger.info(
                "paper_trade_opened",
                trade_id=trade.id,
                signal_id=signal.id,
                symbol=trade.symbol.value,
                action=trade.action.value,
                entry_price=trade.entry_price,
                quantity=quantity,
                adjusted=decision.adjusted_quantity is not None,
                stop_loss=trade.stop_loss,
                take_profit=trade.take_profit,
                balance=self._account.balance,
            )
            return replace(trade)

    def close_trade(self, trade_id: str, reason: str = "manual") -> PaperTrade:
        """Close an open trade at a fresh quote.

        Raises:
            TradeNotFoundError: No trade with ``trade_id``.
            TradeAlreadyClosedError: The trade is already closed.
        """
        with self._lock:
            trade = self._trade_index.get(trade_id)
            if trade is None:
                raise TradeNotFoundError(f"Trade not found: {trade_id}")
            if not trade.is_open:
                raise TradeAlreadyClosedError(f"Trade already closed: {trade_id}")

            price = self._feed.quote(trade.symbol)
            return replace(self._settle(trade, price, reason))

    def refresh_prices(self) -> list[PaperTrade]:
        """Tick the feed, re-mark open trades and close any that hit an exit.

        Returns copies of the trades closed during this pass.
        """
        with self._lock:
            self._feed.tick()

            closed: list[PaperTrade] = []
            for trade in [t for t in self._trades if t.is_open]:
                price = self._feed.quote(trade.symbol)
                self._mark(trade, price)

                exit_decision = self._risk.check_exit_conditions(trade, price)
                if exit_decision.should_close:
                    closed.append(replace(self._settle(trade, price, exit_decision.reason)))

            logger.debug(
                "prices_refreshed",
                open_trades=sum(1 for t in self._trades if t.is_open),
                closed=len(closed),
            )
            return closed

    def generate_demo_trades(self) -> list[PaperTrade]:
        """Open one BTC long and one GOLD short sized to 60% of the position cap."""
        btc_price = 44500.0
        gold_price = 2010.0

        with self._lock:
            cap = self._risk.get_settings().max_position_value(self._account.balance)
            btc_quantity = math.floor(cap * 0.6 / btc_price * 10000) / 10000
            gold_quantity = math.floor(cap * 0.6 / gold_price * 100) / 100

            signals = [
                TradingSignal(
                    id="demo_1",
                    channel_id="demo_channel",
                    symbol=Symbol.BTC,
                    action=Action.BUY,
                    price=btc_price,
                    quantity=btc_quantity,
                    signal_text=f"BUY BTC @ {btc_price:,.0f}",
                ),
                TradingSignal(
                    id="demo_2",
                    channel_id="demo_channel",
                    symbol=Symbol.GOLD,
                    action=Action.SELL,
                    price=gold_price,
                    quantity=gold_quantity,
                    signal_text=f"SELL GOLD @ {gold_price:,.0f}",
                ),
            ]

            trades = []
            for signal in signals:
                try:
                    trades.append(self.execute_signal(signal))
                except ExecutionError as exc:
                    logger.warning("demo_signal_failed", signal_id=signal.id, error=str(exc))
            return trades

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _mark(self, trade: PaperTrade, price: float) -> None:
        """Re-mark an open trade at ``price``."""
        trade.current_price = price
        if trade.action is Action.BUY:
            trade.pnl = (price - trade.entry_price) * trade.quantity
        else:
            trade.pnl = (trade.entry_price - price) * trade.quantity

        end = trade.closed_at or self._clock()
        trade.holding_period = (end - trade.executed_at).total_seconds() / 60.0
        notional = trade.notional
        trade.return_percentage = trade.pnl / notional * 100.0 if notional else 0.0

        best = self._best_prices.get(trade.id)
        if best is not None:
            if trade.action is Action.BUY:
                best = max(best, price)
            else:
                best = min(best, price)
            self._best_prices[trade.id] = best
            trade.max_drawdown = max(
                trade.max_drawdown,
                self._risk.calculate_trade_drawdown(trade, [best, price]),
            )

    def _settle(self, trade: PaperTrade, price: float, reason: Optional[str]) -> PaperTrade:
        """Reverse the opening cash leg at ``price`` and freeze the trade."""
        close_value = price * trade.quantity
        if trade.action is Action.BUY:
            self._account.balance += close_value
        else:
            self._account.balance -= close_value

        trade.closed_at = self._clock()
        self._mark(trade, price)
        trade.status = TradeStatus.CLOSED
        trade.close_reason = reason
        self._best_prices.pop(trade.id, None)

        if trade.pnl < 0:
            self._risk.record_loss(self._account, trade.pnl)

        logger.info(
            "paper_trade_closed",
            trade_id=trade.id,
            symbol=trade.symbol.value,
            action=trade.action.value,
            exit_price=price,
            pnl=trade.pnl,
            reason=reason,
            balance=self._account.balance,
        )
        return trade

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_trades(self) -> list[PaperTrade]:
        with self._lock:
            return [replace(t) for t in self._trades]

    def get_open_trades(self) -> list[PaperTrade]:
        with self._lock:
            return [replace(t) for t in self._trades if t.is_open]

    def get_closed_trades(self) -> list[PaperTrade]:
        with self._lock:
            return [replace(t) for t in self._trades if not t.is_open]

    def get_trade(self, trade_id: str) -> PaperTrade:
        with self._lock:
            trade = self._trade_index.get(trade_id)
            if trade is None:
                raise TradeNotFoundError(f"Trade not found: {trade_id}")
            return replace(trade)

    def get_account(self) -> TradingAccount:
        with self._lock:
            return replace(self._account)

    def get_market_prices(self) -> list[MarketPrice]:
        with self._lock:
            return self._feed.snapshot()

    def get_current_price(self, symbol: Symbol) -> float:
        with self._lock:
            return self._feed.quote(symbol)

    def get_total_pnl(self) -> float:
        with self._lock:
            return sum(t.pnl for t in self._trades)

    def get_win_rate(self) -> float:
        """Percentage of closed trades with positive P&L."""
        with self._lock:
            closed = [t for t in self._trades if not t.is_open]
            if not closed:
                return 0.0
            wins = sum(1 for t in closed if t.pnl > 0)
            return wins / len(closed) * 100.0

    def get_portfolio_heat(self) -> float:
        with self._lock:
            open_trades = [t for t in self._trades if t.is_open]
            return self._risk.calculate_portfolio_heat(open_trades, self._account.balance)
