# tests/paper_trading/test_engine.py
"""Tests for the paper trading engine."""

from datetime import datetime, timedelta, timezone

import pytest

from src.exceptions import (
    DuplicateSignalError,
    ExecutionError,
    InsufficientBalanceError,
    RiskRejectedError,
    TradeAlreadyClosedError,
    TradeNotFoundError,
)
from src.execution.models import TradeStatus
from src.paper_trading.engine import PaperTradingEngine
from src.paper_trading.price_feed import MockPriceFeed
from src.risk.manager import RiskManager
from src.risk.settings import RiskSettings
from src.signals.models import Action, SignalStatus, Symbol, TradingSignal


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_signal(symbol=Symbol.BTC, action=Action.BUY, price=44500.0, quantity=0.1):
    return TradingSignal(
        channel_id="test",
        symbol=symbol,
        action=action,
        price=price,
        quantity=quantity,
        signal_text=f"{action.value} {symbol.value} @ {price}",
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 7, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def feed(clock):
    # No noise: quotes equal the reference price
    return MockPriceFeed(tick_fluctuation=0.0, quote_fluctuation=0.0, seed=1, clock=clock)


def build_engine(feed, clock, balance=10000.0, **risk):
    return PaperTradingEngine(
        risk_manager=RiskManager(RiskSettings(**risk), clock=clock),
        price_feed=feed,
        initial_balance=balance,
        clock=clock,
    )


@pytest.fixture
def engine(feed, clock):
    return build_engine(feed, clock, risk_per_trade=50.0)


class TestExecuteSignal:
    def test_buy_debits_notional(self, engine):
        signal = make_signal()

        trade = engine.execute_signal(signal)

        assert trade.status is TradeStatus.OPEN
        assert trade.entry_price == 44500.0
        assert trade.quantity == pytest.approx(0.1)
        assert trade.signal_id == signal.id
        assert trade.stop_loss == pytest.approx(43610.0)
        assert trade.take_profit == pytest.approx(46280.0)
        assert engine.get_account().balance == pytest.approx(5550.0)
        assert signal.status is SignalStatus.EXECUTED

    def test_marked_at_current_quote(self, engine):
        trade = engine.execute_signal(make_signal())

        assert trade.current_price == pytest.approx(45000.0)
        assert trade.pnl == pytest.approx(50.0)

    def test_sell_credits_notional(self, engine):
        engine.execute_signal(make_signal(Symbol.GOLD, Action.SELL, 2000.0, 1.0))
        assert engine.get_account().balance == pytest.approx(12000.0)

    def test_oversized_signal_is_scaled(self, feed, clock):
        engine = build_engine(feed, clock)  # cap = 2500

        trade = engine.execute_signal(make_signal(quantity=0.1))

        assert trade.quantity == pytest.approx(0.05)
        assert engine.get_account().balance == pytest.approx(10000.0 - 2225.0)

    def test_rejection_marks_signal_failed(self, feed, clock):
        engine = build_engine(feed, clock, max_open_positions=1)
        engine.execute_signal(make_signal(quantity=0.01))
        signal = make_signal(quantity=0.01)

        with pytest.raises(RiskRejectedError) as exc_info:
            engine.execute_signal(signal)

        assert exc_info.value.code == "max_open_positions"
        assert signal.status is SignalStatus.FAILED
        assert len(engine.get_trades()) == 1

    def test_rejection_leaves_account_untouched(self, feed, clock):
        engine = build_engine(feed, clock, max_position_size=100.0)
        with pytest.raises(RiskRejectedError):
            engine.execute_signal(make_signal(quantity=0.05))

        assert engine.get_account().balance == pytest.approx(10000.0)
        assert engine.get_trades() == []

    def test_insufficient_balance(self, feed, clock):
        engine = build_engine(feed, clock, balance=1000.0, risk_per_trade=200.0)
        signal = make_signal(Symbol.GOLD, Action.BUY, 2000.0, 1.0)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            engine.execute_signal(signal)

        assert isinstance(exc_info.value, RiskRejectedError)
        assert exc_info.value.code == "insufficient_balance"
        assert engine.get_account().balance == pytest.approx(1000.0)

    def test_duplicate_execution_rejected(self, engine):
        signal = make_signal(quantity=0.01)
        engine.execute_signal(signal)

        with pytest.raises(DuplicateSignalError):
            engine.execute_signal(signal)

        assert len(engine.get_trades()) == 1

    def test_failed_signal_cannot_be_retried(self, feed, clock):
        engine = build_engine(feed, clock, max_open_positions=0)
        signal = make_signal(quantity=0.01)
        with pytest.raises(RiskRejectedError):
            engine.execute_signal(signal)

        with pytest.raises(DuplicateSignalError):
            engine.execute_signal(signal)

    def test_all_failures_are_execution_errors(self, feed, clock):
        engine = build_engine(feed, clock, max_open_positions=0)
        with pytest.raises(ExecutionError):
            engine.execute_signal(make_signal())


class TestCloseTrade:
    def test_example_session(self, engine, feed):
        trade = engine.execute_signal(make_signal())
        assert engine.get_account().balance == pytest.approx(5550.0)

        feed.set_price(Symbol.BTC, 46000.0)
        assert engine.refresh_prices() == []
        assert engine.get_trade(trade.id).pnl == pytest.approx(150.0)

        closed = engine.close_trade(trade.id)

        assert closed.status is TradeStatus.CLOSED
        assert closed.pnl == pytest.approx(150.0)
        assert closed.close_reason == "manual"
        assert engine.get_account().balance == pytest.approx(10150.0)
        assert engine.get_total_pnl() == pytest.approx(150.0)
        assert engine.get_win_rate() == pytest.approx(100.0)

    def test_sell_round_trip_balance_delta_equals_pnl(self, engine, feed):
        trade = engine.execute_signal(make_signal(Symbol.GOLD, Action.SELL, 2000.0, 1.0))
        feed.set_price(Symbol.GOLD, 1950.0)

        closed = engine.close_trade(trade.id)

        assert closed.pnl == pytest.approx(50.0)
        assert engine.get_account().balance == pytest.approx(10000.0 + closed.pnl)

    def test_buy_round_trip_balance_delta_equals_pnl(self, engine, feed):
        trade = engine.execute_signal(make_signal(price=45000.0, quantity=0.05))
        feed.set_price(Symbol.BTC, 44800.0)

        closed = engine.close_trade(trade.id, reason="test")

        assert closed.pnl == pytest.approx(-10.0)
        assert closed.close_reason == "test"
        assert engine.get_account().balance == pytest.approx(10000.0 + closed.pnl)

    def test_unknown_trade(self, engine):
        with pytest.raises(TradeNotFoundError):
            engine.close_trade("trade_missing")

    def test_already_closed(self, engine):
        trade = engine.execute_signal(make_signal(quantity=0.01))
        engine.close_trade(trade.id)
        balance = engine.get_account().balance

        with pytest.raises(TradeAlreadyClosedError):
            engine.close_trade(trade.id)

        assert engine.get_account().balance == balance

    def test_closed_trade_is_frozen(self, engine, feed):
        trade = engine.execute_signal(make_signal(quantity=0.01))
        closed = engine.close_trade(trade.id)

        feed.set_price(Symbol.BTC, 30000.0)
        engine.refresh_prices()

        assert engine.get_trade(trade.id).pnl == closed.pnl
        assert engine.get_trade(trade.id).current_price == closed.current_price


class TestRefreshPrices:
    def test_stop_loss_closes_in_same_pass(self, engine, feed):
        trade = engine.execute_signal(make_signal(price=45000.0, quantity=0.05))

        feed.set_price(Symbol.BTC, 44200.0)
        assert engine.refresh_prices() == []
        assert engine.get_trade(trade.id).is_open

        feed.set_price(Symbol.BTC, 44000.0)
        closed = engine.refresh_prices()

        assert [t.id for t in closed] == [trade.id]
        assert closed[0].close_reason.startswith("Stop loss")
        assert closed[0].current_price == pytest.approx(44000.0)
        assert not engine.get_trade(trade.id).is_open
        assert engine.get_account().balance == pytest.approx(10000.0 - 50.0)

    def test_stop_loss_counts_toward_daily_loss(self, engine, feed):
        engine.execute_signal(make_signal(price=45000.0, quantity=0.05))
        feed.set_price(Symbol.BTC, 44000.0)
        engine.refresh_prices()

        assert engine.get_account().daily_loss_used == pytest.approx(50.0)

    def test_daily_loss_blocks_next_signal(self, feed, clock):
        engine = build_engine(feed, clock, max_daily_loss=40.0)
        engine.execute_signal(make_signal(price=45000.0, quantity=0.05))
        feed.set_price(Symbol.BTC, 44000.0)
        engine.refresh_prices()

        with pytest.raises(RiskRejectedError) as exc_info:
            engine.execute_signal(make_signal(quantity=0.01))
        assert exc_info.value.code == "daily_loss_limit"

    def test_daily_loss_clears_next_day(self, feed, clock):
        engine = build_engine(feed, clock, max_daily_loss=40.0)
        engine.execute_signal(make_signal(price=45000.0, quantity=0.05))
        feed.set_price(Symbol.BTC, 44000.0)
        engine.refresh_prices()

        clock.advance(days=1)
        trade = engine.execute_signal(make_signal(price=44000.0, quantity=0.01))

        assert trade.is_open
        assert engine.get_account().daily_loss_used == 0.0

    def test_take_profit_sell(self, engine, feed):
        trade = engine.execute_signal(make_signal(Symbol.GOLD, Action.SELL, 2000.0, 1.0))
        feed.set_price(Symbol.GOLD, 1900.0)

        closed = engine.refresh_prices()

        assert closed[0].id == trade.id
        assert closed[0].close_reason.startswith("Take profit")
        assert closed[0].pnl == pytest.approx(100.0)

    def test_holding_period_tracks_clock(self, engine, clock):
        trade = engine.execute_signal(make_signal(quantity=0.01))

        clock.advance(minutes=30)
        engine.refresh_prices()

        assert engine.get_trade(trade.id).holding_period == pytest.approx(30.0)

    def test_max_drawdown_from_best_price(self, engine, feed):
        trade = engine.execute_signal(make_signal(price=45000.0, quantity=0.01))

        feed.set_price(Symbol.BTC, 45500.0)
        engine.refresh_prices()
        feed.set_price(Symbol.BTC, 45200.0)
        engine.refresh_prices()

        assert engine.get_trade(trade.id).max_drawdown == pytest.approx(300.0)

    def test_max_drawdown_kept_after_recovery(self, engine, feed):
        trade = engine.execute_signal(make_signal(Symbol.GOLD, Action.SELL, 2000.0, 1.0))

        for price in (1990.0, 2010.0, 1980.0, 1995.0):
            feed.set_price(Symbol.GOLD, price)
            engine.refresh_prices()

        # worst move against the short: 1990 -> 2010
        assert engine.get_trade(trade.id).max_drawdown == pytest.approx(20.0)

    def test_tracking_state_does_not_grow_with_ticks(self, feed, clock):
        engine = build_engine(
            feed, clock, enable_auto_stop_loss=False, enable_auto_take_profit=False
        )
        trade = engine.execute_signal(make_signal(price=45000.0, quantity=0.01))

        for i in range(200):
            feed.set_price(Symbol.BTC, 40000.0 + i * 50)
            engine.refresh_prices()

        assert engine.get_trade(trade.id).max_drawdown == pytest.approx(5000.0)
        assert engine._best_prices == {trade.id: pytest.approx(49950.0)}

        engine.close_trade(trade.id)
        assert engine._best_prices == {}

    def test_return_percentage(self, engine, feed):
        trade = engine.execute_signal(make_signal(price=45000.0, quantity=0.01))
        feed.set_price(Symbol.BTC, 45900.0)
        engine.refresh_prices()

        assert engine.get_trade(trade.id).return_percentage == pytest.approx(2.0)


class TestQueries:
    def test_returned_trades_are_copies(self, engine):
        trade = engine.execute_signal(make_signal(quantity=0.01))

        trade.pnl = 99999.0
        engine.get_trades()[0].pnl = 99999.0

        assert engine.get_trade(trade.id).pnl != 99999.0

    def test_returned_account_is_copy(self, engine):
        account = engine.get_account()
        account.balance = 0.0
        assert engine.get_account().balance == pytest.approx(10000.0)

    def test_open_and_closed_split(self, engine):
        a = engine.execute_signal(make_signal(quantity=0.01))
        engine.execute_signal(make_signal(Symbol.GOLD, Action.SELL, 2000.0, 1.0))
        engine.close_trade(a.id)

        assert [t.id for t in engine.get_closed_trades()] == [a.id]
        assert len(engine.get_open_trades()) == 1
        assert len(engine.get_trades()) == 2

    def test_get_trade_not_found(self, engine):
        with pytest.raises(TradeNotFoundError):
            engine.get_trade("nope")

    def test_market_prices(self, engine):
        prices = {p.symbol: p.price for p in engine.get_market_prices()}
        assert prices == {Symbol.BTC: 45000.0, Symbol.GOLD: 2000.0}
        assert engine.get_current_price(Symbol.GOLD) == pytest.approx(2000.0)

    def test_win_rate_mixed(self, engine, feed):
        win = engine.execute_signal(make_signal(price=44000.0, quantity=0.01))
        loss = engine.execute_signal(make_signal(Symbol.GOLD, Action.BUY, 2100.0, 1.0))
        engine.close_trade(win.id)
        engine.close_trade(loss.id)

        assert engine.get_win_rate() == pytest.approx(50.0)

    def test_win_rate_without_closed_trades(self, engine):
        engine.execute_signal(make_signal(quantity=0.01))
        assert engine.get_win_rate() == 0.0

    def test_portfolio_heat(self, engine):
        engine.execute_signal(make_signal(quantity=0.1))
        # 4450 * 2% / 5550 * 100
        assert engine.get_portfolio_heat() == pytest.approx(4450 * 0.02 / 5550 * 100)


class TestDemoTrades:
    def test_opens_two_trades(self, feed, clock):
        engine = build_engine(feed, clock)

        trades = engine.generate_demo_trades()

        assert [(t.symbol, t.action) for t in trades] == [
            (Symbol.BTC, Action.BUY),
            (Symbol.GOLD, Action.SELL),
        ]
        assert [t.signal_id for t in trades] == ["demo_1", "demo_2"]
        assert trades[0].quantity == pytest.approx(0.0337)
        assert trades[1].quantity == pytest.approx(0.74)
        for trade in trades:
            assert trade.notional <= 2500.0

    def test_second_call_is_ignored(self, feed, clock):
        engine = build_engine(feed, clock)
        engine.generate_demo_trades()

        assert engine.generate_demo_trades() == []
        assert len(engine.get_trades()) == 2
