"""Tests for Telegram trade alerts."""

from datetime import datetime, timezone

import httpx
import pytest

from src.execution.models import PaperTrade, TradeStatus
from src.paper_trading.alerts import TelegramAlerter
from src.signals.models import Action, Symbol, TradingSignal

SEND_URL = "https://api.telegram.org/bot123:TOKEN/sendMessage"


@pytest.fixture
def alerter():
    return TelegramAlerter(bot_token="123:TOKEN", chat_id="42")


@pytest.fixture
def closed_trade():
    return PaperTrade(
        signal_id="s",
        symbol=Symbol.BTC,
        action=Action.BUY,
        entry_price=44500.0,
        quantity=0.1,
        executed_at=datetime(2026, 1, 7, tzinfo=timezone.utc),
        current_price=46000.0,
        pnl=150.0,
        return_percentage=3.37,
        status=TradeStatus.CLOSED,
        close_reason="manual",
    )


class TestTelegramAlerter:
    def test_configured(self, alerter):
        assert alerter.is_configured

    @pytest.mark.asyncio
    async def test_unconfigured_does_not_send(self):
        alerter = TelegramAlerter(bot_token="123:TOKEN")
        alerter.chat_id = ""

        assert await alerter.send_custom_alert("hello") is False
        assert alerter._client is None

    @pytest.mark.asyncio
    async def test_trade_closed_message(self, alerter, closed_trade, respx_mock):
        route = respx_mock.post(SEND_URL).mock(return_value=httpx.Response(200, json={"ok": True}))

        assert await alerter.send_trade_closed(closed_trade) is True

        body = route.calls.last.request.content.decode()
        assert "PAPER TRADE CLOSED" in body
        assert "WIN" in body
        assert '"chat_id":"42"' in body.replace(" ", "")
        await alerter.close()

    @pytest.mark.asyncio
    async def test_signal_rejected_message(self, alerter, respx_mock):
        route = respx_mock.post(SEND_URL).mock(return_value=httpx.Response(200, json={"ok": True}))
        signal = TradingSignal(
            channel_id="c",
            symbol=Symbol.GOLD,
            action=Action.SELL,
            price=2000.0,
            quantity=1.0,
            signal_text="SELL GOLD @ 2000",
        )

        assert await alerter.send_signal_rejected(signal, "Maximum open positions reached (5)")
        assert "SIGNAL REJECTED" in route.calls.last.request.content.decode()
        await alerter.close()

    @pytest.mark.asyncio
    async def test_api_error_returns_false(self, alerter, closed_trade, respx_mock):
        respx_mock.post(SEND_URL).mock(return_value=httpx.Response(400, text="bad request"))

        assert await alerter.send_trade_opened(closed_trade) is False
        await alerter.close()

    @pytest.mark.asyncio
    async def test_transport_error_returns_false(self, alerter, respx_mock):
        respx_mock.post(SEND_URL).mock(side_effect=httpx.ConnectError("down"))

        assert await alerter.send_custom_alert("ping") is False
        await alerter.close()
