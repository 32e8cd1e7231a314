"""Telegram alerts for paper trading activity."""

from dataclasses import dataclass, field
from typing import Optional

import httpx
import structlog

from config.settings import settings
from src.execution.models import PaperTrade
from src.signals.models import TradingSignal

logger = structlog.get_logger()

# Telegram API path, appended to TELEGRAM_API_BASE
SEND_MESSAGE_PATH = "/bot{token}/sendMessage"


@dataclass
class TelegramAlerter:
    """Send trade notifications to a Telegram chat."""

    bot_token: str = ""
    chat_id: str = ""
    api_base: str = ""
    _client: Optional[httpx.AsyncClient] = field(default=None, repr=False)

    def __post_init__(self):
        self.bot_token = self.bot_token or settings.TELEGRAM_BOT_TOKEN
        self.chat_id = self.chat_id or settings.TELEGRAM_CHAT_ID
        self.api_base = (self.api_base or settings.TELEGRAM_API_BASE).rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def send_trade_opened(self, trade: PaperTrade) -> bool:
        message = f"""
*PAPER TRADE OPENED*

{trade.action.value} {trade.quantity:g} {trade.symbol.value} @ ${trade.entry_price:,.2f}
Stop: ${trade.stop_loss or 0:,.2f} | Target: ${trade.take_profit or 0:,.2f}
"""
        return await self._send(message)

    async def send_trade_closed(self, trade: PaperTrade) -> bool:
        result_text = "WIN" if trade.pnl > 0 else "LOSS" if trade.pnl < 0 else "FLAT"
        message = f"""
*PAPER TRADE CLOSED* [{result_text}]

{trade.action.value} {trade.symbol.value}: ${trade.entry_price:,.2f} -> ${trade.current_price or 0:,.2f}
P&L: ${trade.pnl:+,.2f} ({trade.return_percentage:+.2f}%)
Reason: {trade.close_reason or "manual"}
"""
        return await self._send(message)

    async def send_signal_rejected(self, signal: TradingSignal, reason: str) -> bool:
        message = f"""
*SIGNAL REJECTED*

{signal.action.value} {signal.symbol.value} @ ${signal.price:,.2f}
Reason: {reason}
"""
        return await self._send(message)

    async def send_custom_alert(self, message: str) -> bool:
        return await self._send(message)

    async def _send(self, message: str) -> bool:
        if not self.is_configured:
            logger.warning("telegram_not_configured")
            return False

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)

        url = self.api_base + SEND_MESSAGE_PATH.format(token=self.bot_token)
        payload = {
            "chat_id": self.chat_id,
            "text": message.strip(),
            "parse_mode": "Markdown",
        }

        try:
            response = await self._client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error("telegram_send_failed", error=str(e))
            return False

        if response.status_code == 200:
            logger.debug("telegram_sent", chat_id=self.chat_id)
            return True
        logger.error(
            "telegram_api_error",
            status=response.status_code,
            response=response.text,
        )
        return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
