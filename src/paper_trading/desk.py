# src/paper_trading/desk.py
"""Signal desk: chat text in, paper trades out.

Glues the parser, the optional external scorer and the trading engine into
the intake pipeline. Execution failures are captured on the result rather
than raised, since a rejected signal only affects that one message.
"""

from dataclasses import dataclass, replace
from typing import Optional

import structlog

from src.exceptions import ExecutionError
from src.execution.models import PaperTrade
from src.paper_trading.alerts import TelegramAlerter
from src.paper_trading.engine import PaperTradingEngine
from src.signals.models import TradingSignal
from src.signals.parser import SignalParser
from src.signals.sources import ChannelMessage, MessageSource, SignalScorer

logger = structlog.get_logger()


@dataclass
class DeskResult:
    """What happened to one incoming message."""

    channel_id: str
    text: str
    signal: Optional[TradingSignal] = None
    trade: Optional[PaperTrade] = None
    error: Optional[str] = None
    failure: Optional[str] = None  # exception class name

    @property
    def parsed(self) -> bool:
        return self.signal is not None

    @property
    def executed(self) -> bool:
        return self.trade is not None


class SignalDesk:
    """Parse, annotate and execute incoming alerts."""

    def __init__(
        self,
        engine: PaperTradingEngine,
        parser: Optional[SignalParser] = None,
        scorer: Optional[SignalScorer] = None,
        alerter: Optional[TelegramAlerter] = None,
    ) -> None:
        self.engine = engine
        self.parser = parser or SignalParser.from_settings()
        self.scorer = scorer
        self.alerter = alerter
        self._signals: list[TradingSignal] = []

    def get_signals(self) -> list[TradingSignal]:
        return [replace(s) for s in self._signals]

    def ingest(self, text: str, channel_id: str) -> DeskResult:
        result = DeskResult(channel_id=channel_id, text=text)

        signal = self.parser.parse(text, channel_id)
        if signal is None:
            return result

        self._annotate(signal)
        self._signals.append(signal)
        result.signal = signal

        try:
            result.trade = self.engine.execute_signal(signal)
        except ExecutionError as exc:
            result.error = str(exc)
            result.failure = type(exc).__name__
            logger.info(
                "signal_not_executed",
                signal_id=signal.id,
                failure=result.failure,
                reason=result.error,
            )
        return result

    def _annotate(self, signal: TradingSignal) -> None:
        quotes = {q.symbol: q for q in self.engine.get_market_prices()}

        if self.scorer is not None:
            signal.confidence_score = self.scorer.score_signal(signal, quotes)

        quote = quotes.get(signal.symbol)
        volatility = quote.volatility if quote and quote.volatility is not None else 0.0
        signal.risk_level = self.engine.risk_manager.assess_signal_risk(signal, volatility)

    async def ingest_message(self, message: ChannelMessage) -> DeskResult:
        result = self.ingest(message.text, message.channel_id)
        if self.alerter is not None:
            if result.trade is not None:
                await self.alerter.send_trade_opened(result.trade)
            elif result.signal is not None and result.error:
                await self.alerter.send_signal_rejected(result.signal, result.error)
        return result

    async def poll(self, source: MessageSource) -> list[DeskResult]:
        """Drain one batch from ``source`` through the pipeline."""
        messages = await source.fetch_messages()
        results = [await self.ingest_message(m) for m in messages]
        if results:
            logger.info(
                "desk_batch_processed",
                messages=len(results),
                signals=sum(1 for r in results if r.parsed),
                executed=sum(1 for r in results if r.executed),
            )
        return results
