"""Turn free-text chat alerts into trading signals.

Three message grammars are recognised, tried in order:

1. ``BUY BTC @ $45000``
2. ``🚀 BTC Long Entry: $45000``
3. ``Signal: BUY GOLD 2000.50``

The grammar only locates the symbol and price. Direction is read separately
from a closed vocabulary of bullish/bearish words and emoji, so a message can
match the price grammar and carry its direction only in an emoji.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional

import structlog

from src.signals.models import Action, Symbol, TradingSignal
from src.utils.parsing import parse_price

logger = structlog.get_logger()

_PRICE = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"

SIGNAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    # BUY BTC @ $45000
    re.compile(r"\b(?:BUY|SELL)\s+(BTC|GOLD)\s+@?\s*\$?" + _PRICE + r"\b", re.IGNORECASE),
    # 🚀 BTC Long Entry: $45000
    re.compile(
        r"(?:🚀|📈|📉)?\s*\b(BTC|GOLD)\s+(?:Long|Short|Buy|Sell)\b.*?(?:Entry:?\s*)?\$?"
        + _PRICE
        + r"\b",
        re.IGNORECASE,
    ),
    # Signal: BUY GOLD 2000.50
    re.compile(r"Signal:?\s*(?:BUY|SELL)\s+(BTC|GOLD)\s+\$?" + _PRICE + r"\b", re.IGNORECASE),
)

BULLISH_KEYWORDS = ("buy", "long", "bullish", "🚀", "📈")
BEARISH_KEYWORDS = ("sell", "short", "bearish", "📉", "🔻")

DEFAULT_QUANTITIES: dict[Symbol, float] = {
    Symbol.BTC: 0.01,
    Symbol.GOLD: 1.0,
}


def determine_action(text: str) -> Optional[Action]:
    """Read trade direction from vocabulary; bullish words win ties."""
    lowered = text.lower()
    if any(keyword in lowered for keyword in BULLISH_KEYWORDS):
        return Action.BUY
    if any(keyword in lowered for keyword in BEARISH_KEYWORDS):
        return Action.SELL
    return None


def _to_symbol(raw: str) -> Optional[Symbol]:
    try:
        return Symbol(raw.upper())
    except ValueError:
        return None


class SignalParser:
    """Stateless text -> signal converter.

    Quantities are not read from the message; each symbol gets a fixed default
    from ``quantities``.
    """

    def __init__(self, quantities: Optional[Mapping[Symbol, float]] = None) -> None:
        self._quantities = dict(DEFAULT_QUANTITIES)
        if quantities:
            self._quantities.update(quantities)

    @classmethod
    def from_settings(cls) -> "SignalParser":
        from config.settings import settings

        return cls(
            quantities={
                Symbol.BTC: settings.DEFAULT_QUANTITY_BTC,
                Symbol.GOLD: settings.DEFAULT_QUANTITY_GOLD,
            }
        )

    def default_quantity(self, symbol: Symbol) -> float:
        return self._quantities[symbol]

    def parse(self, message_text: str, channel_id: str) -> Optional[TradingSignal]:
        """Parse ``message_text`` into a pending signal, or return None."""
        if not isinstance(message_text, str) or not message_text.strip():
            return None

        for pattern in SIGNAL_PATTERNS:
            match = pattern.search(message_text)
            if match is None:
                continue

            action = determine_action(message_text)
            symbol = _to_symbol(match.group(1))
            price = parse_price(match.group(2))

            if action is None or symbol is None or price is None:
                continue

            signal = TradingSignal(
                channel_id=channel_id,
                symbol=symbol,
                action=action,
                price=price,
                quantity=self.default_quantity(symbol),
                signal_text=message_text,
            )
            logger.debug(
                "signal_parsed",
                signal_id=signal.id,
                channel_id=channel_id,
                symbol=symbol.value,
                action=action.value,
                price=price,
            )
            return signal

        logger.debug("signal_parse_miss", channel_id=channel_id, text=message_text[:80])
        return None
