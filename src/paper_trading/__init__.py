"""Paper trading system."""

from .alerts import TelegramAlerter
from .desk import DeskResult, SignalDesk
from .engine import PaperTradingEngine
from .price_feed import MockPriceFeed
from .ticker import PriceTicker

__all__ = [
    "PaperTradingEngine",
    "MockPriceFeed",
    "PriceTicker",
    "SignalDesk",
    "DeskResult",
    "TelegramAlerter",
]
