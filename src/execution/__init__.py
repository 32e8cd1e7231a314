from src.execution.models import (
    MarketPrice,
    PaperTrade,
    TradeStatus,
    TradingAccount,
)

__all__ = [
    "MarketPrice",
    "PaperTrade",
    "TradeStatus",
    "TradingAccount",
]
