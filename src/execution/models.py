"""Shared data structures for paper trade execution."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from src.signals.models import Action, Symbol


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@dataclass(slots=True)
class PaperTrade:
    """A simulated position opened from an executed signal."""

    signal_id: str
    symbol: Symbol
    action: Action
    entry_price: float
    quantity: float
    executed_at: datetime
    id: str = field(default_factory=lambda: f"trade_{uuid.uuid4().hex[:12]}")
    current_price: Optional[float] = None
    pnl: float = 0.0
    status: TradeStatus = TradeStatus.OPEN
    closed_at: Optional[datetime] = None
    close_reason: Optional[str] = None

    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    max_drawdown: float = 0.0

    holding_period: float = 0.0  # minutes
    return_percentage: float = 0.0

    @property
    def notional(self) -> float:
        """Entry value of the position."""
        return self.entry_price * self.quantity

    @property
    def is_open(self) -> bool:
        return self.status is TradeStatus.OPEN


@dataclass(slots=True)
class TradingAccount:
    """The single simulated cash account."""

    balance: float
    id: str = "paper_default"
    account_name: str = "Paper Trading Account"
    account_type: str = "paper"
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    # Overrides RiskSettings.max_daily_loss when set
    max_daily_loss: Optional[float] = None
    daily_loss_used: float = 0.0
    last_reset_date: Optional[datetime] = None


@dataclass(slots=True)
class MarketPrice:
    """Quote state for one symbol in the mock feed."""

    symbol: Symbol
    price: float
    change_24h: float
    last_updated: datetime = field(default_factory=utcnow)

    # Indicator fields, only consumed by scoring collaborators
    rsi: Optional[float] = None
    macd: Optional[float] = None
    volume_24h: Optional[float] = None
    volatility: Optional[float] = None
