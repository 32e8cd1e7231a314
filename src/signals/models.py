"""Trading signal data structures."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from src.exceptions import SignalStateError


class Symbol(str, Enum):
    """Instruments the desk can paper trade."""

    BTC = "BTC"
    GOLD = "GOLD"


class Action(str, Enum):
    """Trade direction."""

    BUY = "BUY"
    SELL = "SELL"


class SignalStatus(str, Enum):
    PENDING = "pending"
    EXECUTED = "executed"
    FAILED = "failed"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def new_signal_id() -> str:
    return f"signal_{uuid.uuid4().hex[:12]}"


@dataclass
class TradingSignal:
    """A structured trade proposal derived from free text.

    Only ``status`` is changed after creation, and only forward:
    pending -> executed or pending -> failed.
    """

    channel_id: str
    symbol: Symbol
    action: Action
    price: float
    quantity: float
    signal_text: str
    id: str = field(default_factory=new_signal_id)
    parsed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: SignalStatus = SignalStatus.PENDING

    # Filled in by downstream collaborators, never by the parser
    confidence_score: Optional[float] = None
    risk_level: Optional[RiskLevel] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    @property
    def notional(self) -> float:
        return self.price * self.quantity

    @property
    def is_pending(self) -> bool:
        return self.status is SignalStatus.PENDING

    def mark_executed(self) -> None:
        self._transition(SignalStatus.EXECUTED)

    def mark_failed(self) -> None:
        self._transition(SignalStatus.FAILED)

    def _transition(self, target: SignalStatus) -> None:
        if self.status is not SignalStatus.PENDING:
            raise SignalStateError(
                f"signal {self.id} is {self.status.value}, cannot become {target.value}"
            )
        self.status = target
