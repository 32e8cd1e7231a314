"""Signal parsing and message intake."""

from .models import Action, RiskLevel, SignalStatus, Symbol, TradingSignal
from .parser import SignalParser, determine_action
from .simulator import SignalSimulator

__all__ = [
    "Action",
    "RiskLevel",
    "SignalStatus",
    "Symbol",
    "TradingSignal",
    "SignalParser",
    "SignalSimulator",
    "determine_action",
]
