"""Risk management for paper trading."""

from src.risk.manager import ExitDecision, RejectCode, RiskDecision, RiskLevels, RiskManager
from src.risk.settings import RiskSettings
from src.risk.sizing import kelly_criterion, optimal_position_size

__all__ = [
    "ExitDecision",
    "RejectCode",
    "RiskDecision",
    "RiskLevels",
    "RiskManager",
    "RiskSettings",
    "kelly_criterion",
    "optimal_position_size",
]
