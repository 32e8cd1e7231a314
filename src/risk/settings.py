"""Risk policy settings."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from src.exceptions import ConfigError


@dataclass(frozen=True)
class RiskSettings:
    """Risk policy applied to every execution decision.

    Percentages are expressed in percent (2.0 means 2%).
    """

    max_daily_loss: float = 2000.0
    max_position_size: float = 5000.0
    stop_loss_percentage: float = 2.0
    take_profit_percentage: float = 4.0
    max_open_positions: int = 5
    risk_per_trade: float = 25.0
    enable_auto_stop_loss: bool = True
    enable_auto_take_profit: bool = True
    enable_daily_loss_limit: bool = True

    @classmethod
    def from_config(cls) -> "RiskSettings":
        """Build the default policy from ``config.settings``."""
        from config.settings import settings

        return cls(
            max_daily_loss=settings.RISK_MAX_DAILY_LOSS,
            max_position_size=settings.RISK_MAX_POSITION_SIZE,
            stop_loss_percentage=settings.RISK_STOP_LOSS_PCT,
            take_profit_percentage=settings.RISK_TAKE_PROFIT_PCT,
            max_open_positions=settings.RISK_MAX_OPEN_POSITIONS,
            risk_per_trade=settings.RISK_PER_TRADE_PCT,
            enable_auto_stop_loss=settings.RISK_ENABLE_AUTO_STOP_LOSS,
            enable_auto_take_profit=settings.RISK_ENABLE_AUTO_TAKE_PROFIT,
            enable_daily_loss_limit=settings.RISK_ENABLE_DAILY_LOSS_LIMIT,
        )

    def updated(self, **changes: Any) -> "RiskSettings":
        """Return a copy with ``changes`` applied.

        Unknown keys and out-of-range values raise ConfigError.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ConfigError(f"unknown risk settings: {', '.join(sorted(unknown))}")
        new = replace(self, **changes)
        new.check_ranges()
        return new

    def check_ranges(self) -> None:
        """Raise ConfigError for values the risk rules cannot work with."""
        if self.max_position_size <= 0:
            raise ConfigError("max_position_size must be positive")
        if self.max_open_positions < 1:
            raise ConfigError("max_open_positions must be at least 1")
        if not 0 < self.risk_per_trade <= 100:
            raise ConfigError("risk_per_trade must be in (0, 100]")
        if self.stop_loss_percentage < 0 or self.take_profit_percentage < 0:
            raise ConfigError("stop-loss and take-profit percentages must be >= 0")
        if self.max_daily_loss < 0:
            raise ConfigError("max_daily_loss must be >= 0")

    def max_position_value(self, balance: float) -> float:
        """Notional cap for one position at the given balance."""
        return min(self.max_position_size, balance * (self.risk_per_trade / 100.0))

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
