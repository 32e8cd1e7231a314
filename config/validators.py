"""Credential and configuration validators."""

import re

from src.exceptions import ConfigError

# Bot tokens look like <bot_id>:<35 char secret>
TELEGRAM_TOKEN_PATTERN = re.compile(r"^\d+:[A-Za-z0-9_-]{35}$")


def validate_telegram() -> None:
    """Raise ConfigError if Telegram credentials are missing or malformed."""
    from config.settings import settings
    if not settings.TELEGRAM_BOT_TOKEN:
        raise ConfigError("TELEGRAM_BOT_TOKEN is required")
    if not TELEGRAM_TOKEN_PATTERN.match(settings.TELEGRAM_BOT_TOKEN):
        raise ConfigError("TELEGRAM_BOT_TOKEN is not a valid bot token")


def validate_risk_settings() -> None:
    """Raise ConfigError if the configured risk defaults are unusable."""
    from config.settings import settings
    if settings.RISK_MAX_POSITION_SIZE <= 0:
        raise ConfigError("RISK_MAX_POSITION_SIZE must be positive")
    if settings.RISK_MAX_OPEN_POSITIONS < 1:
        raise ConfigError("RISK_MAX_OPEN_POSITIONS must be at least 1")
    if not 0 < settings.RISK_PER_TRADE_PCT <= 100:
        raise ConfigError("RISK_PER_TRADE_PCT must be in (0, 100]")
    if settings.RISK_STOP_LOSS_PCT < 0 or settings.RISK_TAKE_PROFIT_PCT < 0:
        raise ConfigError("stop-loss and take-profit percentages must be >= 0")
