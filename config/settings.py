"""Runtime configuration, overridable through environment variables or ``.env``."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === Account ===
    INITIAL_BALANCE: float = 10000.0
    ACCOUNT_NAME: str = "Paper Trading Account"

    # === Signal defaults ===
    DEFAULT_QUANTITY_BTC: float = 0.01  # 0.01 BTC
    DEFAULT_QUANTITY_GOLD: float = 1.0  # 1 oz

    # === Mock price feed ===
    BASE_PRICE_BTC: float = 45000.0
    BASE_PRICE_GOLD: float = 2000.0
    CHANGE_24H_BTC: float = 2.5
    CHANGE_24H_GOLD: float = -0.8
    PRICE_TICK_FLUCTUATION: float = 0.01  # reference tick moves within +/-0.5%
    QUOTE_FLUCTUATION: float = 0.02  # trade quotes within +/-1% of reference
    PRICE_REFRESH_INTERVAL_SECONDS: float = 5.0
    PRICE_FEED_SEED: int | None = None

    # === Risk Parameters ===
    RISK_MAX_DAILY_LOSS: float = 2000.0
    RISK_MAX_POSITION_SIZE: float = 5000.0
    RISK_STOP_LOSS_PCT: float = 2.0
    RISK_TAKE_PROFIT_PCT: float = 4.0
    RISK_MAX_OPEN_POSITIONS: int = 5
    RISK_PER_TRADE_PCT: float = 25.0  # percent of balance per trade
    RISK_ENABLE_AUTO_STOP_LOSS: bool = True
    RISK_ENABLE_AUTO_TAKE_PROFIT: bool = True
    RISK_ENABLE_DAILY_LOSS_LIMIT: bool = True

    # === Telegram ===
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_POLL_TIMEOUT_SECONDS: int = 0

    # === Logging ===
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
