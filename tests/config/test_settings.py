import pytest

from config.settings import Settings, settings
from config.validators import validate_risk_settings, validate_telegram
from src.exceptions import ConfigError

VALID_TOKEN = "123456:" + "A" * 35


def test_settings_account_defaults():
    s = Settings()
    assert s.INITIAL_BALANCE == 10000.0
    assert s.DEFAULT_QUANTITY_BTC == 0.01
    assert s.DEFAULT_QUANTITY_GOLD == 1.0


def test_settings_risk_defaults():
    s = Settings()
    assert s.RISK_MAX_DAILY_LOSS == 2000.0
    assert s.RISK_MAX_POSITION_SIZE == 5000.0
    assert s.RISK_STOP_LOSS_PCT == 2.0
    assert s.RISK_TAKE_PROFIT_PCT == 4.0
    assert s.RISK_MAX_OPEN_POSITIONS == 5
    assert s.RISK_PER_TRADE_PCT == 25.0


def test_settings_feed_defaults():
    s = Settings()
    assert s.BASE_PRICE_BTC == 45000.0
    assert s.BASE_PRICE_GOLD == 2000.0
    assert s.PRICE_REFRESH_INTERVAL_SECONDS == 5.0
    assert s.PRICE_FEED_SEED is None


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("RISK_MAX_OPEN_POSITIONS", "3")
    monkeypatch.setenv("INITIAL_BALANCE", "2500.5")

    s = Settings()

    assert s.RISK_MAX_OPEN_POSITIONS == 3
    assert s.INITIAL_BALANCE == 2500.5


class TestValidateTelegram:
    def test_missing_token(self, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "")
        with pytest.raises(ConfigError, match="required"):
            validate_telegram()

    def test_malformed_token(self, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", "not-a-token")
        with pytest.raises(ConfigError, match="valid"):
            validate_telegram()

    def test_valid_token(self, monkeypatch):
        monkeypatch.setattr(settings, "TELEGRAM_BOT_TOKEN", VALID_TOKEN)
        validate_telegram()


class TestValidateRiskSettings:
    def test_defaults_pass(self):
        validate_risk_settings()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("RISK_MAX_POSITION_SIZE", 0.0),
            ("RISK_MAX_OPEN_POSITIONS", 0),
            ("RISK_PER_TRADE_PCT", 0.0),
            ("RISK_PER_TRADE_PCT", 150.0),
            ("RISK_STOP_LOSS_PCT", -1.0),
        ],
    )
    def test_invalid_values(self, monkeypatch, field, value):
        monkeypatch.setattr(settings, field, value)
        with pytest.raises(ConfigError):
            validate_risk_settings()
