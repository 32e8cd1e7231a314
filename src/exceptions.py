"""Custom exceptions for the Paper Desk trading system."""


class PaperDeskError(Exception):
    """Base exception for all Paper Desk errors."""


class ConfigError(PaperDeskError):
    """Missing or invalid configuration."""


class FeedError(PaperDeskError):
    """Error connecting to or reading from a message source."""


class SignalStateError(PaperDeskError):
    """Illegal status transition on a trading signal."""


class ExecutionError(PaperDeskError):
    """A signal could not be turned into a paper trade."""


class RiskRejectedError(ExecutionError):
    """The risk manager refused to execute a signal."""

    def __init__(self, reason: str, code: str = "rejected") -> None:
        super().__init__(reason)
        self.reason = reason
        self.code = code


class InsufficientBalanceError(RiskRejectedError):
    """Account balance does not cover the trade notional."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason, code="insufficient_balance")


class DuplicateSignalError(ExecutionError):
    """The signal was already processed by the engine."""


class TradeStateError(PaperDeskError):
    """A trade cannot be closed in its current state."""


class TradeNotFoundError(TradeStateError):
    """No trade exists with the given id."""


class TradeAlreadyClosedError(TradeStateError):
    """The trade has already been closed."""
