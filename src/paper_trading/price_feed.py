# src/paper_trading/price_feed.py
"""Mock market data for paper trading.

Two kinds of noise are modelled separately: ``tick`` moves each symbol's
reference price by a small bounded amount, and ``quote`` returns a fill price
scattered around the reference (bid/ask and slippage). Both are uniform and
bounded, so a single call can never move a price by more than half the
configured fluctuation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Optional

import numpy as np
import structlog

from src.execution.models import MarketPrice
from src.signals.models import Symbol

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MockPriceFeed:
    """Per-symbol quote table with a seedable random walk."""

    base_prices: dict[Symbol, float] = field(
        default_factory=lambda: {Symbol.BTC: 45000.0, Symbol.GOLD: 2000.0}
    )
    change_24h: dict[Symbol, float] = field(
        default_factory=lambda: {Symbol.BTC: 2.5, Symbol.GOLD: -0.8}
    )
    tick_fluctuation: float = 0.01  # +/-0.5% per tick
    quote_fluctuation: float = 0.02  # +/-1% around the reference
    seed: Optional[int] = None
    clock: Callable[[], datetime] = _utcnow

    _prices: dict[Symbol, MarketPrice] = field(default_factory=dict, init=False)
    _rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rng = np.random.default_rng(self.seed)
        now = self.clock()
        for symbol, price in self.base_prices.items():
            self._prices[symbol] = MarketPrice(
                symbol=symbol,
                price=float(price),
                change_24h=self.change_24h.get(symbol, 0.0),
                last_updated=now,
            )

    @classmethod
    def from_settings(cls, **overrides) -> "MockPriceFeed":
        from config.settings import settings

        kwargs = dict(
            base_prices={
                Symbol.BTC: settings.BASE_PRICE_BTC,
                Symbol.GOLD: settings.BASE_PRICE_GOLD,
            },
            change_24h={
                Symbol.BTC: settings.CHANGE_24H_BTC,
                Symbol.GOLD: settings.CHANGE_24H_GOLD,
            },
            tick_fluctuation=settings.PRICE_TICK_FLUCTUATION,
            quote_fluctuation=settings.QUOTE_FLUCTUATION,
            seed=settings.PRICE_FEED_SEED,
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def symbols(self) -> list[Symbol]:
        return list(self._prices)

    def _noise(self, width: float) -> float:
        return (float(self._rng.random()) - 0.5) * width

    def reference_price(self, symbol: Symbol) -> float:
        return self._prices[symbol].price

    def quote(self, symbol: Symbol) -> float:
        """A fill price near the reference, independent of the tick noise."""
        reference = self._prices[symbol].price
        return reference * (1 + self._noise(self.quote_fluctuation))

    def set_price(self, symbol: Symbol, price: float) -> None:
        """Pin the reference price, e.g. from an external feed or a test."""
        quote = self._prices[symbol]
        quote.price = float(price)
        quote.last_updated = self.clock()

    def tick(self) -> None:
        """Advance every reference price and refresh the indicator fields."""
        now = self.clock()
        for quote in self._prices.values():
            quote.price *= 1 + self._noise(self.tick_fluctuation)
            quote.last_updated = now

            # Simulated indicators
            quote.rsi = 30 + float(self._rng.random()) * 40
            quote.volatility = 0.02 + float(self._rng.random()) * 0.03
            quote.volume_24h = 1_000_000 + float(self._rng.random()) * 5_000_000

        logger.debug(
            "price_tick",
            prices={s.value: round(q.price, 2) for s, q in self._prices.items()},
        )

    def snapshot(self) -> list[MarketPrice]:
        return [replace(q) for q in self._prices.values()]

    def get(self, symbol: Symbol) -> MarketPrice:
        return replace(self._prices[symbol])
