"""Synthetic signals for demos and soak runs."""

from __future__ import annotations

from typing import Mapping, Optional

import numpy as np

from src.signals.models import Action, Symbol, TradingSignal
from src.signals.parser import DEFAULT_QUANTITIES

# (centre price, half-width of the uniform band)
PRICE_BANDS: dict[Symbol, tuple[float, float]] = {
    Symbol.BTC: (45000.0, 1000.0),
    Symbol.GOLD: (2000.0, 50.0),
}


class SignalSimulator:
    """Produce pending signals as if they had arrived from a demo channel."""

    def __init__(
        self,
        seed: Optional[int] = None,
        quantities: Optional[Mapping[Symbol, float]] = None,
        channel_id: str = "demo_channel",
    ) -> None:
        self._rng = np.random.default_rng(seed)
        self._quantities = dict(DEFAULT_QUANTITIES)
        if quantities:
            self._quantities.update(quantities)
        self.channel_id = channel_id

    def simulate(self, symbol: Symbol, action: Action) -> TradingSignal:
        centre, half_width = PRICE_BANDS[symbol]
        price = float(centre + (self._rng.random() - 0.5) * 2 * half_width)
        return TradingSignal(
            channel_id=self.channel_id,
            symbol=symbol,
            action=action,
            price=price,
            quantity=self._quantities[symbol],
            signal_text=f"{action.value} {symbol.value} @ ${price:.2f}",
        )

    def simulate_random(self) -> TradingSignal:
        symbols = list(Symbol)
        actions = list(Action)
        symbol = symbols[int(self._rng.integers(len(symbols)))]
        action = actions[int(self._rng.integers(len(actions)))]
        return self.simulate(symbol, action)
