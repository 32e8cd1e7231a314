"""Periodic price refresh loop."""

import asyncio
from typing import Awaitable, Callable, Optional, Union

import structlog

from src.execution.models import PaperTrade
from src.paper_trading.engine import PaperTradingEngine

logger = structlog.get_logger()

ClosedCallback = Callable[[list[PaperTrade]], Union[None, Awaitable[None]]]


class PriceTicker:
    """Call ``engine.refresh_prices()`` every ``interval`` seconds.

    A pass always finishes before the next sleep starts, so passes never
    overlap.
    """

    def __init__(
        self,
        engine: PaperTradingEngine,
        interval: Optional[float] = None,
        on_closed: Optional[ClosedCallback] = None,
    ) -> None:
        from config.settings import settings

        self.engine = engine
        self.interval = settings.PRICE_REFRESH_INTERVAL_SECONDS if interval is None else interval
        self._on_closed = on_closed
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> list[PaperTrade]:
        closed = self.engine.refresh_prices()
        self.ticks += 1
        if closed:
            logger.info(
                "positions_auto_closed",
                trade_ids=[t.id for t in closed],
                reasons=[t.close_reason for t in closed],
            )
            if self._on_closed is not None:
                result = self._on_closed(closed)
                if asyncio.iscoroutine(result):
                    await result
        return closed

    async def run(self, iterations: Optional[int] = None) -> None:
        """Tick until cancelled, or ``iterations`` times.

        A failed pass is logged and counted in ``failures``; the loop keeps
        going so later passes can still trigger exits.
        """
        count = 0
        while iterations is None or count < iterations:
            try:
                await self.tick()
            except Exception:
                self.failures += 1
                logger.exception("price_refresh_failed", failures=self.failures)
            count += 1
            if iterations is not None and count >= iterations:
                break
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self.is_running:
            return self._task
        self._task = asyncio.create_task(self.run())
        logger.info("price_ticker_started", interval=self.interval)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        (result,) = await asyncio.gather(task, return_exceptions=True)
        if isinstance(result, Exception):
            logger.error("price_ticker_crashed", error=repr(result))
            raise result
        logger.info("price_ticker_stopped", ticks=self.ticks)
