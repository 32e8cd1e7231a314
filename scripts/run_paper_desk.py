#!/usr/bin/env python3
"""Paper desk runner.

Reads trading alerts, executes qualifying signals against the paper account,
refreshes mock prices on a fixed interval and prints a performance report on
exit.

Usage:
    python scripts/run_paper_desk.py --input alerts.txt --ticks 20
    cat alerts.txt | python scripts/run_paper_desk.py --input -
    python scripts/run_paper_desk.py --demo 10 --ticks 50 --interval 0
    python scripts/run_paper_desk.py --telegram            # poll the bot until Ctrl+C
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from src.utils.logging import configure_logging

logger = structlog.get_logger()

from config.settings import settings
from config.validators import validate_risk_settings, validate_telegram
from src.analytics import AnalyticsEngine, format_report
from src.exceptions import ExecutionError, FeedError
from src.paper_trading import (
    MockPriceFeed,
    PaperTradingEngine,
    PriceTicker,
    SignalDesk,
    TelegramAlerter,
)
from src.risk import RiskManager, RiskSettings
from src.signals import SignalParser, SignalSimulator
from src.signals.sources import StaticMessageSource, TelegramMessageSource


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Paper trading desk for chat alerts")
    parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="File of alerts, one per line ('-' for stdin)",
    )
    parser.add_argument(
        "--channel",
        type=str,
        default="cli",
        help="Channel id attached to file/stdin alerts",
    )
    parser.add_argument(
        "--telegram",
        action="store_true",
        help="Poll the configured Telegram bot for alerts",
    )
    parser.add_argument(
        "--demo",
        type=int,
        default=0,
        help="Execute N simulated signals before processing input",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=10,
        help="Price refresh passes to run (ignored with --telegram)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.PRICE_REFRESH_INTERVAL_SECONDS,
        help=f"Seconds between price refreshes (default: {settings.PRICE_REFRESH_INTERVAL_SECONDS})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=settings.PRICE_FEED_SEED,
        help="Seed for the mock price feed",
    )
    parser.add_argument(
        "--alerts",
        action="store_true",
        help="Send trade notifications to TELEGRAM_CHAT_ID",
    )
    parser.add_argument(
        "--close-all",
        action="store_true",
        help="Close remaining open trades before reporting",
    )
    return parser.parse_args()


def _read_lines(path: str) -> list[str]:
    if path == "-":
        return sys.stdin.readlines()
    return Path(path).read_text(encoding="utf-8").splitlines()


def build_desk(args: argparse.Namespace) -> SignalDesk:
    risk_manager = RiskManager(RiskSettings.from_config())
    engine = PaperTradingEngine(
        risk_manager=risk_manager,
        price_feed=MockPriceFeed.from_settings(seed=args.seed),
    )
    alerter = TelegramAlerter() if args.alerts else None
    return SignalDesk(engine=engine, parser=SignalParser.from_settings(), alerter=alerter)


def run_demo(desk: SignalDesk, count: int, seed: int | None) -> None:
    simulator = SignalSimulator(seed=seed)
    for _ in range(count):
        sig = simulator.simulate_random()
        try:
            desk.engine.execute_signal(sig)
        except ExecutionError as exc:
            logger.info("demo_signal_rejected", signal_id=sig.id, reason=str(exc))


def print_report(desk: SignalDesk) -> None:
    engine = desk.engine
    analytics = AnalyticsEngine(initial_balance=settings.INITIAL_BALANCE)
    trades = engine.get_trades()
    print(
        format_report(
            analytics.calculate_performance_metrics(trades),
            analytics.calculate_advanced_metrics(trades),
            account=engine.get_account(),
            portfolio_heat=engine.get_portfolio_heat(),
        )
    )


async def main(args: argparse.Namespace) -> None:
    validate_risk_settings()
    if args.telegram or args.alerts:
        validate_telegram()

    desk = build_desk(args)
    engine = desk.engine

    async def _notify_closed(trades) -> None:
        if desk.alerter is not None:
            for trade in trades:
                await desk.alerter.send_trade_closed(trade)

    ticker = PriceTicker(engine, interval=args.interval, on_closed=_notify_closed)

    if args.demo:
        run_demo(desk, args.demo, args.seed)

    if args.input:
        source = StaticMessageSource.from_lines(_read_lines(args.input), channel_id=args.channel)
        results = await desk.poll(source)
        for result in results:
            if result.executed:
                print(f"EXECUTED  {result.text}")
            elif result.parsed:
                print(f"REJECTED  {result.text}  ({result.failure}: {result.error})")

    try:
        if args.telegram:
            await _poll_telegram(desk, ticker)
        else:
            await ticker.run(iterations=args.ticks)

        if args.close_all:
            for trade in engine.get_open_trades():
                await _notify_closed([engine.close_trade(trade.id, reason="session end")])
    finally:
        if desk.alerter is not None:
            await desk.alerter.close()

    print_report(desk)


async def _poll_telegram(desk: SignalDesk, ticker: PriceTicker) -> None:
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    source = TelegramMessageSource()
    await source.connect()
    ticker.start()
    try:
        while not shutdown_event.is_set():
            try:
                await desk.poll(source)
            except FeedError as exc:
                logger.error("telegram_poll_failed", error=str(exc))

            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=ticker.interval)
            except asyncio.TimeoutError:
                pass
    finally:
        try:
            await ticker.stop()
        finally:
            await source.disconnect()


if __name__ == "__main__":
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(main(parse_args()))
