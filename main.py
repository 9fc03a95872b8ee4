#!/usr/bin/env python3
import asyncio
import logging
import sys
from typing import Optional, Sequence

import aiohttp
from telegram import Bot

import constants
from analysis.pair_monitor import PairMonitor
from config import AppConfig, load_config
from exceptions import ArbitrageError, ConfigurationError
from scanner import ArbitrageScanner
from services.router_quote_client import RouterQuoteClient
from services.telegram_notifier import TelegramNotifier
from storage import SQLiteRepository
from storage.models import OpportunityRecord, PriceCheckRecord


async def run(config: AppConfig, max_cycles: Optional[int] = None) -> None:
    """Opens the store and the shared HTTP session, then polls until stopped."""
    repository = SQLiteRepository(config.db_path)
    print(f"DB connected ok ({config.db_path}). Tables are ready.")

    notifier = None
    session = aiohttp.ClientSession(headers={'User-Agent': 'DexArbDetector/1.0'})
    try:
        source_a = RouterQuoteClient(
            session,
            name=constants.SOURCE_A_NAME,
            router_address=config.source_a_address,
            rpc_url=config.rpc_url,
            timeout=config.rpc_timeout,
        )
        source_b = RouterQuoteClient(
            session,
            name=constants.SOURCE_B_NAME,
            router_address=config.source_b_address,
            rpc_url=config.rpc_url,
            timeout=config.rpc_timeout,
        )
        pair_monitor = PairMonitor(
            source_a,
            source_b,
            halt_on_return_leg_failure=config.halt_on_return_leg_failure,
        )

        if config.telegram_enabled:
            notifier = TelegramNotifier(
                Bot(config.telegram_bot_token),
                config.telegram_chat_id,
                config.alert_cooldown,
                reference_symbol=config.reference_token.symbol,
            )
            await notifier.initialize()
            print("Telegram notifier initialised.")

        scanner = ArbitrageScanner(config, pair_monitor, repository, notifier)
        scanner.print_settings()
        await scanner.start(max_cycles=max_cycles)
    finally:
        await session.close()
        if notifier:
            await notifier.close()
        await repository.close()


async def show_records(config: AppConfig) -> tuple[list[OpportunityRecord], list[PriceCheckRecord]]:
    """Reads the rows requested by --show-opportunities / --show-price-checks."""
    repository = SQLiteRepository(config.db_path)
    opportunities: list[OpportunityRecord] = []
    price_checks: list[PriceCheckRecord] = []
    try:
        if config.show_opportunities:
            opportunities = await repository.fetch_recent_opportunities(limit=config.show_limit, token_pair=config.show_pair)
        if config.show_price_checks:
            price_checks = await repository.fetch_recent_price_checks(limit=config.show_limit, token_pair=config.show_pair)
    finally:
        await repository.close()
    return opportunities, price_checks


def main(argv: Optional[Sequence[str]] = None) -> int:
    """The main synchronous entry point for the application."""
    try:
        config = load_config(argv)
    except ConfigurationError as exc:
        print(f"{constants.C_RED}Configuration error: {exc}{constants.C_RESET}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if config.show_opportunities or config.show_price_checks:
        try:
            opportunities, price_checks = asyncio.run(show_records(config))
        except ArbitrageError as exc:
            print(f"{constants.C_RED}{exc}{constants.C_RESET}", file=sys.stderr)
            return 1
        if config.show_opportunities:
            _print_opportunity_records(opportunities, config.show_limit, config.show_pair)
        if config.show_price_checks:
            _print_price_check_records(price_checks, config.show_limit, config.show_pair)
        return 0

    print("\n Arb Bot Starting Up... ")
    print("--------------------------")
    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        print("Stopped.")
        return 0
    except ArbitrageError as exc:
        print(f"{constants.C_RED}Fatal: {exc}{constants.C_RESET}", file=sys.stderr)
        return 1
    return 0


def _print_heading(kind: str, limit: int, pair: str | None) -> None:
    heading = f"Showing up to {limit} {kind}"
    if pair:
        heading += f" (pair={pair})"
    print(heading)
    print("=" * len(heading))


def _print_table(headers: list[str], rows: list[list[str]]) -> None:
    widths = [len(h) for h in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    def _format_line(row: list[str]) -> str:
        return "  ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(row))

    print(_format_line(headers))
    print("  ".join('-' * w for w in widths))
    for row in rows:
        print(_format_line(row))


def _print_opportunity_records(records: list[OpportunityRecord], limit: int, pair: str | None) -> None:
    _print_heading("opportunities", limit, pair)
    if not records:
        print("No opportunities found.")
        return

    headers = ["Time (UTC)", "Pair", "Buy", "Sell", "In", "Out", "Profit"]
    rows = [
        [
            rec.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            rec.token_pair,
            rec.buy_dex,
            rec.sell_dex,
            f"{rec.amount_in:.2f}",
            f"{rec.amount_out:.4f}",
            f"{rec.profit:+.4f}",
        ]
        for rec in records
    ]
    _print_table(headers, rows)


def _print_price_check_records(records: list[PriceCheckRecord], limit: int, pair: str | None) -> None:
    _print_heading("price checks", limit, pair)
    if not records:
        print("No price checks found.")
        return

    headers = ["Time (UTC)", "Pair", "Buy", "Sell", "Profit"]
    rows = [
        [
            rec.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            rec.token_pair,
            rec.buy_dex,
            rec.sell_dex,
            f"{rec.profit:+.4f}",
        ]
        for rec in records
    ]
    _print_table(headers, rows)


if __name__ == "__main__":
    sys.exit(main())
