#!/usr/bin/env python3
import os
import math
import argparse
from typing import Mapping, NamedTuple, Optional, Sequence

from dotenv import load_dotenv
from web3 import Web3

import constants
from analysis.models import Token
from exceptions import ConfigurationError


class AppConfig(NamedTuple):
    """Typed configuration object."""
    rpc_url: str
    source_a_address: str
    source_b_address: str
    reference_token: Token
    tokens: list[Token]
    trade_amount: float
    min_profit: float
    interval: int
    rpc_timeout: float
    db_path: str
    concurrent_pairs: bool
    halt_on_return_leg_failure: bool
    telegram_enabled: bool
    telegram_bot_token: Optional[str]
    telegram_chat_id: Optional[str]
    alert_cooldown: int
    show_opportunities: bool
    show_price_checks: bool
    show_limit: int
    show_pair: Optional[str]
    log_level: str


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Watch two DEX routers for round-trip arbitrage against USDC and log every check.",
        epilog="Example: ./main.py --token WETH WMATIC --min-profit 2.5 --interval 15"
    )
    parser.add_argument('--token', nargs='+', help=f'Token symbols to monitor (default: ${constants.TOKENS_TO_MONITOR_ENV_VAR}).')
    parser.add_argument('--trade-amount', type=str, help=f'Trade size in USDC (default: ${constants.TRADE_AMOUNT_ENV_VAR} or {constants.DEFAULT_TRADE_AMOUNT}).')
    parser.add_argument('--min-profit', type=str, help=f'Minimum profit in USDC to log an opportunity (default: ${constants.MIN_PROFIT_ENV_VAR} or {constants.DEFAULT_MIN_PROFIT}).')
    parser.add_argument('--interval', type=str, help=f'Seconds to wait between poll cycles (default: ${constants.POLL_INTERVAL_ENV_VAR} or {constants.DEFAULT_POLL_INTERVAL}).')
    parser.add_argument('--rpc-url', type=str, help=f'JSON-RPC endpoint (default: ${constants.RPC_URL_ENV_VAR}).')
    parser.add_argument('--rpc-timeout', type=float, default=constants.DEFAULT_RPC_TIMEOUT, help=f'Timeout in seconds for each quote call (default: {constants.DEFAULT_RPC_TIMEOUT}).')
    parser.add_argument('--db-path', type=str, help=f'SQLite database file (default: ${constants.DB_PATH_ENV_VAR} or {constants.DEFAULT_DB_PATH}).')
    parser.add_argument('--concurrent-pairs', action='store_true', help='Check all pairs of a cycle concurrently; one pair failing does not affect the others.')
    parser.add_argument('--halt-on-return-leg-failure', action='store_true', help='Stop the process when the second quote of a round trip fails instead of skipping that direction.')
    parser.add_argument('--telegram-enabled', action='store_true', help='Send a Telegram alert for each opportunity.')
    parser.add_argument('--alert-cooldown', type=int, default=constants.DEFAULT_ALERT_COOLDOWN, help=f'Seconds before re-alerting the same route (default: {constants.DEFAULT_ALERT_COOLDOWN}).')
    parser.add_argument('--show-opportunities', action='store_true', help='Print recently logged opportunities and exit.')
    parser.add_argument('--show-price-checks', action='store_true', help='Print recently logged price checks and exit.')
    parser.add_argument('--limit', type=int, default=20, help='Number of rows shown by --show-opportunities or --show-price-checks (default: 20).')
    parser.add_argument('--pair', type=str, help='Filter the --show-* listings by pair, e.g. WETH/USDC.')
    parser.add_argument('--log-level', type=str, help=f'Logging level (default: ${constants.LOG_LEVEL_ENV_VAR} or INFO).')
    return parser


def load_config(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Parses command-line arguments and environment variables into an AppConfig.

    Raises ConfigurationError for anything missing or malformed, before any
    network or database activity.
    """
    args = build_parser().parse_args(argv)
    if environ is None:
        load_dotenv()
        environ = os.environ

    db_path = args.db_path or environ.get(constants.DB_PATH_ENV_VAR) or constants.DEFAULT_DB_PATH
    log_level = (args.log_level or environ.get(constants.LOG_LEVEL_ENV_VAR) or 'INFO').upper()

    if args.limit <= 0:
        raise ConfigurationError("--limit must be positive.")

    if args.show_opportunities or args.show_price_checks:
        return AppConfig(
            rpc_url='',
            source_a_address='',
            source_b_address='',
            reference_token=Token(constants.REFERENCE_SYMBOL, '', constants.TOKEN_DECIMALS[constants.REFERENCE_SYMBOL]),
            tokens=[],
            trade_amount=0.0,
            min_profit=0.0,
            interval=0,
            rpc_timeout=args.rpc_timeout,
            db_path=db_path,
            concurrent_pairs=False,
            halt_on_return_leg_failure=False,
            telegram_enabled=False,
            telegram_bot_token=None,
            telegram_chat_id=None,
            alert_cooldown=args.alert_cooldown,
            show_opportunities=args.show_opportunities,
            show_price_checks=args.show_price_checks,
            show_limit=args.limit,
            show_pair=args.pair.upper() if args.pair else None,
            log_level=log_level,
        )

    trade_amount = _parse_number(args.trade_amount, environ, constants.TRADE_AMOUNT_ENV_VAR, constants.DEFAULT_TRADE_AMOUNT, float)
    min_profit = _parse_number(args.min_profit, environ, constants.MIN_PROFIT_ENV_VAR, constants.DEFAULT_MIN_PROFIT, float)
    interval = _parse_number(args.interval, environ, constants.POLL_INTERVAL_ENV_VAR, constants.DEFAULT_POLL_INTERVAL, int)
    if trade_amount < 0:
        raise ConfigurationError("Trade amount must not be negative.")
    if interval <= 0:
        raise ConfigurationError("Poll interval must be a positive number of seconds.")
    if not math.isfinite(args.rpc_timeout) or args.rpc_timeout <= 0:
        raise ConfigurationError("--rpc-timeout must be positive.")
    if args.alert_cooldown < 0:
        raise ConfigurationError("--alert-cooldown must not be negative.")

    rpc_url = args.rpc_url or _require(environ, constants.RPC_URL_ENV_VAR)
    source_a_address = _parse_address(_require(environ, constants.DEX_QUICKSWAP_ENV_VAR), constants.DEX_QUICKSWAP_ENV_VAR)
    source_b_address = _parse_address(_require(environ, constants.DEX_SUSHISWAP_ENV_VAR), constants.DEX_SUSHISWAP_ENV_VAR)

    reference_key = constants.REFERENCE_SYMBOL + constants.TOKEN_ADDRESS_ENV_SUFFIX
    reference_token = Token(
        symbol=constants.REFERENCE_SYMBOL,
        address=_parse_address(_require(environ, reference_key), reference_key),
        decimals=constants.TOKEN_DECIMALS[constants.REFERENCE_SYMBOL],
    )

    if args.token:
        symbols = args.token
    else:
        symbols = _require(environ, constants.TOKENS_TO_MONITOR_ENV_VAR).split(',')
    tokens = load_tokens(symbols, environ)
    if not tokens:
        raise ConfigurationError(f"No tokens to monitor; set {constants.TOKENS_TO_MONITOR_ENV_VAR} or --token.")

    telegram_bot_token = environ.get(constants.TELEGRAM_BOT_TOKEN_ENV_VAR)
    telegram_chat_id = environ.get(constants.TELEGRAM_CHAT_ID_ENV_VAR)
    if args.telegram_enabled and not (telegram_bot_token and telegram_chat_id):
        raise ConfigurationError(
            f"Telegram is enabled, but {constants.TELEGRAM_BOT_TOKEN_ENV_VAR} or {constants.TELEGRAM_CHAT_ID_ENV_VAR} are not set."
        )

    return AppConfig(
        rpc_url=rpc_url,
        source_a_address=source_a_address,
        source_b_address=source_b_address,
        reference_token=reference_token,
        tokens=tokens,
        trade_amount=trade_amount,
        min_profit=min_profit,
        interval=interval,
        rpc_timeout=args.rpc_timeout,
        db_path=db_path,
        concurrent_pairs=args.concurrent_pairs,
        halt_on_return_leg_failure=args.halt_on_return_leg_failure,
        telegram_enabled=args.telegram_enabled,
        telegram_bot_token=telegram_bot_token,
        telegram_chat_id=telegram_chat_id,
        alert_cooldown=args.alert_cooldown,
        show_opportunities=False,
        show_price_checks=False,
        show_limit=args.limit,
        show_pair=None,
        log_level=log_level,
    )


def load_tokens(symbols: Sequence[str], environ: Mapping[str, str]) -> list[Token]:
    """Builds the monitored token list; each symbol needs <SYMBOL>_ADDRESS and a known decimals entry."""
    tokens: list[Token] = []
    seen: set[str] = set()
    for raw_symbol in symbols:
        symbol = raw_symbol.strip().upper()
        if not symbol or symbol in seen:
            continue
        if symbol == constants.REFERENCE_SYMBOL:
            raise ConfigurationError(f"{symbol} is the reference asset and cannot be monitored against itself.")
        decimals = constants.TOKEN_DECIMALS.get(symbol)
        if decimals is None:
            raise ConfigurationError(f"Decimals for token {symbol} are not defined.")
        address_key = symbol + constants.TOKEN_ADDRESS_ENV_SUFFIX
        address = _parse_address(_require(environ, address_key), address_key)
        tokens.append(Token(symbol=symbol, address=address, decimals=decimals))
        seen.add(symbol)
    return tokens


def _require(environ: Mapping[str, str], key: str) -> str:
    value = environ.get(key)
    if not value or not value.strip():
        raise ConfigurationError(f"{key} must be set.")
    return value.strip()


def _parse_address(value: str, key: str) -> str:
    if not Web3.is_address(value):
        raise ConfigurationError(f"{key} is not a valid address: {value}")
    return Web3.to_checksum_address(value)


def _parse_number(cli_value: Optional[str], environ: Mapping[str, str], key: str, default: str, cast):
    raw = cli_value if cli_value is not None else environ.get(key, default)
    try:
        value = cast(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Can't parse {key}: {raw!r}") from None
    if not math.isfinite(value):
        raise ConfigurationError(f"{key} must be a finite number: {raw!r}")
    return value
