#!/usr/bin/env python3
from typing import Dict

# --- ANSI Color Codes ---
C_GREEN = '\033[92m'
C_RED = '\033[91m'
C_YELLOW = '\033[93m'
C_BLUE = '\033[94m'
C_RESET = '\033[0m'

# --- Environment Variable Names ---
RPC_URL_ENV_VAR = 'RPC_URL'
DEX_QUICKSWAP_ENV_VAR = 'DEX_QUICKSWAP'
DEX_SUSHISWAP_ENV_VAR = 'DEX_SUSHISWAP'
TOKENS_TO_MONITOR_ENV_VAR = 'TOKENS_TO_MONITOR'
TRADE_AMOUNT_ENV_VAR = 'TRADE_AMOUNT_USDC'
MIN_PROFIT_ENV_VAR = 'MIN_PROFIT_USDC'
POLL_INTERVAL_ENV_VAR = 'POLL_INTERVAL_SECS'
DB_PATH_ENV_VAR = 'ARB_DB_PATH'
LOG_LEVEL_ENV_VAR = 'LOG_LEVEL'
TELEGRAM_BOT_TOKEN_ENV_VAR = 'TELEGRAM_BOT_TOKEN'
TELEGRAM_CHAT_ID_ENV_VAR = 'TELEGRAM_CHAT_ID'
TOKEN_ADDRESS_ENV_SUFFIX = '_ADDRESS'

# --- Defaults ---
DEFAULT_TRADE_AMOUNT = '1000.0'
DEFAULT_MIN_PROFIT = '5.0'
DEFAULT_POLL_INTERVAL = '10'
DEFAULT_RPC_TIMEOUT = 8.0
DEFAULT_ALERT_COOLDOWN = 300
DEFAULT_DB_PATH = 'arbitrage_log.db3'

# --- Price Sources ---
# Source A and Source B of every round trip, in that order.
SOURCE_A_NAME = 'QuickSwap'
SOURCE_B_NAME = 'SushiSwap'

# --- Reference Asset ---
REFERENCE_SYMBOL = 'USDC'

# Token decimals are fixed up front; there is no on-chain decimals() lookup.
TOKEN_DECIMALS: Dict[str, int] = {
    'WETH': 18,
    'WMATIC': 18,
    'DAI': 18,
    'USDC': 6,
}

# --- Router ABI ---
GET_AMOUNTS_OUT_SIG = '0xd06ca61f'  # getAmountsOut(uint256,address[])
