#!/usr/bin/env python3
import time
from typing import Dict, Optional

from telegram import Bot
from telegram.error import TelegramError

from analysis.models import Opportunity
from constants import C_RED, C_RESET, C_YELLOW
from exceptions import ConfigurationError


class TelegramNotifier:
    """Sends opportunity alerts to a Telegram chat, at most once per route per cooldown."""

    def __init__(self, bot: Bot, chat_id: str, alert_cooldown: int, reference_symbol: str = "USDC"):
        self.bot = bot
        self.chat_id = chat_id
        self.alert_cooldown = alert_cooldown
        self.reference_symbol = reference_symbol
        self.alert_cache: Dict[str, float] = {}

    async def initialize(self) -> None:
        try:
            await self.bot.initialize()
        except TelegramError as exc:
            raise ConfigurationError(f"Telegram bot could not be initialised: {exc}") from exc

    async def notify(self, opp: Opportunity, now: Optional[float] = None) -> bool:
        """Returns True when a message was sent."""
        now = time.time() if now is None else now
        opp_key = f"{opp.token_pair}-{opp.buy_source}-{opp.sell_source}"
        last_sent = self.alert_cache.get(opp_key)
        if last_sent is not None and (now - last_sent) < self.alert_cooldown:
            print(f"{C_YELLOW}Skipping notification for {opp.token_pair} (cooldown).{C_RESET}")
            return False

        try:
            await self.bot.send_message(
                chat_id=self.chat_id,
                text=self.format_message(opp),
                parse_mode='HTML'
            )
        except TelegramError as exc:
            print(f"{C_RED}Failed to send Telegram alert for {opp.token_pair}: {exc}{C_RESET}")
            return False

        self.alert_cache[opp_key] = now
        return True

    def prune(self, now: Optional[float] = None) -> None:
        """Removes expired entries from the alert cache."""
        now = time.time() if now is None else now
        self.alert_cache = {k: v for k, v in self.alert_cache.items() if (now - v) < self.alert_cooldown}

    def format_message(self, opp: Opportunity) -> str:
        symbol = self.reference_symbol
        return "\n".join([
            f"⚡ <b>Arbitrage: {opp.token_pair}</b>",
            "",
            f"<b>Route:</b> Buy on {opp.buy_source} -> Sell on {opp.sell_source}",
            f"<b>In:</b> {opp.amount_in:,.2f} {symbol} | <b>Out:</b> {opp.amount_out:,.4f} {symbol}",
            f"<b>Profit:</b> {opp.profit:+.4f} {symbol}",
            "",
            "<i>Quotes only; gas and slippage are not included.</i>",
        ])

    async def close(self) -> None:
        await self.bot.shutdown()
