# scanner.py
import asyncio
from typing import List, Optional

from analysis.analyzer import OpportunityAnalyzer
from analysis.models import Observation, Opportunity, Token
from analysis.pair_monitor import PairMonitor
from config import AppConfig
from constants import C_BLUE, C_GREEN, C_RED, C_RESET
from exceptions import PersistenceError
from services.telegram_notifier import TelegramNotifier
from storage import SQLiteRepository


class ArbitrageScanner:
    def __init__(
        self,
        config: AppConfig,
        pair_monitor: PairMonitor,
        repository: SQLiteRepository,
        notifier: Optional[TelegramNotifier] = None,
    ):
        self.config = config
        self.pair_monitor = pair_monitor
        self.repository = repository
        self.notifier = notifier
        self.analyzer = OpportunityAnalyzer(config.min_profit)
        self.cycles_completed = 0

    async def start(self, max_cycles: Optional[int] = None):
        """Runs poll cycles until the process is stopped (or max_cycles is reached)."""
        await self._run_main_loop(max_cycles)

    async def _run_main_loop(self, max_cycles: Optional[int]):
        """The main application loop."""
        while max_cycles is None or self.cycles_completed < max_cycles:
            await self.run_cycle()
            self.cycles_completed += 1
            if self.notifier:
                self.notifier.prune()
            if max_cycles is not None and self.cycles_completed >= max_cycles:
                break
            print(f"--- Cycle done, sleeping {self.config.interval}s. ---")
            await asyncio.sleep(self.config.interval)

    async def run_cycle(self) -> List[Observation]:
        """Checks every configured pair once and persists the results in pair order."""
        if self.config.concurrent_pairs:
            observations = await self._check_pairs_concurrently()
        else:
            observations = []
            for token in self.config.tokens:
                observations.extend(await self._check_pair(token))

        for observation in observations:
            await self._process_observation(observation)
        return observations

    async def _check_pair(self, token: Token) -> List[Observation]:
        return await self.pair_monitor.check_pair(token, self.config.reference_token, self.config.trade_amount)

    async def _check_pairs_concurrently(self) -> List[Observation]:
        tasks = [self._check_pair(token) for token in self.config.tokens]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        observations: List[Observation] = []
        for token, result in zip(self.config.tokens, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                print(f"{C_RED}Error checking {token.symbol}/{self.config.reference_token.symbol}: {result}{C_RESET}")
                continue
            observations.extend(result)
        return observations

    async def _process_observation(self, observation: Observation) -> None:
        route = f"{observation.buy_source} -> {observation.sell_source}"
        try:
            await self.repository.record_price_check(observation)
        except PersistenceError as exc:
            print(f"{C_RED}Failed to persist price check for {observation.token_pair} ({route}): {exc}{C_RESET}")
            return

        if not self.analyzer.is_profitable(observation):
            print(f"{route} | {observation.token_pair} | profit: {observation.profit:.4f}")
            return

        opp = Opportunity.from_observation(observation)
        try:
            await self.repository.record_opportunity(opp)
        except PersistenceError as exc:
            print(f"{C_RED}Failed to persist opportunity for {opp.token_pair} ({route}): {exc}{C_RESET}")
            return

        self._print_opportunity(opp)
        if self.notifier:
            await self.notifier.notify(opp)

    def _print_opportunity(self, opp: Opportunity):
        """Formats and prints a single opportunity to the console."""
        symbol = self.config.reference_token.symbol
        print(f"{C_GREEN}>>>> PROFIT! {opp.token_pair} | {opp.buy_source} -> {opp.sell_source}"
              f" | {opp.amount_in:.2f} -> {opp.amount_out:.4f} {symbol} | profit: {opp.profit:.4f} <<<<{C_RESET}")

    def print_settings(self):
        symbol = self.config.reference_token.symbol
        print(f"Monitoring {C_BLUE}{len(self.config.tokens)}{C_RESET} token pairs: "
              + ", ".join(f"{token.symbol}/{symbol}" for token in self.config.tokens))
        print("\n--- Settings ---")
        print(f" - Trade Size: {self.config.trade_amount} {symbol}")
        print(f" - Min Profit: {self.config.min_profit} {symbol}")
        print(f" - Interval: {self.config.interval} sec\n")
