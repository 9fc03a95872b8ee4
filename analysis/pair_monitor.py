#!/usr/bin/env python3
"""Round-trip checks for a single token paired with the reference asset.

Each check sends ``trade_amount`` of the reference asset through the buy
router into the token, then sends the received tokens back through the sell
router. Both directions are checked every cycle: A -> B first, then B -> A.
"""
import logging
from typing import List, Optional

from analysis.analyzer import normalize_amount, to_smallest_unit
from analysis.models import Observation, Token
from constants import C_RESET, C_YELLOW
from exceptions import QuoteFailure
from services.router_quote_client import RouterQuoteClient

logger = logging.getLogger(__name__)


class PairMonitor:
    def __init__(
        self,
        source_a: RouterQuoteClient,
        source_b: RouterQuoteClient,
        *,
        halt_on_return_leg_failure: bool = False,
    ):
        self.source_a = source_a
        self.source_b = source_b
        self.halt_on_return_leg_failure = halt_on_return_leg_failure

    async def check_pair(self, token: Token, reference: Token, trade_amount: float) -> List[Observation]:
        """Returns up to two observations, direction A -> B before B -> A."""
        pair_name = f"{token.symbol}/{reference.symbol}"
        trade_amount_wei = to_smallest_unit(trade_amount, reference.decimals)

        observations: List[Observation] = []
        for buy_source, sell_source in ((self.source_a, self.source_b), (self.source_b, self.source_a)):
            observation = await self._check_direction(
                pair_name, token, reference, trade_amount, trade_amount_wei, buy_source, sell_source
            )
            if observation is not None:
                observations.append(observation)
        return observations

    async def _check_direction(
        self,
        pair_name: str,
        token: Token,
        reference: Token,
        trade_amount: float,
        trade_amount_wei: int,
        buy_source: RouterQuoteClient,
        sell_source: RouterQuoteClient,
    ) -> Optional[Observation]:
        direction = f"{buy_source.name} -> {sell_source.name}"
        try:
            tokens_bought = await buy_source.get_quote(trade_amount_wei, [reference.address, token.address])
        except QuoteFailure as exc:
            print(f"{C_YELLOW}Error {buy_source.name} check for {pair_name} ({direction}): {exc.cause}. Skipping.{C_RESET}")
            return None

        try:
            reference_back = await sell_source.get_quote(tokens_bought, [token.address, reference.address])
        except QuoteFailure as exc:
            if self.halt_on_return_leg_failure:
                raise
            print(f"{C_YELLOW}Error {sell_source.name} return leg for {pair_name} ({direction}): {exc.cause}. Skipping.{C_RESET}")
            return None

        final_amount = normalize_amount(reference_back, reference.decimals)
        logger.debug(
            "%s %s: %s %s -> %s %s -> %s %s",
            pair_name, direction,
            trade_amount_wei, reference.symbol,
            tokens_bought, token.symbol,
            reference_back, reference.symbol,
        )
        return Observation(
            token_pair=pair_name,
            buy_source=buy_source.name,
            sell_source=sell_source.name,
            amount_in=trade_amount,
            amount_out=final_amount,
            profit=final_amount - trade_amount,
        )
