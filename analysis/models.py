#!/usr/bin/env python3
from dataclasses import dataclass


@dataclass(frozen=True)
class Token:
    """A monitored ERC-20 token with its fixed decimals."""
    symbol: str
    address: str
    decimals: int


@dataclass(frozen=True)
class Observation:
    """Result of one round-trip check in one direction."""
    token_pair: str
    buy_source: str
    sell_source: str
    amount_in: float   # reference-asset units sent into the first leg
    amount_out: float  # reference-asset units returned by the second leg
    profit: float


@dataclass(frozen=True)
class Opportunity:
    """An observation whose profit cleared the minimum-profit threshold."""
    token_pair: str
    buy_source: str
    sell_source: str
    amount_in: float
    amount_out: float
    profit: float

    @classmethod
    def from_observation(cls, observation: Observation) -> "Opportunity":
        return cls(
            token_pair=observation.token_pair,
            buy_source=observation.buy_source,
            sell_source=observation.sell_source,
            amount_in=observation.amount_in,
            amount_out=observation.amount_out,
            profit=observation.profit,
        )
