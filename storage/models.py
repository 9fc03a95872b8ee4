"""Dataclasses representing stored arbitrage records."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class PriceCheckRecord:
    id: int
    timestamp: datetime
    token_pair: str
    buy_dex: str
    sell_dex: str
    profit: float


@dataclass(slots=True)
class OpportunityRecord:
    id: int
    timestamp: datetime
    buy_dex: str
    sell_dex: str
    token_pair: str
    amount_in: float
    amount_out: float
    profit: float
