#!/usr/bin/env python3
from decimal import Decimal

from analysis.models import Observation


def is_opportunity(profit: float, min_profit: float) -> bool:
    """A profit exactly equal to the threshold does not count."""
    return profit > min_profit


def normalize_amount(amount: int, decimals: int) -> float:
    """Converts a smallest-unit integer amount into token units."""
    return amount / (10 ** decimals)


def to_smallest_unit(amount: float, decimals: int) -> int:
    scale = Decimal(10) ** decimals
    return int((Decimal(str(amount)) * scale).to_integral_value())


class OpportunityAnalyzer:
    def __init__(self, min_profit: float):
        self.min_profit = min_profit

    def is_profitable(self, observation: Observation) -> bool:
        return is_opportunity(observation.profit, self.min_profit)

