"""Append-only sqlite audit trail of price checks and opportunities."""

from .models import OpportunityRecord, PriceCheckRecord
from .sqlite_repository import SQLiteRepository

__all__ = ["SQLiteRepository", "OpportunityRecord", "PriceCheckRecord"]
