"""SQLite-backed persistence layer for price checks and opportunities."""
from __future__ import annotations

import asyncio
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from analysis.models import Observation, Opportunity
from constants import DEFAULT_DB_PATH
from exceptions import PersistenceError
from storage.models import OpportunityRecord, PriceCheckRecord

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(ISO_FORMAT)


class SQLiteRepository:
    """Append-only store for every price check and every profitable opportunity."""

    def __init__(self, db_path: Path | str = Path(DEFAULT_DB_PATH)) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        try:
            if self.db_path != Path(":memory:"):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._connection.row_factory = sqlite3.Row
            self._configure()
            self._create_schema()
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"Could not open database {self.db_path}: {exc}") from exc

    def _configure(self) -> None:
        with self._lock:
            cursor = self._connection.cursor()
            try:
                cursor.execute("PRAGMA journal_mode=WAL;")
            except sqlite3.DatabaseError:
                pass
            cursor.close()

    def _create_schema(self) -> None:
        statements = [
            """
            CREATE TABLE IF NOT EXISTS opportunities (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                buy_dex TEXT NOT NULL,
                sell_dex TEXT NOT NULL,
                token_pair TEXT NOT NULL,
                amount_in REAL NOT NULL,
                amount_out REAL NOT NULL,
                profit REAL NOT NULL
            );
            """,
            """
            CREATE TABLE IF NOT EXISTS price_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                token_pair TEXT NOT NULL,
                buy_dex TEXT NOT NULL,
                sell_dex TEXT NOT NULL,
                profit REAL NOT NULL
            );
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_opportunities_pair_time
                ON opportunities(token_pair, timestamp);
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_price_logs_pair_time
                ON price_logs(token_pair, timestamp);
            """,
        ]

        with self._lock:
            cursor = self._connection.cursor()
            for statement in statements:
                cursor.execute(statement)
            self._connection.commit()
            cursor.close()

    async def record_price_check(self, observation: Observation) -> int:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._record_price_check_sync, observation)

    def _record_price_check_sync(self, observation: Observation) -> int:
        return self._insert(
            """
            INSERT INTO price_logs (timestamp, token_pair, buy_dex, sell_dex, profit)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                _utc_timestamp(),
                observation.token_pair,
                observation.buy_source,
                observation.sell_source,
                observation.profit,
            ),
        )

    async def record_opportunity(self, opportunity: Opportunity) -> int:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._record_opportunity_sync, opportunity)

    def _record_opportunity_sync(self, opportunity: Opportunity) -> int:
        return self._insert(
            """
            INSERT INTO opportunities (
                timestamp,
                buy_dex,
                sell_dex,
                token_pair,
                amount_in,
                amount_out,
                profit
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_timestamp(),
                opportunity.buy_source,
                opportunity.sell_source,
                opportunity.token_pair,
                opportunity.amount_in,
                opportunity.amount_out,
                opportunity.profit,
            ),
        )

    def _insert(self, statement: str, params: tuple) -> int:
        with self._lock:
            cursor = self._connection.cursor()
            try:
                cursor.execute(statement, params)
                self._connection.commit()
                row_id = cursor.lastrowid
            except sqlite3.Error as exc:
                self._connection.rollback()
                raise PersistenceError(str(exc)) from exc
            finally:
                cursor.close()
        return row_id

    async def fetch_recent_opportunities(
        self,
        limit: int = 50,
        token_pair: Optional[str] = None,
    ) -> list[OpportunityRecord]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._fetch_recent_opportunities_sync, limit, token_pair)

    def _fetch_recent_opportunities_sync(self, limit: int, token_pair: Optional[str]) -> list[OpportunityRecord]:
        rows = self._select(
            """
            SELECT * FROM opportunities
            WHERE (? IS NULL OR token_pair = ?)
            ORDER BY id DESC
            LIMIT ?
            """,
            (token_pair, token_pair, limit),
        )
        return [
            OpportunityRecord(
                id=row["id"],
                timestamp=_parse_timestamp(row["timestamp"]),
                buy_dex=row["buy_dex"],
                sell_dex=row["sell_dex"],
                token_pair=row["token_pair"],
                amount_in=row["amount_in"],
                amount_out=row["amount_out"],
                profit=row["profit"],
            )
            for row in rows
        ]

    async def fetch_recent_price_checks(
        self,
        limit: int = 50,
        token_pair: Optional[str] = None,
    ) -> list[PriceCheckRecord]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._fetch_recent_price_checks_sync, limit, token_pair)

    def _fetch_recent_price_checks_sync(self, limit: int, token_pair: Optional[str]) -> list[PriceCheckRecord]:
        rows = self._select(
            """
            SELECT * FROM price_logs
            WHERE (? IS NULL OR token_pair = ?)
            ORDER BY id DESC
            LIMIT ?
            """,
            (token_pair, token_pair, limit),
        )
        return [
            PriceCheckRecord(
                id=row["id"],
                timestamp=_parse_timestamp(row["timestamp"]),
                token_pair=row["token_pair"],
                buy_dex=row["buy_dex"],
                sell_dex=row["sell_dex"],
                profit=row["profit"],
            )
            for row in rows
        ]

    def _select(self, query: str, params: tuple) -> list[sqlite3.Row]:
        with self._lock:
            cursor = self._connection.cursor()
            try:
                cursor.execute(query, params)
                rows = cursor.fetchall()
            except sqlite3.Error as exc:
                raise PersistenceError(str(exc)) from exc
            finally:
                cursor.close()
        return rows

    async def close(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._close_sync)

    def _close_sync(self) -> None:
        with self._lock:
            self._connection.commit()
            self._connection.close()


def _parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, ISO_FORMAT).replace(tzinfo=timezone.utc)


__all__ = ["SQLiteRepository", "PriceCheckRecord", "OpportunityRecord"]
