"""Async SQLite database manager for candle persistence.

Uses aiosqlite for non-blocking database operations with WAL mode
for concurrent read/write performance. Every query goes through
execute()/execute_update(), which translate driver errors into
StorageError and flag lock contention as a rate-limit signal.
"""

import os
import sqlite3
from collections.abc import Iterable, Sequence
from typing import Any, Self

import aiosqlite

from seasonal.exceptions import StorageError
from seasonal.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

PROCESSING_STATE_SQL = """
CREATE TABLE IF NOT EXISTS processing_state (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    last_processed_symbol TEXT,
    last_processed_index INTEGER NOT NULL DEFAULT -1,
    total_symbols INTEGER NOT NULL DEFAULT 0,
    is_processing INTEGER NOT NULL DEFAULT 0,
    started_at INTEGER,
    updated_at INTEGER
);
"""

_CREATE_TABLES_SQL = (
    """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS symbols (
    symbol TEXT PRIMARY KEY,
    base_asset TEXT,
    quote_asset TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at INTEGER,
    updated_at INTEGER
);

CREATE TABLE IF NOT EXISTS daily_candles (
    symbol TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    open TEXT NOT NULL,
    high TEXT NOT NULL,
    low TEXT NOT NULL,
    close TEXT NOT NULL,
    volume TEXT NOT NULL,
    close_time INTEGER,
    UNIQUE (symbol, timestamp)
);

CREATE TABLE IF NOT EXISTS monthly_candles (
    symbol TEXT NOT NULL,
    year INTEGER NOT NULL,
    month INTEGER NOT NULL,
    open TEXT NOT NULL,
    high TEXT NOT NULL,
    low TEXT NOT NULL,
    close TEXT NOT NULL,
    volume TEXT NOT NULL,
    return_pct TEXT,
    updated_at INTEGER,
    UNIQUE (symbol, year, month)
);
"""
    + PROCESSING_STATE_SQL
)

_CREATE_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_daily_symbol_ts
    ON daily_candles(symbol, timestamp);

CREATE INDEX IF NOT EXISTS idx_monthly_symbol_ym
    ON monthly_candles(symbol, year, month);
"""

# Substrings of driver errors that mean "back off and try again later"
_RATE_LIMIT_MARKERS = ("database is locked", "database is busy", "too many requests", "429")


def _to_storage_error(error: Exception, query: str) -> StorageError:
    message = str(error)
    rate_limited = any(marker in message.lower() for marker in _RATE_LIMIT_MARKERS)
    return StorageError(
        f"Query failed ({query.split()[0].upper()}): {message}",
        rate_limited=rate_limited,
    )


class CandleDatabase:
    """Async SQLite connection manager for the candle store.

    Owns the single connection shared by CandleStore and ProgressTracker.
    File databases run in WAL mode with a busy timeout so a second
    invocation reading state does not fail while another one writes.

    Usage:
        async with CandleDatabase("/path/to/db") as db:
            rows = await db.execute("SELECT COUNT(*) AS n FROM daily_candles")
    """

    def __init__(self, db_path: str = "data/seasonal.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """The open aiosqlite connection; RuntimeError before connect()."""
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open database connection, configure pragmas, and create schema.

        Creates the parent directory if it does not exist. Schema creation
        is idempotent, so connecting to an initialized database is safe.
        """
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        self._connection.row_factory = aiosqlite.Row

        if self._db_path != ":memory:":
            await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")
        await self._connection.execute("PRAGMA busy_timeout=5000")

        await self._create_tables()
        await self._ensure_schema_version()

        logger.info("candle_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        """Close the database connection if open."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("candle_db_closed", db_path=self._db_path)

    async def execute(self, query: str, params: Sequence[Any] = ()) -> list[dict]:
        """Run one parameterized statement and return its rows as dicts.

        Writes are committed immediately. Raises StorageError on failure.
        """
        try:
            cursor = await self.db.execute(query, tuple(params))
            rows = await cursor.fetchall()
            await self.db.commit()
        except sqlite3.Error as e:
            raise _to_storage_error(e, query) from e
        return [dict(row) for row in rows]

    async def execute_update(self, query: str, params: Sequence[Any] = ()) -> int:
        """Run one write statement and return the number of affected rows."""
        try:
            cursor = await self.db.execute(query, tuple(params))
            await self.db.commit()
        except sqlite3.Error as e:
            raise _to_storage_error(e, query) from e
        return cursor.rowcount

    async def execute_many(self, query: str, rows: Iterable[Sequence[Any]]) -> int:
        """Run one write statement per parameter row in a single transaction."""
        try:
            cursor = await self.db.executemany(query, [tuple(r) for r in rows])
            await self.db.commit()
        except sqlite3.Error as e:
            await self.db.rollback()
            raise _to_storage_error(e, query) from e
        return cursor.rowcount

    async def ensure_processing_state_table(self) -> None:
        """Create the processing_state table if it is missing."""
        try:
            await self.db.executescript(PROCESSING_STATE_SQL)
        except sqlite3.Error as e:
            raise _to_storage_error(e, "CREATE processing_state") from e

    async def ping(self) -> bool:
        """Connection test: True when a trivial query round-trips."""
        try:
            rows = await self.execute("SELECT 1 AS ok")
        except (StorageError, RuntimeError) as e:
            logger.error("candle_db_ping_failed", error=str(e))
            return False
        return bool(rows) and rows[0]["ok"] == 1

    async def _create_tables(self) -> None:
        await self.db.executescript(_CREATE_TABLES_SQL + _CREATE_INDEXES_SQL)
        await self.db.commit()

    async def _ensure_schema_version(self) -> None:
        """Record SCHEMA_VERSION on first connect; later connects leave it alone."""
        cursor = await self.db.execute(
            "INSERT OR IGNORE INTO schema_version (version) "
            "SELECT ? WHERE NOT EXISTS (SELECT 1 FROM schema_version)",
            (SCHEMA_VERSION,),
        )
        await self.db.commit()
        if cursor.rowcount == 1:
            logger.info("schema_version_set", version=SCHEMA_VERSION)

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        """Async context manager exit."""
        await self.close()
