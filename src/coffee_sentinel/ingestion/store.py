"""Storage backend: Protocol definition, SQLite implementation, factory."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from pathlib import Path
from typing import ClassVar, Protocol, runtime_checkable

import aiosqlite

from coffee_sentinel.core.config import StorageConfig
from coffee_sentinel.core.exceptions import StorageError
from coffee_sentinel.core.models import IsoDate, PriceRecord
from coffee_sentinel.core.models import StorageBackend as StorageBackendEnum

logger = logging.getLogger(__name__)

PRICES_TABLE = "historical_prices"


@runtime_checkable
class PriceStoreProtocol(Protocol):
    """Abstract storage interface for historical reference prices."""

    async def list_dates(self) -> set[IsoDate]: ...
    async def bulk_upsert(self, records: Sequence[PriceRecord]) -> int: ...
    async def get_latest_price(self) -> PriceRecord | None: ...
    async def list_prices(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int | None = None,
    ) -> list[PriceRecord]: ...
    async def get_statistics(self) -> dict: ...
    async def initialize(self) -> None: ...
    async def close(self) -> None: ...
    async def health_check(self) -> bool: ...


class SqliteStore:
    """SQLite implementation of the storage protocol.

    Uses aiosqlite for async access, WAL mode for concurrent reads,
    and a version-tracked migration system. `date` is the primary key, so
    the uniqueness the dedup logic relies on is enforced here.
    """

    _MIGRATIONS: ClassVar[dict[int, tuple[str, list[str]]]] = {
        1: (
            "Initial schema",
            [
                """CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT DEFAULT (datetime('now'))
                )""",
                f"""CREATE TABLE IF NOT EXISTS {PRICES_TABLE} (
                    date TEXT PRIMARY KEY,
                    fnc_price REAL NOT NULL CHECK (fnc_price > 0),
                    created_at TEXT DEFAULT (datetime('now'))
                )""",
            ],
        ),
    }

    def __init__(self, config: StorageConfig) -> None:
        self._path = config.sqlite_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL, run migrations."""
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self._path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA journal_mode=WAL")
            current = await self._get_schema_version()
            await self._apply_migrations(current)
            await self._db.commit()
        except Exception as e:
            raise StorageError(
                f"Failed to initialize SQLite store: {e}",
                context={"operation": "initialize", "path": self._path},
            ) from e

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
            return row is not None
        except Exception:
            return False

    # --- Schema Migration ---

    async def _get_schema_version(self) -> int:
        try:
            async with self._db.execute(
                "SELECT MAX(version) FROM schema_version"
            ) as cursor:
                row = await cursor.fetchone()
            return row[0] if row[0] is not None else 0
        except aiosqlite.OperationalError:
            return 0

    async def _apply_migrations(self, current_version: int) -> None:
        for version in sorted(self._MIGRATIONS.keys()):
            if version <= current_version:
                continue
            desc, statements = self._MIGRATIONS[version]
            logger.info("Applying migration %d: %s", version, desc)
            for sql in statements:
                await self._db.execute(sql)
            await self._db.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )

    # --- Price Operations ---

    async def list_dates(self) -> set[IsoDate]:
        try:
            async with self._db.execute(
                f"SELECT date FROM {PRICES_TABLE} ORDER BY date ASC"
            ) as cursor:
                rows = await cursor.fetchall()
            return {row["date"] for row in rows}
        except Exception as e:
            raise StorageError(
                f"Failed to list stored dates: {e}",
                context={"operation": "query", "table": PRICES_TABLE},
            ) from e

    async def bulk_upsert(self, records: Sequence[PriceRecord]) -> int:
        """Insert records in one transaction, ignoring rows whose date exists.

        Existing prices are never overwritten. Returns the number of rows
        actually inserted; the whole batch rolls back on any error.
        """
        if not records:
            return 0
        try:
            before = self._db.total_changes
            await self._db.executemany(
                f"""INSERT INTO {PRICES_TABLE} (date, fnc_price)
                    VALUES (?, ?)
                    ON CONFLICT(date) DO NOTHING""",
                [(r.iso_date, r.price) for r in records],
            )
            await self._db.commit()
            return self._db.total_changes - before
        except Exception as e:
            await self._rollback_quietly()
            raise StorageError(
                f"Failed to upsert prices: {e}",
                context={
                    "operation": "insert",
                    "table": PRICES_TABLE,
                    "rows": len(records),
                },
            ) from e

    async def get_latest_price(self) -> PriceRecord | None:
        try:
            async with self._db.execute(
                f"""SELECT date, fnc_price FROM {PRICES_TABLE}
                    ORDER BY date DESC LIMIT 1"""
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_price(row)
        except Exception as e:
            raise StorageError(
                f"Failed to get latest price: {e}",
                context={"operation": "query", "table": PRICES_TABLE},
            ) from e

    async def list_prices(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int | None = None,
    ) -> list[PriceRecord]:
        try:
            query = f"SELECT date, fnc_price FROM {PRICES_TABLE} WHERE 1=1"
            params: list = []
            if start_date is not None:
                query += " AND date >= ?"
                params.append(start_date.isoformat())
            if end_date is not None:
                query += " AND date <= ?"
                params.append(end_date.isoformat())
            query += " ORDER BY date ASC"
            if limit is not None:
                query += " LIMIT ?"
                params.append(limit)
            async with self._db.execute(query, params) as cursor:
                rows = await cursor.fetchall()
            return [self._row_to_price(r) for r in rows]
        except Exception as e:
            raise StorageError(
                f"Failed to list prices: {e}",
                context={"operation": "query", "table": PRICES_TABLE},
            ) from e

    async def get_statistics(self) -> dict:
        try:
            async with self._db.execute(
                f"SELECT COUNT(*), MIN(date), MAX(date) FROM {PRICES_TABLE}"
            ) as cursor:
                row = await cursor.fetchone()
            return {
                "total_records": row[0],
                "earliest_date": row[1],
                "latest_date": row[2],
            }
        except Exception as e:
            raise StorageError(
                f"Failed to gather statistics: {e}",
                context={"operation": "query", "table": PRICES_TABLE},
            ) from e

    # --- Helpers ---

    async def _rollback_quietly(self) -> None:
        try:
            await self._db.rollback()
        except Exception:
            logger.exception("Rollback after failed upsert also failed")

    @staticmethod
    def _row_to_price(row: aiosqlite.Row) -> PriceRecord:
        return PriceRecord(
            date=date.fromisoformat(row["date"]),
            price=row["fnc_price"],
        )


async def create_store(config: StorageConfig) -> SqliteStore:
    """Create and initialize a storage backend based on configuration."""
    if config.backend == StorageBackendEnum.SQLITE:
        store = SqliteStore(config)
        await store.initialize()
        return store
    raise StorageError(
        f"Unsupported storage backend: {config.backend}",
        context={"operation": "create_store", "backend": str(config.backend)},
    )
