"""Tests for the SQLite storage backend."""

from datetime import date

import pytest

from coffee_sentinel.core.config import StorageConfig
from coffee_sentinel.core.exceptions import StorageError
from coffee_sentinel.core.models import PriceRecord, StorageBackend as StorageBackendEnum
from coffee_sentinel.ingestion.store import (
    PriceStoreProtocol,
    SqliteStore,
    create_store,
)


# --- Fixtures ---


@pytest.fixture
async def store():
    """Create an in-memory SqliteStore for testing."""
    config = StorageConfig(backend=StorageBackendEnum.SQLITE, sqlite_path=":memory:")
    s = SqliteStore(config)
    await s.initialize()
    yield s
    await s.close()


def _record(day: int, price: float = 250000.0) -> PriceRecord:
    return PriceRecord(date=date(2024, 1, day), price=price)


# --- Lifecycle ---


class TestLifecycle:
    async def test_satisfies_protocol(self, store):
        assert isinstance(store, PriceStoreProtocol)

    async def test_health_check(self, store):
        assert await store.health_check() is True

    async def test_health_check_after_close(self):
        s = SqliteStore(StorageConfig(sqlite_path=":memory:"))
        await s.initialize()
        await s.close()
        assert await s.health_check() is False

    async def test_migrations_idempotent(self, tmp_path):
        config = StorageConfig(sqlite_path=str(tmp_path / "prices.db"))
        first = SqliteStore(config)
        await first.initialize()
        await first.bulk_upsert([_record(1)])
        await first.close()

        second = SqliteStore(config)
        await second.initialize()
        assert await second.list_dates() == {"2024-01-01"}
        await second.close()

    async def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "prices.db"
        store = await create_store(StorageConfig(sqlite_path=str(path)))
        assert path.parent.exists()
        await store.close()

    async def test_initialize_bad_path(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        s = SqliteStore(StorageConfig(sqlite_path=str(blocker / "sub" / "db.sqlite")))
        with pytest.raises(StorageError) as exc_info:
            await s.initialize()
        assert exc_info.value.context["operation"] == "initialize"


# --- Writes ---


class TestBulkUpsert:
    async def test_inserts_all_new(self, store):
        written = await store.bulk_upsert([_record(1), _record(2)])
        assert written == 2
        assert await store.list_dates() == {"2024-01-01", "2024-01-02"}

    async def test_empty_batch_is_noop(self, store):
        assert await store.bulk_upsert([]) == 0

    async def test_conflict_ignored(self, store):
        await store.bulk_upsert([_record(1, 250000.0)])
        written = await store.bulk_upsert([_record(1, 999999.0), _record(2)])
        assert written == 1

    async def test_never_overwrites_history(self, store):
        await store.bulk_upsert([_record(1, 250000.0)])
        await store.bulk_upsert([_record(1, 999999.0)])
        prices = await store.list_prices()
        assert prices == [_record(1, 250000.0)]

    async def test_duplicate_dates_in_batch(self, store):
        written = await store.bulk_upsert([_record(1, 1.0), _record(1, 2.0)])
        assert written == 1
        assert (await store.get_latest_price()).price == 1.0

    async def test_failure_raises_storage_error(self):
        s = SqliteStore(StorageConfig(sqlite_path=":memory:"))
        await s.initialize()
        await s.close()
        with pytest.raises(StorageError) as exc_info:
            await s.bulk_upsert([_record(1)])
        assert exc_info.value.context["operation"] == "insert"
        assert exc_info.value.context["rows"] == 1


# --- Reads ---


class TestReads:
    async def test_list_dates_empty(self, store):
        assert await store.list_dates() == set()

    async def test_latest_price_empty(self, store):
        assert await store.get_latest_price() is None

    async def test_latest_price_by_date_not_insert_order(self, store):
        await store.bulk_upsert([_record(5, 5.0), _record(2, 2.0), _record(9, 9.0)])
        await store.bulk_upsert([_record(3, 3.0)])
        latest = await store.get_latest_price()
        assert latest == _record(9, 9.0)

    async def test_list_prices_ascending(self, store):
        await store.bulk_upsert([_record(3), _record(1), _record(2)])
        prices = await store.list_prices()
        assert [p.date.day for p in prices] == [1, 2, 3]

    async def test_list_prices_filters(self, store):
        await store.bulk_upsert([_record(d) for d in range(1, 11)])
        prices = await store.list_prices(
            start_date=date(2024, 1, 3), end_date=date(2024, 1, 8), limit=4
        )
        assert [p.iso_date for p in prices] == [
            "2024-01-03",
            "2024-01-04",
            "2024-01-05",
            "2024-01-06",
        ]

    async def test_statistics(self, store):
        await store.bulk_upsert([_record(4), _record(2)])
        stats = await store.get_statistics()
        assert stats == {
            "total_records": 2,
            "earliest_date": "2024-01-02",
            "latest_date": "2024-01-04",
        }

    async def test_statistics_empty(self, store):
        stats = await store.get_statistics()
        assert stats["total_records"] == 0
        assert stats["latest_date"] is None

    async def test_read_after_close_raises(self):
        s = SqliteStore(StorageConfig(sqlite_path=":memory:"))
        await s.initialize()
        await s.close()
        with pytest.raises(StorageError, match="stored dates"):
            await s.list_dates()


# --- Factory ---


class TestCreateStore:
    async def test_sqlite(self):
        s = await create_store(StorageConfig(sqlite_path=":memory:"))
        assert isinstance(s, SqliteStore)
        assert await s.health_check()
        await s.close()
