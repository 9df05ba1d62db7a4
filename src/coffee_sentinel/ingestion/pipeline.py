"""End-to-end price ingestion: fetch, locate, extract, reconcile.

One run is a linear chain of awaits: one GET, one decode, one read of the
stored dates, at most one bulk write. Overlapping runs are safe because the
write ignores date conflicts; no lock is taken.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from datetime import date, timedelta

from coffee_sentinel.core.config import SourceConfig
from coffee_sentinel.core.models import IngestionSummary, IsoDate, PriceRecord
from coffee_sentinel.ingestion.client import PriceSheetClient
from coffee_sentinel.ingestion.parser import extract_records, locate_columns
from coffee_sentinel.ingestion.store import PriceStoreProtocol
from coffee_sentinel.ingestion.workbook import WorkbookLoader, default_sheet_rules

logger = logging.getLogger(__name__)


async def load_existing_dates(store: PriceStoreProtocol) -> set[IsoDate]:
    """Snapshot of stored dates; an empty set if the read fails.

    Failing open costs at most a redundant write attempt, which the store's
    conflict-ignore turns into a no-op.
    """
    try:
        return await store.list_dates()
    except Exception as e:
        logger.warning("Could not read existing dates, assuming none: %s", e)
        return set()


async def reconcile(
    store: PriceStoreProtocol, records: Sequence[PriceRecord]
) -> IngestionSummary:
    """Persist the records whose date is not stored yet.

    Returns an IngestionSummary whose latest_record is the last record in
    sheet order. Performs no write when nothing is new.

    Raises:
        StorageError: The bulk write failed; nothing is reported as success.
    """
    existing = await load_existing_dates(store)
    to_insert = [r for r in records if r.iso_date not in existing]
    latest = records[-1] if records else None

    if not to_insert:
        logger.info("No new records; %d already stored", len(records))
        return IngestionSummary(
            total_records_parsed=len(records),
            new_records_inserted=0,
            existing_records_skipped=len(records),
            latest_record=latest,
        )

    written = await store.bulk_upsert(to_insert)
    if written < len(to_insert):
        logger.warning(
            "Store inserted %d of %d new records; the rest already existed",
            written, len(to_insert),
        )

    return IngestionSummary(
        total_records_parsed=len(records),
        new_records_inserted=len(to_insert),
        existing_records_skipped=len(records) - len(to_insert),
        latest_record=latest,
    )


class PriceIngestionPipeline:
    """Runs one ingestion of the daily price sheet into the store.

    Usage:
        pipeline = PriceIngestionPipeline(config.source, store)
        summary = await pipeline.run()
    """

    def __init__(
        self,
        config: SourceConfig,
        store: PriceStoreProtocol,
        client: PriceSheetClient | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._client = client

    async def run(
        self, url: str | None = None, today: date | None = None
    ) -> IngestionSummary:
        """Execute fetch -> locate -> extract -> reconcile.

        Any fatal error (fetch, decode, sheet, columns, empty extraction,
        write) propagates unchanged.
        """
        start = time.monotonic()
        today = today or date.today()

        client = self._client or PriceSheetClient(self._config)
        try:
            loader = WorkbookLoader(client, default_sheet_rules(self._config))
            logger.info("Step 1/4: loading workbook")
            sheet = await loader.load(url)
        finally:
            if self._client is None:
                await client.close()

        logger.info("Step 2/4: locating columns in sheet %r", sheet.name)
        columns = locate_columns(sheet.rows, self._config.header_scan_rows)

        logger.info("Step 3/4: extracting records below row %d", columns.header_row)
        records = extract_records(
            sheet.rows,
            columns,
            latest_allowed=today + timedelta(days=self._config.max_future_days),
        )

        logger.info("Step 4/4: reconciling %d records with store", len(records))
        summary = await reconcile(self._store, records)

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info(
            "Ingestion finished in %.0fms - inserted: %d, skipped: %d",
            elapsed_ms,
            summary.new_records_inserted,
            summary.existing_records_skipped,
        )
        return summary
