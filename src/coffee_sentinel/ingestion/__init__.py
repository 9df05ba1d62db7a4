"""Coffee price ingestion: client, workbook, parser, storage, pipeline."""

from coffee_sentinel.ingestion.client import PriceSheetClient
from coffee_sentinel.ingestion.parser import extract_records, locate_columns
from coffee_sentinel.ingestion.pipeline import PriceIngestionPipeline, reconcile
from coffee_sentinel.ingestion.store import PriceStoreProtocol, SqliteStore, create_store
from coffee_sentinel.ingestion.workbook import WorkbookLoader, decode_workbook

__all__ = [
    "PriceSheetClient",
    "WorkbookLoader",
    "decode_workbook",
    "locate_columns",
    "extract_records",
    "reconcile",
    "PriceIngestionPipeline",
    "PriceStoreProtocol",
    "SqliteStore",
    "create_store",
]
