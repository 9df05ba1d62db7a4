"""Custom exception hierarchy for coffee-sentinel."""

from typing import Any


class CoffeeSentinelError(Exception):
    """Base exception for all coffee-sentinel errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(CoffeeSentinelError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str: the config field that failed validation
        value: Any: the invalid value
    """


class IngestionError(CoffeeSentinelError):
    """Failed to fetch or interpret the published price workbook."""


class FetchError(IngestionError):
    """The price workbook could not be downloaded.

    Policy: fatal for the run, surfaced verbatim. No internal retry; the
    scheduler triggers the next attempt.

    Context keys:
        url: str: the URL that was being fetched
        status_code: int | None: HTTP status when the server answered
    """


class SourceFormatError(IngestionError):
    """The workbook no longer looks like the publisher's known layout.

    Policy: fatal. Never ingest from a region we cannot positively identify.
    """


class DecodeError(SourceFormatError):
    """Response body is not a readable spreadsheet workbook."""


class SheetNotFoundError(SourceFormatError):
    """No sheet-selection rule resolved a worksheet.

    Context keys:
        sheet_names: list[str]: the sheets present in the workbook
    """


class ColumnDetectionError(SourceFormatError):
    """Header scan did not find both the date and the price column.

    Context keys:
        date_column: int | None
        price_column: int | None
        scanned_rows: int
    """


class EmptyExtractionError(SourceFormatError):
    """A header matched but no valid (date, price) row sits below it.

    Context keys:
        header_row: int
        rows_seen: int
    """


class CellParseError(IngestionError):
    """A single cell could not be normalized to a date or price.

    Policy: non-fatal. The row is dropped and extraction continues.

    Context keys:
        value: str: repr of the raw cell
        kind: str: "date" or "price"
    """


class StorageError(CoffeeSentinelError):
    """Database operation failed.

    Policy: raise immediately. A failed bulk write aborts the run without
    reporting partial success.

    Context keys:
        operation: str: "insert", "query", "migrate", etc.
        table: str: the table involved
    """
