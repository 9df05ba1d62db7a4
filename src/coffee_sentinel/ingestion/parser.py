"""Header detection and row extraction for the daily-price sheet.

The sheet layout is externally controlled and has shifted over time (extra
columns, renamed headers), so columns are located by header text rather than
fixed indices. When matching breaks we fail hard instead of ingesting the
wrong region.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date

from coffee_sentinel.core.exceptions import (
    CellParseError,
    ColumnDetectionError,
    EmptyExtractionError,
)
from coffee_sentinel.core.models import ColumnMap, PriceRecord, RawCell
from coffee_sentinel.ingestion.values import parse_date, parse_price

logger = logging.getLogger(__name__)

MAX_HEADER_SEARCH_ROWS = 20

_DATE_MARKER = "Fecha"
_PRICE_MARKER = "Precio Interno"
_PRICE_EXCLUDE = "Promedio"


def is_date_header(cell: str) -> bool:
    return _DATE_MARKER in cell or cell.lower() == "fecha"


def is_price_header(cell: str) -> bool:
    # "Precio Interno Promedio" is a monthly average column, not the daily price
    return _PRICE_MARKER in cell and _PRICE_EXCLUDE not in cell


def locate_columns(
    rows: Sequence[Sequence[RawCell]],
    scan_rows: int = MAX_HEADER_SEARCH_ROWS,
) -> ColumnMap:
    """Find the date and price columns in the top of the sheet.

    Scans the first `scan_rows` rows row-major, left to right. The first
    date header wins and fixes the header row; the first price header wins
    provided it is not in the date column.

    Raises:
        ColumnDetectionError: Either column missing after the scan window.
    """
    date_column: int | None = None
    price_column: int | None = None
    header_row: int | None = None

    window = min(scan_rows, len(rows))
    for row_index in range(window):
        row = rows[row_index]
        if row is None:
            continue

        for col_index, cell in enumerate(row):
            if not isinstance(cell, str):
                continue

            if date_column is None and is_date_header(cell):
                date_column = col_index
                header_row = row_index

            if (
                price_column is None
                and col_index != date_column
                and is_price_header(cell)
            ):
                price_column = col_index

            if date_column is not None and price_column is not None:
                logger.info(
                    "Located columns: date=%d price=%d header_row=%d",
                    date_column, price_column, header_row,
                )
                return ColumnMap(
                    date_column=date_column,
                    price_column=price_column,
                    header_row=header_row,
                )

    raise ColumnDetectionError(
        f"Could not find columns. Date: {date_column}, Price: {price_column}",
        context={
            "date_column": date_column,
            "price_column": price_column,
            "scanned_rows": window,
        },
    )


def extract_records(
    rows: Sequence[Sequence[RawCell]],
    columns: ColumnMap,
    latest_allowed: date | None = None,
) -> list[PriceRecord]:
    """Walk every row below the header and emit valid (date, price) records.

    Rows with an empty or unparseable cell, a non-positive price, or a date
    past `latest_allowed` are skipped silently. Output keeps sheet order.

    Raises:
        EmptyExtractionError: No row survived.
    """
    records: list[PriceRecord] = []
    skipped = 0

    for row_index in range(columns.header_row + 1, len(rows)):
        row = rows[row_index]
        raw_date = _cell_at(row, columns.date_column)
        raw_price = _cell_at(row, columns.price_column)

        if _is_empty(raw_date) or _is_empty(raw_price):
            skipped += 1
            continue

        try:
            day = parse_date(raw_date)
            price = parse_price(raw_price)
        except CellParseError as e:
            logger.debug("Skipping row %d: %s", row_index, e)
            skipped += 1
            continue

        if price <= 0:
            logger.debug("Skipping row %d: non-positive price %r", row_index, price)
            skipped += 1
            continue

        if latest_allowed is not None and day > latest_allowed:
            logger.debug("Skipping row %d: date %s is in the future", row_index, day)
            skipped += 1
            continue

        records.append(PriceRecord(date=day, price=price))

    if not records:
        raise EmptyExtractionError(
            "Could not find any valid data rows",
            context={
                "header_row": columns.header_row,
                "rows_seen": max(len(rows) - columns.header_row - 1, 0),
            },
        )

    logger.info("Extracted %d records (%d rows skipped)", len(records), skipped)
    return records


def _cell_at(row: Sequence[RawCell] | None, index: int) -> RawCell:
    if row is None or index >= len(row):
        return None
    return row[index]


def _is_empty(value: RawCell) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()
