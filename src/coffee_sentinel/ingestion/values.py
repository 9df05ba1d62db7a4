"""Cell value normalization for the federation's Colombian-locale workbook.

Raw cells arrive as whatever openpyxl decoded: native numbers, strings in the
thousands-dot / decimal-comma convention, native datetimes for date-formatted
cells, or bare spreadsheet serials when the publisher forgot the date format.
Every parser here raises CellParseError on failure; callers treat that as
"skip this row", never as fatal.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime

import pandas as pd
from openpyxl.utils.datetime import from_excel

from coffee_sentinel.core.exceptions import CellParseError
from coffee_sentinel.core.models import RawCell

# A day-month-year triple or a four-digit year. Time-only text ("10:30") and
# relative keywords ("now", "today") have neither and must not resolve to the
# current date.
_DATE_PART = re.compile(r"\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}|\d{4}")


def parse_price(value: RawCell) -> float:
    """Convert a raw price cell to a float.

    Strings use the thousands-dot / decimal-comma convention: every "." is
    dropped, then every "," becomes the decimal point ("277.000" -> 277000.0,
    "1,5" -> 1.5). Positivity is not checked here.

    Raises:
        CellParseError: Unsupported type, unparseable or non-finite value.
    """
    if isinstance(value, bool):
        raise _price_error(value)

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        normalized = value.strip().replace(".", "").replace(",", ".")
        try:
            number = float(normalized)
        except ValueError as e:
            raise _price_error(value) from e
    else:
        raise _price_error(value)

    if not math.isfinite(number):
        raise _price_error(value)
    return number


def parse_date(value: RawCell) -> date:
    """Convert a raw date cell to a calendar date.

    Shapes are tried in order: native datetime/date (calendar component, no
    timezone shift), free-form string carrying a date part, then numeric
    spreadsheet serial (1900 epoch, fractional part ignored).

    Raises:
        CellParseError: Unsupported type or a value that is not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, str):
        return _parse_date_string(value)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _parse_serial(value)

    raise _date_error(value)


def _parse_date_string(value: str) -> date:
    text = value.strip()
    if not text or not _DATE_PART.search(text):
        raise _date_error(value)
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError) as e:
        raise _date_error(value) from e
    if parsed is None or pd.isna(parsed):
        raise _date_error(value)
    return date(parsed.year, parsed.month, parsed.day)


def _parse_serial(value: int | float) -> date:
    if not math.isfinite(value) or value < 1:
        raise _date_error(value)
    try:
        converted = from_excel(math.floor(value))
    except (ValueError, OverflowError, TypeError) as e:
        raise _date_error(value) from e
    if isinstance(converted, datetime):
        return converted.date()
    raise _date_error(value)


def _price_error(value: object) -> CellParseError:
    return CellParseError(
        f"Cannot parse price from {value!r}",
        context={"value": repr(value), "kind": "price"},
    )


def _date_error(value: object) -> CellParseError:
    return CellParseError(
        f"Cannot parse date from {value!r}",
        context={"value": repr(value), "kind": "date"},
    )
