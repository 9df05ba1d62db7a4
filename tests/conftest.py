"""Shared pytest fixtures for coffee-sentinel."""

from datetime import date, datetime
from io import BytesIO

import pytest
from openpyxl import Workbook

from coffee_sentinel.core.config import SourceConfig
from coffee_sentinel.core.models import PriceRecord

SOURCE_URL = "https://prices.test/precios-cafe.xlsx"


@pytest.fixture
def source_config() -> SourceConfig:
    return SourceConfig(url=SOURCE_URL, request_timeout=5)


@pytest.fixture
def make_workbook():
    """Factory: {sheet_name: rows} -> .xlsx bytes, sheets in dict order."""

    def _make(sheets: dict[str, list[list]]) -> bytes:
        wb = Workbook()
        wb.remove(wb.active)
        for name, rows in sheets.items():
            ws = wb.create_sheet(title=name)
            for row in rows:
                ws.append(row)
        buf = BytesIO()
        wb.save(buf)
        return buf.getvalue()

    return _make


@pytest.fixture
def daily_rows() -> list[list]:
    """Header at row 0, two valid rows, one garbage row."""
    return [
        ["Fecha", "Precio Interno"],
        [datetime(2024, 1, 1), "250.000"],
        [datetime(2024, 1, 2), "251.500"],
        ["bad", "bad"],
    ]


@pytest.fixture
def daily_workbook(make_workbook, daily_rows) -> bytes:
    return make_workbook(
        {
            "Resumen": [["Federación Nacional de Cafeteros"]],
            "Precio Interno Diario": daily_rows,
        }
    )


@pytest.fixture
def sample_records() -> list[PriceRecord]:
    return [
        PriceRecord(date=date(2024, 1, 1), price=250000.0),
        PriceRecord(date=date(2024, 1, 2), price=251500.0),
    ]
