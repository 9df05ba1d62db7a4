"""Workbook decoding and sheet selection.

The publisher renames and reorders sheets without notice, so the daily-price
sheet is chosen by an ordered list of rules: name matches first, positional
fallback last. Append new rules at the end to extend the heuristic without
changing what existing rules pick.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO
from typing import Protocol

from openpyxl import load_workbook

from coffee_sentinel.core.config import SourceConfig
from coffee_sentinel.core.exceptions import DecodeError, SheetNotFoundError
from coffee_sentinel.core.models import Sheet
from coffee_sentinel.ingestion.client import PriceSheetClient

logger = logging.getLogger(__name__)


class SheetRule(Protocol):
    """A single sheet-selection rule. Returns a sheet name or None."""

    def select(self, sheet_names: Sequence[str]) -> str | None: ...


@dataclass(frozen=True)
class NameMatchRule:
    """First sheet (workbook order) whose name contains any marker.

    Matching is a case-sensitive substring test.
    """

    markers: tuple[str, ...]

    def select(self, sheet_names: Sequence[str]) -> str | None:
        for name in sheet_names:
            if any(marker in name for marker in self.markers):
                return name
        return None


@dataclass(frozen=True)
class PositionRule:
    """Sheet at a fixed index, if the workbook has that many sheets."""

    index: int

    def select(self, sheet_names: Sequence[str]) -> str | None:
        if 0 <= self.index < len(sheet_names):
            return sheet_names[self.index]
        return None


def default_sheet_rules(config: SourceConfig | None = None) -> list[SheetRule]:
    """Rules used in production: daily-price markers, then the second sheet."""
    config = config or SourceConfig()
    return [
        NameMatchRule(markers=tuple(config.sheet_markers)),
        PositionRule(index=config.fallback_sheet_index),
    ]


def select_sheet_name(
    sheet_names: Sequence[str], rules: Sequence[SheetRule]
) -> str:
    """Apply rules in order; the first one that resolves wins.

    Raises:
        SheetNotFoundError: No rule resolved a sheet.
    """
    for rule in rules:
        name = rule.select(sheet_names)
        if name is not None:
            logger.info("Selected sheet %r via %s", name, type(rule).__name__)
            return name

    raise SheetNotFoundError(
        f"No worksheet matched the selection rules (sheets: {list(sheet_names)})",
        context={"sheet_names": list(sheet_names)},
    )


def decode_workbook(content: bytes, rules: Sequence[SheetRule]) -> Sheet:
    """Decode .xlsx bytes and materialize the selected sheet's rows.

    Cells come back as openpyxl values: None, numbers, strings, or datetimes
    for date-formatted cells.

    Raises:
        DecodeError: The bytes are not a readable workbook.
        SheetNotFoundError: No rule resolved a sheet.
    """
    try:
        wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise DecodeError(
            f"Response is not a valid workbook: {e}",
            context={"size": len(content)},
        ) from e

    try:
        sheet_name = select_sheet_name(wb.sheetnames, rules)
        try:
            rows = [tuple(row) for row in wb[sheet_name].iter_rows(values_only=True)]
        except Exception as e:
            raise DecodeError(
                f"Failed to read worksheet {sheet_name!r}: {e}",
                context={"sheet_name": sheet_name},
            ) from e
    finally:
        wb.close()

    logger.info("Sheet %r has %d rows", sheet_name, len(rows))
    return Sheet(name=sheet_name, rows=rows)


class WorkbookLoader:
    """Fetches the published workbook and returns the daily-price sheet."""

    def __init__(
        self,
        client: PriceSheetClient,
        rules: Sequence[SheetRule] | None = None,
    ) -> None:
        self._client = client
        self._rules = list(rules) if rules is not None else default_sheet_rules()

    async def load(self, url: str | None = None) -> Sheet:
        content = await self._client.fetch(url)
        return decode_workbook(content, self._rules)
