"""Pydantic data models: the system's type contracts."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Union

from pydantic import BaseModel, ConfigDict, field_validator

# --- Type Aliases ---

IsoDate = str
RawCell = Union[None, int, float, str, datetime, date]

# --- Enumerations ---


class StorageBackend(StrEnum):
    """Supported storage backends."""

    SQLITE = "sqlite"


class Environment(StrEnum):
    """Deployment environments; gates the CORS origin policy."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


# --- Price Models ---


class PriceRecord(BaseModel):
    """One day's internal reference price, the unit persisted by the store."""

    model_config = ConfigDict(frozen=True)

    date: date
    price: float

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: float) -> float:
        if not math.isfinite(v) or v <= 0:
            raise ValueError(f"price must be a positive finite number, got {v!r}")
        return v

    @property
    def iso_date(self) -> IsoDate:
        """Zero-padded YYYY-MM-DD, the storage and dedup key."""
        return self.date.isoformat()


@dataclass(frozen=True)
class ColumnMap:
    """Location of the data columns inside a sheet, found by header scan."""

    date_column: int
    price_column: int
    header_row: int


@dataclass(frozen=True)
class Sheet:
    """A materialized worksheet: 0-indexed rows of raw cell values."""

    name: str
    rows: list[tuple[RawCell, ...]]


class IngestionSummary(BaseModel):
    """Outcome of one ingestion run. Returned to the caller, never stored."""

    model_config = ConfigDict(frozen=True)

    total_records_parsed: int
    new_records_inserted: int
    existing_records_skipped: int
    latest_record: PriceRecord | None = None

    @property
    def is_noop(self) -> bool:
        return self.new_records_inserted == 0
