"""API-specific request/response schemas (Pydantic v2).

Payloads use camelCase keys to match what the mobile client already reads.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from coffee_sentinel.core.models import IngestionSummary, PriceRecord


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -- Error --


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    error: str


# -- Prices --


class PriceResponse(_CamelModel):
    """A single stored price."""

    date: date
    price: float

    @classmethod
    def from_record(cls, record: PriceRecord) -> PriceResponse:
        return cls(date=record.date, price=record.price)


class PriceListResponse(_CamelModel):
    """Stored price history, ascending by date."""

    total: int
    items: list[PriceResponse]


class UpdateSummary(_CamelModel):
    total_records: int
    new_records_inserted: int
    existing_records_skipped: int


class UpdateResponse(_CamelModel):
    """Response for POST /api/prices/update."""

    success: bool = True
    latest_price: PriceResponse | None
    summary: UpdateSummary

    @classmethod
    def from_summary(cls, summary: IngestionSummary) -> UpdateResponse:
        latest = summary.latest_record
        return cls(
            latest_price=PriceResponse.from_record(latest) if latest else None,
            summary=UpdateSummary(
                total_records=summary.new_records_inserted
                + summary.existing_records_skipped,
                new_records_inserted=summary.new_records_inserted,
                existing_records_skipped=summary.existing_records_skipped,
            ),
        )


# -- Health --


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    status: str = "ok"
    version: str
    storage_backend: str
    total_records: int
