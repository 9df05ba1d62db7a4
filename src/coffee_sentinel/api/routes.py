"""FastAPI route definitions for the coffee-sentinel API."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

import coffee_sentinel
from coffee_sentinel.api.deps import AppState, get_app_state, get_config, get_store
from coffee_sentinel.api.schemas import (
    ErrorResponse,
    HealthResponse,
    PriceListResponse,
    PriceResponse,
    UpdateResponse,
)
from coffee_sentinel.ingestion.pipeline import PriceIngestionPipeline
from coffee_sentinel.ingestion.store import SqliteStore

logger = logging.getLogger(__name__)

router = APIRouter()


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: SqliteStore = Depends(get_store),
    config=Depends(get_config),
):
    """System health and basic statistics."""
    if not await store.health_check():
        return HealthResponse(
            status="degraded",
            version=coffee_sentinel.__version__,
            storage_backend=str(config.storage.backend.value),
            total_records=0,
        )

    stats = await store.get_statistics()
    return HealthResponse(
        status="ok",
        version=coffee_sentinel.__version__,
        storage_backend=str(config.storage.backend.value),
        total_records=stats["total_records"],
    )


# -- Prices --


@router.post(
    "/prices/update",
    response_model=UpdateResponse,
    responses={502: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def update_prices(state: AppState = Depends(get_app_state)):
    """Download the federation workbook and store any new daily prices."""
    logger.info("POST /prices/update")
    pipeline = PriceIngestionPipeline(state.config.source, state.store)
    summary = await pipeline.run()
    return UpdateResponse.from_summary(summary)


@router.get("/prices/latest", response_model=PriceResponse)
async def latest_price(store: SqliteStore = Depends(get_store)):
    """Most recent stored price."""
    record = await store.get_latest_price()
    if record is None:
        raise HTTPException(status_code=404, detail="No prices stored yet")
    return PriceResponse.from_record(record)


@router.get("/prices", response_model=PriceListResponse)
async def list_prices(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    limit: int | None = Query(None, ge=1, le=5000),
    store: SqliteStore = Depends(get_store),
):
    """Stored price history, ascending by date."""
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=422, detail="end_date must not be before start_date"
        )
    records = await store.list_prices(
        start_date=start_date, end_date=end_date, limit=limit
    )
    return PriceListResponse(
        total=len(records),
        items=[PriceResponse.from_record(r) for r in records],
    )
