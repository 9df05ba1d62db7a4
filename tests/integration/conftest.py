"""Integration test fixtures: real I/O but no network."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from coffee_sentinel.core.config import (
    APIConfig,
    SentinelConfig,
    SourceConfig,
    StorageConfig,
)
from coffee_sentinel.core.models import StorageBackend
from coffee_sentinel.ingestion.store import SqliteStore

SOURCE_URL = "https://prices.test/precios-cafe.xlsx"


@pytest.fixture
def integration_config(tmp_path: Path) -> SentinelConfig:
    return SentinelConfig(
        source=SourceConfig(url=SOURCE_URL, request_timeout=5),
        storage=StorageConfig(
            backend=StorageBackend.SQLITE,
            sqlite_path=str(tmp_path / "integration.db"),
        ),
        api=APIConfig(),
    )


@pytest.fixture
async def integration_store(integration_config: SentinelConfig) -> SqliteStore:
    """An initialized file-backed SqliteStore."""
    store = SqliteStore(integration_config.storage)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def federation_workbook(make_workbook) -> bytes:
    """Workbook shaped like the published file: cover sheets, banner rows,
    header on row 3, an average column that must be ignored."""
    return make_workbook(
        {
            "Portada": [["Federación Nacional de Cafeteros de Colombia"]],
            "Anual": [["Año", "Precio Interno Promedio"], [2023, 1800000]],
            "Precio Interno Diario": [
                ["Precio interno de referencia"],
                ["Pesos por carga de 125 kg"],
                [None],
                ["Fecha", "Precio Interno Promedio Mes", "Precio Interno"],
                [datetime(2024, 1, 1), "1.900.000", "250.000"],
                [datetime(2024, 1, 2), "1.900.000", "251.500"],
                [None, None, None],
                ["Fuente: FNC", None, None],
            ],
        }
    )
