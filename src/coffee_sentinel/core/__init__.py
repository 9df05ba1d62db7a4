"""coffee_sentinel.core: Foundation types, config, and exceptions."""

from coffee_sentinel.core.config import (
    APIConfig,
    SentinelConfig,
    SourceConfig,
    StorageConfig,
    load_config,
)
from coffee_sentinel.core.exceptions import (
    CellParseError,
    CoffeeSentinelError,
    ColumnDetectionError,
    ConfigError,
    DecodeError,
    EmptyExtractionError,
    FetchError,
    IngestionError,
    SheetNotFoundError,
    SourceFormatError,
    StorageError,
)
from coffee_sentinel.core.models import (
    ColumnMap,
    Environment,
    IngestionSummary,
    IsoDate,
    PriceRecord,
    RawCell,
    Sheet,
    StorageBackend,
)

__all__ = [
    # Type aliases
    "IsoDate",
    "RawCell",
    # Enums
    "StorageBackend",
    "Environment",
    # Models
    "PriceRecord",
    "ColumnMap",
    "Sheet",
    "IngestionSummary",
    # Config
    "SentinelConfig",
    "SourceConfig",
    "StorageConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "CoffeeSentinelError",
    "ConfigError",
    "IngestionError",
    "FetchError",
    "SourceFormatError",
    "DecodeError",
    "SheetNotFoundError",
    "ColumnDetectionError",
    "EmptyExtractionError",
    "CellParseError",
    "StorageError",
]
