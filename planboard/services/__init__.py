"""Services package."""

from planboard.services.storage import (
    AuditStorageInterface,
    DataSourceInterface,
    InMemoryAuditStorage,
    InMemoryDataSource,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "DataSourceInterface",
    "InMemoryAuditStorage",
    "InMemoryDataSource",
    "StorageError",
]
