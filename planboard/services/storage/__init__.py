"""
Storage Services Package

Abstract interfaces to the hosted backend plus an in-memory implementation.
"""

from planboard.services.storage.interface import (
    AuditStorageInterface,
    DataSourceInterface,
    StorageError,
)
from planboard.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDataSource,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DataSourceInterface",
    # Exceptions
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryDataSource",
]
