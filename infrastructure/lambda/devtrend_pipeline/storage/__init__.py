"""Storage layer for the DevTrend pipeline.

- KeyValueStore: Backend contract
- DynamoDBStore / FileSystemStore: AWS and local backends
- TrendStorage: Weekly reports, cache snapshots and storage metadata
"""

from .backends import (
    DynamoDBStore,
    FileSystemStore,
    KeyValueStore,
    StorageError,
    create_store,
)
from .trend_storage import RetentionPolicy, TrendStorage

__all__ = [
    "DynamoDBStore",
    "FileSystemStore",
    "KeyValueStore",
    "RetentionPolicy",
    "StorageError",
    "TrendStorage",
    "create_store",
]
