"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (in-memory → Firestore, memory → Redis, etc.)
- Unit testing with in-memory implementations
- Clear separation of concerns

Usage:
    ```python
    from promptpilot.protocols import PersistentStore, RemoteDataSource

    # Type hints work with any implementation
    store: PersistentStore = RedisPersistentStore.create()     # works
    store: PersistentStore = InMemoryPersistentStore()         # also works
    ```
"""

from .persistent_store import PersistentStore
from .remote_data_source import (
    FieldIncrement,
    QueryFilter,
    RemoteDataSource,
    SortOrder,
)
from .storage_provider import StorageProvider

__all__ = [
    "FieldIncrement",
    "PersistentStore",
    "QueryFilter",
    "RemoteDataSource",
    "SortOrder",
    "StorageProvider",
]
