"""Repository layer for data access.

This layer implements the collaborator protocols (remote data source,
persistent store, storage provider). This enables:
- Easy swapping of implementations (in-memory → Redis, in-memory → Firestore, etc.)
- Unit testing with in-memory implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from .memory_data_source import InMemoryDataSource
from .memory_store import InMemoryPersistentStore, InMemoryStorageProvider
from .redis_store import RedisPersistentStore

__all__ = [
    "InMemoryDataSource",
    "InMemoryPersistentStore",
    "InMemoryStorageProvider",
    "RedisPersistentStore",
]
