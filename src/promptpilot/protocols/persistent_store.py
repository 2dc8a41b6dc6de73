"""Persistent key-value store protocol.

Defines the interface for the durable string store that backs the
persistent caches. Callers namespace their own keys.

Implementations can include:
- Redis (default)
- In-memory dict (tests)
- Device-local storage on a client
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class PersistentStore(Protocol):
    """Protocol for durable key-value storage.

    A completed set_item() must be durable: the value survives a crash
    that happens after the call returns.
    """

    async def get_item(self, key: str) -> str | None:
        """Return the stored string, or None if the key is absent."""
        ...

    async def set_item(self, key: str, value: str) -> None:
        """Store value under key, overwriting any previous value."""
        ...

    async def remove_item(self, key: str) -> None:
        """Remove key; removing a missing key is not an error."""
        ...

    async def get_all_keys(self) -> list[str]:
        """List every key in the store."""
        ...
