"""In-memory implementations of PersistentStore and StorageProvider.

Used in tests, demos, and when PERSISTENT_STORE_BACKEND=memory. The
store is durable only for the lifetime of the process.
"""

from collections.abc import Mapping

from promptpilot.errors import RemoteError


class InMemoryPersistentStore:
    """Dict-backed PersistentStore."""

    def __init__(self, items: Mapping[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def get_all_keys(self) -> list[str]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class InMemoryStorageProvider:
    """StorageProvider resolving paths from a fixed {path: url} mapping."""

    def __init__(self, objects: Mapping[str, str] | None = None) -> None:
        self._objects: dict[str, str] = dict(objects or {})
        self.lookups: list[str] = []

    def put(self, path: str, url: str) -> None:
        self._objects[path] = url

    async def get_download_url(self, path: str) -> str:
        self.lookups.append(path)
        url = self._objects.get(path)
        if url is None:
            raise RemoteError(f"Object does not exist at {path}", code="object-not-found")
        return url
