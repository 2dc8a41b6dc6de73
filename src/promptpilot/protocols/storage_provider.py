"""Object storage provider protocol."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageProvider(Protocol):
    """Protocol for the object storage holding uploaded images.

    Only URL resolution is needed by the core; uploads and image
    encoding stay with the client.
    """

    async def get_download_url(self, path: str) -> str:
        """Resolve a storage path to a fetchable URL.

        Raises:
            RemoteError: If no object exists at path or the call fails
        """
        ...
