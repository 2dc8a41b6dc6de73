"""Remote data source protocol.

Defines the interface for the hosted document database the core reads
prompts and ratings from. Documents are grouped into collections and
addressed by string ids; records are plain dicts that include their "id".

Implementations can include:
- In-memory documents (tests, local development)
- Firestore
- Any document store supporting filter/sort/limit queries and field increments
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "array-contains", "in"]
SortDirection = Literal["asc", "desc"]


@dataclass(frozen=True)
class QueryFilter:
    """A single where-clause: equality, range or array-membership."""

    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class SortOrder:
    """One (field, direction) pair of a query's ordering."""

    field: str
    direction: SortDirection = "asc"


@dataclass(frozen=True)
class FieldIncrement:
    """Server-side numeric increment applied to one field."""

    field: str
    amount: float


@runtime_checkable
class RemoteDataSource(Protocol):
    """Protocol for the remote document database.

    All operations are asynchronous and may raise RemoteError (or its
    MissingIndexError variant for unsupported query shapes). Timeout
    policy belongs to the implementation.

    Example:
        ```python
        source: RemoteDataSource = InMemoryDataSource()
        prompts = await source.query(
            "prompts",
            filters=[QueryFilter("isPublic", "!=", False)],
            sort=[SortOrder("createdAt", "desc")],
            limit=20,
        )
        ```
    """

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        sort: Sequence[SortOrder] = (),
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Run a filtered, ordered, limited query.

        Args:
            collection: Collection name
            filters: Where-clauses, all of which must hold
            sort: Ordering, most significant first
            limit: Maximum number of records

        Returns:
            Matching records, each including its "id"
        """
        ...

    async def get_by_id(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one record, or None if it does not exist."""
        ...

    async def add(
        self,
        collection: str,
        record: Mapping[str, Any],
        doc_id: str | None = None,
    ) -> str:
        """Create a record.

        Args:
            collection: Collection name
            record: Field values
            doc_id: Explicit id; generated when omitted

        Returns:
            The id of the stored record
        """
        ...

    async def update_fields(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        increments: Sequence[FieldIncrement] = (),
    ) -> None:
        """Set some fields and increment others on an existing record.

        Raises:
            RemoteError: If the record does not exist (code "not-found")
        """
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a record; deleting a missing record is not an error."""
        ...
