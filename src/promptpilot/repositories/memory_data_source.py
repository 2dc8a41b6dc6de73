"""In-memory implementation of RemoteDataSource.

Holds documents in nested dicts and evaluates filters, ordering and
limits locally. Every operation yields to the event loop (optionally
after a simulated latency), so concurrent coroutines interleave between
reads and writes the same way they would against a networked database.
"""

import asyncio
import copy
import uuid
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from promptpilot.errors import MissingIndexError, RemoteError
from promptpilot.protocols import FieldIncrement, QueryFilter, SortOrder


class InMemoryDataSource:
    """Dict-backed document store satisfying the RemoteDataSource protocol.

    Attributes:
        operation_counts: Number of calls per operation name, for diagnostics
    """

    def __init__(
        self,
        latency: float = 0.0,
        composite_indexes: Iterable[Sequence[str]] | None = None,
    ) -> None:
        """Initialize the data source.

        Args:
            latency: Seconds each operation waits before completing.
            composite_indexes: Field tuples queries may combine. When given,
                a query spanning several fields without a matching tuple
                raises MissingIndexError. None disables the check.
        """
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._latency = latency
        self._indexes = (
            None if composite_indexes is None else {tuple(i) for i in composite_indexes}
        )
        self.operation_counts: Counter[str] = Counter()

    @classmethod
    def create(
        cls,
        documents: Mapping[str, Mapping[str, Mapping[str, Any]]] | None = None,
        latency: float = 0.0,
        composite_indexes: Iterable[Sequence[str]] | None = None,
    ) -> "InMemoryDataSource":
        """Factory method building a data source pre-filled with documents.

        Args:
            documents: {collection: {doc_id: record}}
            latency: Simulated per-operation latency in seconds.
            composite_indexes: See __init__.

        Returns:
            Configured InMemoryDataSource
        """
        source = cls(latency=latency, composite_indexes=composite_indexes)
        for collection, docs in (documents or {}).items():
            for doc_id, record in docs.items():
                source.seed(collection, doc_id, record)
        return source

    def seed(self, collection: str, doc_id: str, record: Mapping[str, Any]) -> None:
        """Synchronously insert a document (fixtures, demos)."""
        stored = copy.deepcopy(dict(record))
        stored.pop("id", None)
        self._collections.setdefault(collection, {})[doc_id] = stored

    async def _roundtrip(self, operation: str) -> None:
        self.operation_counts[operation] += 1
        await asyncio.sleep(self._latency)

    async def query(
        self,
        collection: str,
        filters: Sequence[QueryFilter] = (),
        sort: Sequence[SortOrder] = (),
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        await self._roundtrip("query")
        self._check_index(filters, sort)

        docs = self._collections.get(collection, {})
        rows = [
            self._with_id(doc_id, record)
            for doc_id, record in docs.items()
            if all(_matches(record, f) for f in filters)
        ]

        # Stable sorts applied least significant first
        for order in reversed(sort):
            rows.sort(
                key=lambda r, field=order.field: _sort_key(r.get(field)),
                reverse=order.direction == "desc",
            )

        if limit is not None:
            rows = rows[:limit]
        return rows

    async def get_by_id(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        await self._roundtrip("get_by_id")
        record = self._collections.get(collection, {}).get(doc_id)
        if record is None:
            return None
        return self._with_id(doc_id, record)

    async def add(
        self,
        collection: str,
        record: Mapping[str, Any],
        doc_id: str | None = None,
    ) -> str:
        await self._roundtrip("add")
        doc_id = doc_id or uuid.uuid4().hex[:20]
        self.seed(collection, doc_id, record)
        return doc_id

    async def update_fields(
        self,
        collection: str,
        doc_id: str,
        fields: Mapping[str, Any],
        increments: Sequence[FieldIncrement] = (),
    ) -> None:
        await self._roundtrip("update_fields")
        record = self._collections.get(collection, {}).get(doc_id)
        if record is None:
            raise RemoteError(f"No document to update: {collection}/{doc_id}", code="not-found")

        record.update(copy.deepcopy(dict(fields)))
        for inc in increments:
            record[inc.field] = (record.get(inc.field) or 0) + inc.amount

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._roundtrip("delete")
        self._collections.get(collection, {}).pop(doc_id, None)

    def count(self, collection: str) -> int:
        """Number of documents in a collection."""
        return len(self._collections.get(collection, {}))

    def _check_index(self, filters: Sequence[QueryFilter], sort: Sequence[SortOrder]) -> None:
        if self._indexes is None:
            return

        fields: list[str] = []
        for name in [f.field for f in filters] + [s.field for s in sort]:
            if name not in fields:
                fields.append(name)

        if len(fields) > 1 and tuple(fields) not in self._indexes:
            raise MissingIndexError(f"The query requires an index on {tuple(fields)}")

    @staticmethod
    def _with_id(doc_id: str, record: Mapping[str, Any]) -> dict[str, Any]:
        row = copy.deepcopy(dict(record))
        row["id"] = doc_id
        return row


def _matches(record: Mapping[str, Any], flt: QueryFilter) -> bool:
    # Documents lacking the field never match, as in hosted document stores
    if flt.field not in record:
        return False
    value = record[flt.field]

    if flt.op == "==":
        return value == flt.value
    if flt.op == "!=":
        return value != flt.value
    if flt.op == "array-contains":
        return isinstance(value, (list, tuple)) and flt.value in value
    if flt.op == "in":
        return value in flt.value

    if value is None:
        return False
    try:
        if flt.op == "<":
            return value < flt.value
        if flt.op == "<=":
            return value <= flt.value
        if flt.op == ">":
            return value > flt.value
        if flt.op == ">=":
            return value >= flt.value
    except TypeError:
        return False

    raise ValueError(f"Unsupported filter operator: {flt.op}")


def _sort_key(value: Any) -> tuple[bool, Any]:
    # Missing values order before present ones
    return (value is not None, value if value is not None else 0)
