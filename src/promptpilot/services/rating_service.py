"""Rating service: per-user ratings and incrementally maintained aggregates.

Each prompt document carries a running ``(ratingsCount, averageRating)``
pair. Rating, re-rating and deleting a rating adjust that pair in O(1)
from the previous values instead of rereading every rating. The per-user
rating write and the aggregate write are two separate remote operations;
an interruption between them leaves the two out of step until
repair_aggregate() recomputes the pair from the rating records.
"""

import asyncio
import contextlib
import logging
import weakref
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any, AsyncContextManager

from promptpilot.entities import RatingAggregate, UserRating
from promptpilot.errors import NotFoundError, ValidationError
from promptpilot.protocols import FieldIncrement, QueryFilter, RemoteDataSource, SortOrder

logger = logging.getLogger(__name__)

PROMPTS = "prompts"
RATINGS = "ratings"

MIN_RATING = 1
MAX_RATING = 5


class RatingAggregator:
    """Rates prompts and keeps each prompt's rating aggregate current.

    Concurrency: read-compute-write on a prompt's aggregate is not atomic
    against the remote data source. With serialize_updates=True (default)
    updates to the same prompt are serialized within this process, which
    removes the lost-update race between coroutines sharing this
    aggregator. Writers in other processes can still interleave; run
    repair_aggregate() to reconcile.

    Example:
        ```python
        ratings = RatingAggregator(data_source)
        aggregate = await ratings.rate_prompt("user-1", "prompt-1", 4)
        aggregate.count, aggregate.average   # (1, 4.0)

        await ratings.delete_rating("user-1", "prompt-1")
        await ratings.repair_aggregate("prompt-1")
        ```
    """

    def __init__(
        self,
        data_source: RemoteDataSource,
        serialize_updates: bool = True,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            data_source: Remote document database holding prompts and ratings.
            serialize_updates: Serialize aggregate updates per prompt in-process.
            now: Timestamp source for createdAt/updatedAt. Defaults to UTC now.
        """
        self._source = data_source
        self._serialize = serialize_updates
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def create(
        cls,
        data_source: RemoteDataSource,
        serialize_updates: bool = True,
    ) -> "RatingAggregator":
        return cls(data_source, serialize_updates=serialize_updates)

    async def rate_prompt(self, user_id: str, prompt_id: str, value: int) -> RatingAggregate:
        """Create or replace user_id's rating of prompt_id.

        Args:
            user_id: The rating user
            prompt_id: The rated prompt
            value: Integer rating in [1, 5]

        Returns:
            The prompt's aggregate after the update

        Raises:
            ValidationError: Bad ids or value; nothing is written
            NotFoundError: The prompt does not exist
            RemoteError: A read or write failed
        """
        _validate_ids(user_id, prompt_id)
        _validate_value(value)

        async with self._guard(prompt_id):
            doc_id = UserRating.document_id(user_id, prompt_id)
            existing = await self._source.get_by_id(RATINGS, doc_id)
            prompt = await self._source.get_by_id(PROMPTS, prompt_id)
            if prompt is None:
                raise NotFoundError(f"Prompt '{prompt_id}' not found")

            current = aggregate_from_record(prompt)
            now = self._now()

            if existing is None:
                updated = current.with_added(value)
                await self._source.add(
                    RATINGS,
                    {
                        "promptId": prompt_id,
                        "userId": user_id,
                        "ratingValue": value,
                        "createdAt": now,
                        "updatedAt": now,
                    },
                    doc_id=doc_id,
                )
                await self._source.update_fields(
                    PROMPTS,
                    prompt_id,
                    {"averageRating": updated.average, "updatedAt": now},
                    [FieldIncrement("ratingsCount", 1)],
                )
                logger.debug(f"New rating {value} on '{prompt_id}' by '{user_id}'")
                return updated

            old_value = existing.get("ratingValue", 0)
            await self._source.update_fields(
                RATINGS, doc_id, {"ratingValue": value, "updatedAt": now}
            )

            if current.count == 0:
                logger.warning(
                    f"Prompt '{prompt_id}' has a rating by '{user_id}' but a stored "
                    "ratingsCount of 0; skipping aggregate update, run repair_aggregate"
                )
                return current

            updated = current.with_replaced(old_value, value)
            await self._source.update_fields(
                PROMPTS,
                prompt_id,
                {"averageRating": updated.average, "updatedAt": now},
            )
            logger.debug(f"Rating on '{prompt_id}' by '{user_id}' changed {old_value} -> {value}")
            return updated

    async def delete_rating(self, user_id: str, prompt_id: str) -> RatingAggregate:
        """Remove user_id's rating of prompt_id.

        Returns:
            The prompt's aggregate after the removal

        Raises:
            ValidationError: Bad ids
            NotFoundError: The user has not rated the prompt
            RemoteError: A read or write failed
        """
        _validate_ids(user_id, prompt_id)

        async with self._guard(prompt_id):
            doc_id = UserRating.document_id(user_id, prompt_id)
            existing = await self._source.get_by_id(RATINGS, doc_id)
            if existing is None:
                raise NotFoundError(f"No rating by '{user_id}' for prompt '{prompt_id}'")

            old_value = existing.get("ratingValue", 0)
            await self._source.delete(RATINGS, doc_id)

            prompt = await self._source.get_by_id(PROMPTS, prompt_id)
            if prompt is None:
                logger.warning(f"Deleted rating for missing prompt '{prompt_id}'")
                return RatingAggregate.empty()

            current = aggregate_from_record(prompt)
            now = self._now()

            if current.count > 1:
                updated = current.with_removed(old_value)
                await self._source.update_fields(
                    PROMPTS,
                    prompt_id,
                    {"averageRating": updated.average, "updatedAt": now},
                    [FieldIncrement("ratingsCount", -1)],
                )
                return updated

            await self._source.update_fields(
                PROMPTS,
                prompt_id,
                {"averageRating": 0, "ratingsCount": 0, "updatedAt": now},
            )
            return RatingAggregate.empty()

    async def get_user_rating(self, user_id: str, prompt_id: str) -> UserRating | None:
        _validate_ids(user_id, prompt_id)
        record = await self._source.get_by_id(RATINGS, UserRating.document_id(user_id, prompt_id))
        if record is None:
            return None
        return rating_from_record(record)

    async def get_aggregate(self, prompt_id: str) -> RatingAggregate:
        """Read the stored aggregate of a prompt.

        Raises:
            NotFoundError: The prompt does not exist
        """
        prompt = await self._source.get_by_id(PROMPTS, prompt_id)
        if prompt is None:
            raise NotFoundError(f"Prompt '{prompt_id}' not found")
        return aggregate_from_record(prompt)

    async def get_prompt_ratings(self, prompt_id: str) -> list[UserRating]:
        """All ratings of a prompt, newest first."""
        records = await self._source.query(
            RATINGS,
            filters=[QueryFilter("promptId", "==", prompt_id)],
            sort=[SortOrder("createdAt", "desc")],
        )
        return [rating_from_record(record) for record in records]

    async def repair_aggregate(self, prompt_id: str) -> RatingAggregate:
        """Recompute a prompt's aggregate from all of its rating records.

        Writes absolute values, so it is idempotent and safe to run at any
        time.

        Raises:
            NotFoundError: The prompt does not exist
        """
        async with self._guard(prompt_id):
            prompt = await self._source.get_by_id(PROMPTS, prompt_id)
            if prompt is None:
                raise NotFoundError(f"Prompt '{prompt_id}' not found")

            records = await self._source.query(
                RATINGS, filters=[QueryFilter("promptId", "==", prompt_id)]
            )
            repaired = RatingAggregate.from_values(r.get("ratingValue", 0) for r in records)
            stored = aggregate_from_record(prompt)
            if stored != repaired:
                logger.info(
                    f"Repairing aggregate of '{prompt_id}': "
                    f"({stored.count}, {stored.average:.4f}) -> "
                    f"({repaired.count}, {repaired.average:.4f})"
                )

            await self._source.update_fields(
                PROMPTS,
                prompt_id,
                {
                    "averageRating": repaired.average,
                    "ratingsCount": repaired.count,
                    "updatedAt": self._now(),
                },
            )
            return repaired

    def _guard(self, prompt_id: str) -> AsyncContextManager[Any]:
        if not self._serialize:
            return contextlib.nullcontext()

        lock = self._locks.get(prompt_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[prompt_id] = lock
        return lock


def aggregate_from_record(record: Mapping[str, Any]) -> RatingAggregate:
    """Read (ratingsCount, averageRating) from a prompt record.

    Missing fields and non-positive counts read as the empty aggregate.
    """
    count = int(record.get("ratingsCount") or 0)
    if count <= 0:
        return RatingAggregate.empty()
    return RatingAggregate(count, float(record.get("averageRating") or 0.0))


def rating_from_record(record: Mapping[str, Any]) -> UserRating:
    return UserRating(
        prompt_id=record.get("promptId", ""),
        user_id=record.get("userId", ""),
        value=int(record.get("ratingValue", 0)),
        created_at=record.get("createdAt"),
        updated_at=record.get("updatedAt"),
        id=record.get("id"),
    )


def _validate_ids(user_id: str, prompt_id: str) -> None:
    if not user_id or not prompt_id:
        raise ValidationError("user_id and prompt_id must be non-empty")


def _validate_value(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Rating must be an integer, got {value!r}")
    if not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {value}")
