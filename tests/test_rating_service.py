"""
Tests for RatingAggregator.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from promptpilot.entities import RatingAggregate
from promptpilot.errors import NotFoundError, RemoteError, ValidationError
from promptpilot.repositories import InMemoryDataSource
from promptpilot.services import RatingAggregator


class TickingNow:
    """Timestamp source advancing one second per call."""

    def __init__(self) -> None:
        self.current = datetime(2024, 5, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FailingAggregateWrites(InMemoryDataSource):
    """Data source that accepts rating writes but can reject prompt updates."""

    fail_prompt_updates = True

    async def update_fields(self, collection, doc_id, fields, increments=()):
        if collection == "prompts" and self.fail_prompt_updates:
            await self._roundtrip("update_fields")
            raise RemoteError("unavailable", code="unavailable")
        await super().update_fields(collection, doc_id, fields, increments)


@pytest.fixture
def ratings(data_source):
    return RatingAggregator(data_source, now=TickingNow())


async def stored(data_source, prompt_id="p1") -> tuple[int, float]:
    record = await data_source.get_by_id("prompts", prompt_id)
    return record["ratingsCount"], record["averageRating"]


class TestRatingLifecycle:
    """Insert, update and delete walk through the aggregate states."""

    @pytest.mark.asyncio
    async def test_insert_update_delete_sequence(self, ratings, data_source):
        assert await ratings.rate_prompt("A", "p1", 4) == RatingAggregate(1, 4.0)
        assert await ratings.rate_prompt("B", "p1", 2) == RatingAggregate(2, 3.0)
        assert await stored(data_source) == (2, 3.0)

        assert await ratings.rate_prompt("A", "p1", 2) == RatingAggregate(2, 2.0)
        assert await stored(data_source) == (2, 2.0)

        assert await ratings.delete_rating("B", "p1") == RatingAggregate(1, 2.0)
        assert await stored(data_source) == (1, 2.0)

        assert await ratings.delete_rating("A", "p1") == RatingAggregate.empty()
        assert await stored(data_source) == (0, 0)
        assert data_source.count("ratings") == 0

    @pytest.mark.asyncio
    async def test_rating_document_shape(self, ratings, data_source):
        await ratings.rate_prompt("A", "p1", 5)

        record = await data_source.get_by_id("ratings", "A_p1")
        assert record["promptId"] == "p1"
        assert record["userId"] == "A"
        assert record["ratingValue"] == 5
        assert record["createdAt"] == record["updatedAt"]

    @pytest.mark.asyncio
    async def test_rerate_keeps_created_at(self, ratings):
        await ratings.rate_prompt("A", "p1", 5)
        first = await ratings.get_user_rating("A", "p1")
        await ratings.rate_prompt("A", "p1", 3)
        second = await ratings.get_user_rating("A", "p1")

        assert second.value == 3
        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at
        assert second.id == "A_p1"

    @pytest.mark.asyncio
    async def test_get_user_rating_absent(self, ratings):
        assert await ratings.get_user_rating("nobody", "p1") is None

    @pytest.mark.asyncio
    async def test_get_aggregate(self, ratings):
        await ratings.rate_prompt("A", "p1", 3)
        assert await ratings.get_aggregate("p1") == RatingAggregate(1, 3.0)
        with pytest.raises(NotFoundError):
            await ratings.get_aggregate("missing")

    @pytest.mark.asyncio
    async def test_prompt_ratings_newest_first(self, ratings):
        await ratings.rate_prompt("A", "p1", 1)
        await ratings.rate_prompt("B", "p1", 2)
        await ratings.rate_prompt("C", "p1", 3)
        await ratings.rate_prompt("A", "p4", 5)

        result = await ratings.get_prompt_ratings("p1")
        assert [r.user_id for r in result] == ["C", "B", "A"]


class TestRatingValidation:
    """Invalid input fails before any remote call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, 6, -1, 4.5, True, "4", None])
    async def test_invalid_values_rejected(self, ratings, data_source, value):
        with pytest.raises(ValidationError):
            await ratings.rate_prompt("A", "p1", value)

        assert sum(data_source.operation_counts.values()) == 0
        assert await stored(data_source) == (0, 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id,prompt_id", [("", "p1"), ("A", "")])
    async def test_empty_ids_rejected(self, ratings, user_id, prompt_id):
        with pytest.raises(ValidationError):
            await ratings.rate_prompt(user_id, prompt_id, 3)
        with pytest.raises(ValidationError):
            await ratings.delete_rating(user_id, prompt_id)

    @pytest.mark.asyncio
    async def test_missing_prompt(self, ratings, data_source):
        with pytest.raises(NotFoundError):
            await ratings.rate_prompt("A", "missing", 3)
        assert data_source.count("ratings") == 0

    @pytest.mark.asyncio
    async def test_delete_without_rating(self, ratings):
        with pytest.raises(NotFoundError):
            await ratings.delete_rating("A", "p1")


class TestInconsistentState:
    """Divergence between ratings and aggregates, and its repair."""

    @pytest.mark.asyncio
    async def test_rerate_with_zero_stored_count_skips_aggregate(self, ratings, data_source, caplog):
        data_source.seed("ratings", "A_p1", {"promptId": "p1", "userId": "A", "ratingValue": 3})

        with caplog.at_level(logging.WARNING):
            assert await ratings.rate_prompt("A", "p1", 5) == RatingAggregate.empty()

        assert "repair_aggregate" in caplog.text
        assert await stored(data_source) == (0, 0)
        assert (await ratings.get_user_rating("A", "p1")).value == 5

        assert await ratings.repair_aggregate("p1") == RatingAggregate(1, 5.0)
        assert await stored(data_source) == (1, 5.0)

    @pytest.mark.asyncio
    async def test_failed_aggregate_write_is_repairable(self):
        source = FailingAggregateWrites.create(documents={"prompts": {"p1": {"ratingsCount": 0}}})
        ratings = RatingAggregator(source)

        with pytest.raises(RemoteError):
            await ratings.rate_prompt("A", "p1", 4)
        assert source.count("ratings") == 1

        assert await ratings.get_aggregate("p1") == RatingAggregate.empty()

        source.fail_prompt_updates = False
        assert await ratings.repair_aggregate("p1") == RatingAggregate(1, 4.0)
        assert await ratings.get_aggregate("p1") == RatingAggregate(1, 4.0)

    @pytest.mark.asyncio
    async def test_repair_is_idempotent(self, ratings, data_source):
        await ratings.rate_prompt("A", "p1", 4)
        await ratings.rate_prompt("B", "p1", 5)
        await data_source.update_fields("prompts", "p1", {"averageRating": 1.0, "ratingsCount": 7})

        first = await ratings.repair_aggregate("p1")
        second = await ratings.repair_aggregate("p1")
        assert first == second == RatingAggregate(2, 4.5)
        assert await stored(data_source) == (2, 4.5)

    @pytest.mark.asyncio
    async def test_repair_missing_prompt(self, ratings):
        with pytest.raises(NotFoundError):
            await ratings.repair_aggregate("missing")

    @pytest.mark.asyncio
    async def test_delete_for_missing_prompt(self, ratings, data_source, caplog):
        data_source.seed("ratings", "A_gone", {"promptId": "gone", "userId": "A", "ratingValue": 2})

        with caplog.at_level(logging.WARNING):
            assert await ratings.delete_rating("A", "gone") == RatingAggregate.empty()
        assert data_source.count("ratings") == 0
        assert "missing prompt" in caplog.text


class TestConcurrentRatings:
    """Two raters of the same prompt at the same time."""

    @pytest.mark.asyncio
    async def test_unserialized_updates_lose_one_average(self, data_source):
        ratings = RatingAggregator(data_source, serialize_updates=False)

        await asyncio.gather(
            ratings.rate_prompt("A", "p1", 4),
            ratings.rate_prompt("B", "p1", 2),
        )

        count, average = await stored(data_source)
        assert count == 2
        assert average in (4.0, 2.0)

        assert await ratings.repair_aggregate("p1") == RatingAggregate(2, 3.0)

    @pytest.mark.asyncio
    async def test_serialized_updates_keep_both(self, data_source):
        ratings = RatingAggregator(data_source)

        await asyncio.gather(
            ratings.rate_prompt("A", "p1", 4),
            ratings.rate_prompt("B", "p1", 2),
            ratings.rate_prompt("C", "p1", 3),
        )

        count, average = await stored(data_source)
        assert count == 3
        assert average == pytest.approx(3.0)


operations = st.lists(
    st.tuples(
        st.sampled_from(["rate", "delete"]),
        st.sampled_from(["u0", "u1", "u2", "u3"]),
        st.integers(min_value=1, max_value=5),
    ),
    max_size=25,
)


@given(ops=operations)
def test_incremental_average_matches_mean(ops):
    """Any rate/re-rate/delete sequence leaves the true mean and count."""

    async def scenario():
        source = InMemoryDataSource.create(documents={"prompts": {"p": {"ratingsCount": 0}}})
        ratings = RatingAggregator(source)
        model: dict[str, int] = {}

        for action, user, value in ops:
            if action == "rate":
                await ratings.rate_prompt(user, "p", value)
                model[user] = value
            elif user in model:
                await ratings.delete_rating(user, "p")
                del model[user]
            else:
                with pytest.raises(NotFoundError):
                    await ratings.delete_rating(user, "p")

            aggregate = await ratings.get_aggregate("p")
            assert aggregate.count == len(model)
            expected = sum(model.values()) / len(model) if model else 0.0
            assert aggregate.average == pytest.approx(expected, abs=1e-9)

    asyncio.run(scenario())
