"""Rating domain entities."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserRating:
    """One user's rating of one prompt.

    At most one exists per (user_id, prompt_id); its document id is
    derived from that pair.

    Attributes:
        prompt_id: The rated prompt
        user_id: The rating user
        value: Rating value in [1, 5]
        created_at: When the rating was first given
        updated_at: When the rating was last changed
        id: Document id in the ratings collection
    """

    prompt_id: str
    user_id: str
    value: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: str | None = None

    @staticmethod
    def document_id(user_id: str, prompt_id: str) -> str:
        return f"{user_id}_{prompt_id}"


@dataclass(frozen=True)
class RatingAggregate:
    """Running (count, average) summary attached to a prompt.

    The transition methods are O(1) and derive the new average from the
    previous average and count only. Repeated application accumulates
    floating-point drift; from_values() is the full recompute used to
    repair it.
    """

    count: int = 0
    average: float = 0.0

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError("count must be >= 0")
        if self.count == 0 and self.average != 0:
            raise ValueError("average must be 0 when count is 0")

    @classmethod
    def empty(cls) -> "RatingAggregate":
        return cls(0, 0.0)

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "RatingAggregate":
        """Recompute the aggregate from every individual rating value."""
        values = list(values)
        if not values:
            return cls.empty()
        return cls(len(values), sum(values) / len(values))

    @property
    def total(self) -> float:
        return self.average * self.count

    def with_added(self, value: float) -> "RatingAggregate":
        count = self.count + 1
        return RatingAggregate(count, (self.total + value) / count)

    def with_replaced(self, old_value: float, new_value: float) -> "RatingAggregate":
        if self.count == 0:
            raise ValueError("cannot replace a rating in an empty aggregate")
        return RatingAggregate(self.count, (self.total - old_value + new_value) / self.count)

    def with_removed(self, value: float) -> "RatingAggregate":
        if self.count <= 1:
            return RatingAggregate.empty()
        count = self.count - 1
        return RatingAggregate(count, (self.total - value) / count)
