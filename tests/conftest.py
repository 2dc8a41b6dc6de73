"""
Pytest configuration and shared fixtures for PromptPilot tests.
"""

from datetime import datetime, timezone

import pytest
from hypothesis import settings

from promptpilot.repositories import (
    InMemoryDataSource,
    InMemoryPersistentStore,
    InMemoryStorageProvider,
)

settings.register_profile("promptpilot", max_examples=60, deadline=None)
settings.load_profile("promptpilot")

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = START_MS) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 0, minutes: float = 0) -> None:
        self.now += ms + int(minutes * 60_000)


def make_prompts() -> dict[str, dict]:
    """Prompt records covering current and legacy field names."""
    return {
        "p1": {
            "title": "Marketing email generator",
            "content": "Write a marketing email for {product}",
            "category": "Marketing",
            "tags": ["email", "sales"],
            "userId": "author-1",
            "userDisplayName": "Ada",
            "likesCount": 10,
            "averageRating": 0,
            "ratingsCount": 0,
            "isPublic": True,
            "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
        },
        "p2": {
            "title": "Python code reviewer",
            "description": "Review this Python code for bugs",
            "category": "Programmierung",
            "tags": ["python", "review"],
            "authorId": "author-2",
            "authorName": "Grace",
            "likesCount": 25,
            "rating": 4.5,
            "ratingCount": 2,
            "createdAt": datetime(2024, 3, 1, tzinfo=timezone.utc),
        },
        "p3": {
            "title": "Private notes summarizer",
            "content": "Summarize my notes",
            "tags": ["notes"],
            "likesCount": 99,
            "averageRating": 5.0,
            "ratingsCount": 1,
            "isPublic": False,
            "createdAt": datetime(2024, 4, 1, tzinfo=timezone.utc),
        },
        "p4": {
            "title": "Travel itinerary planner",
            "content": "Plan a 5 day trip",
            "category": "Reisen",
            "likesCount": 3,
            "averageRating": 3.0,
            "ratingsCount": 1,
            "isPublic": True,
            "createdAt": datetime(2024, 2, 1, tzinfo=timezone.utc),
        },
    }


@pytest.fixture
def clock():
    """Fixture providing a controllable clock."""
    return FakeClock()


@pytest.fixture
def prompt_records():
    """Fixture providing raw prompt records keyed by id."""
    return make_prompts()


@pytest.fixture
def data_source(prompt_records):
    """Fixture providing an in-memory data source seeded with prompts."""
    return InMemoryDataSource.create(documents={"prompts": prompt_records})


@pytest.fixture
def store():
    """Fixture providing an empty in-memory persistent store."""
    return InMemoryPersistentStore()


@pytest.fixture
def storage():
    """Fixture providing a storage provider with a few images."""
    return InMemoryStorageProvider(
        {
            "profile_images/u1.png": "https://cdn.example.com/profile_images/u1.png",
            "profile_pics/u2.png": "https://cdn.example.com/profile_pics/u2.png",
            "prompts/cover.png": "https://cdn.example.com/prompts/cover.png",
        }
    )
