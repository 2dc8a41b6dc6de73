#!/usr/bin/env python3
"""
Demo script for PromptPilot core.

This script walks through the cached feeds, search, rating aggregation
(including the lost-update race and its repair) and image URL caching,
using in-memory collaborators only.
"""

import asyncio
from datetime import datetime, timezone

from promptpilot import AppContext, RatingAggregator
from promptpilot.repositories import (
    InMemoryDataSource,
    InMemoryPersistentStore,
    InMemoryStorageProvider,
)
from promptpilot.utils import batch_process, delay, throttle

SAMPLE_PROMPTS = {
    "welcome-mail": {
        "title": "Welcome email",
        "content": "Write a friendly welcome email for new {product} customers",
        "category": "Marketing",
        "tags": ["email", "onboarding"],
        "likesCount": 12,
        "isPublic": True,
        "createdAt": datetime(2024, 1, 10, tzinfo=timezone.utc),
    },
    "code-review": {
        "title": "Python code review",
        "content": "Review this Python function for bugs and style issues",
        "category": "Programmierung",
        "tags": ["python", "review"],
        "likesCount": 40,
        "isPublic": True,
        "createdAt": datetime(2024, 2, 3, tzinfo=timezone.utc),
    },
    "trip-plan": {
        "title": "Weekend trip planner",
        "content": "Plan a two day city trip with a tight budget",
        "category": "Reisen",
        "tags": ["travel"],
        "likesCount": 7,
        "isPublic": True,
        "createdAt": datetime(2024, 3, 15, tzinfo=timezone.utc),
    },
}


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


def new_source(latency: float = 0.01) -> InMemoryDataSource:
    return InMemoryDataSource.create(documents={"prompts": SAMPLE_PROMPTS}, latency=latency)


async def demo_feeds(context: AppContext) -> None:
    """Demonstrate cached feeds and search."""
    print_section("Cached Feeds and Search")

    for attempt in ("cold", "warm"):
        context.monitor.start_measure("demo_feed")
        prompts = await context.feed.fetch_latest_prompts()
        elapsed = context.monitor.end_measure("demo_feed")
        print(f"\n  {attempt} fetch: {len(prompts)} prompts in {elapsed:.0f}ms")
        for prompt in prompts:
            print(f"    - {prompt.title} ({prompt.category})")

    for query in ("python", "PYTHON", "trip"):
        results = await context.feed.search_prompts(query)
        print(f"\n  Search '{query}': {[p.title for p in results]}")

    print(f"\n  Cache stats: {context.timed_cache.get_stats()}")


async def demo_ratings(context: AppContext) -> None:
    """Demonstrate incremental rating aggregation."""
    print_section("Rating Aggregation")

    steps = [
        ("rate", "alice", 4),
        ("rate", "bob", 2),
        ("rate", "alice", 2),
        ("delete", "bob", None),
        ("delete", "alice", None),
    ]
    for action, user, value in steps:
        if action == "rate":
            aggregate = await context.ratings.rate_prompt(user, "code-review", value)
            label = f"{user} rates {value}"
        else:
            aggregate = await context.ratings.delete_rating(user, "code-review")
            label = f"{user} deletes rating"
        print(f"  {label:<22} -> count={aggregate.count}, average={aggregate.average:.2f}")


async def demo_race_and_repair() -> None:
    """Demonstrate the lost update without serialization, and repair."""
    print_section("Concurrent Ratings")

    for serialize in (False, True):
        source = new_source()
        ratings = RatingAggregator(source, serialize_updates=serialize)

        await asyncio.gather(
            ratings.rate_prompt("alice", "trip-plan", 4),
            ratings.rate_prompt("bob", "trip-plan", 2),
        )
        stored = await ratings.get_aggregate("trip-plan")
        print(f"\n  serialize_updates={serialize}")
        print(f"    stored:   count={stored.count}, average={stored.average:.2f}")

        repaired = await ratings.repair_aggregate("trip-plan")
        print(f"    repaired: count={repaired.count}, average={repaired.average:.2f}")


async def demo_rate_limits(context: AppContext) -> None:
    """Demonstrate debounced search and throttled calls."""
    print_section("Debounce and Throttle")

    results = []
    search = context.feed.debounced_search(results.append, wait_ms=50)
    for partial in ("w", "we", "wee", "weekend"):
        search(partial)
        await delay(10)
    await delay(100)
    print(f"  Debounced search ran once: {[[p.title for p in r] for r in results]}")
    print(f"  Recent searches: {context.feed.recent_searches}")

    calls = []
    ping = throttle(lambda n: calls.append(n) or n, 50)
    for n in range(5):
        ping(n)
    await delay(60)
    ping(5)
    print(f"  Throttled calls that went through: {calls}")


async def demo_images(context: AppContext) -> None:
    """Demonstrate image URL caching with legacy path fallback."""
    print_section("Image URLs")

    paths = ["profile_pics/alice.png", "prompts/cover.png", "prompts/missing.png"]
    placeholder = "https://cdn.example.com/placeholder.png"

    async def resolve(path: str) -> str:
        await delay(5)
        return await context.images.get_image_url_or_placeholder(path, placeholder)

    urls = await batch_process(paths, resolve, batch_size=2)
    for path, url in zip(paths, urls):
        print(f"  {path:<24} -> {url}")

    print(f"\n  Cached keys: {await context.image_cache.cache.keys()}")
    print(f"  Measurements: {context.monitor.get_stats()}")


async def main() -> None:
    """Run all demos."""
    print("\n🚀 PromptPilot Core Demo")
    print("=" * 70)

    storage = InMemoryStorageProvider(
        {
            "profile_images/alice.png": "https://cdn.example.com/profile_images/alice.png",
            "prompts/cover.png": "https://cdn.example.com/prompts/cover.png",
        }
    )
    context = AppContext.create(new_source(), store=InMemoryPersistentStore(), storage=storage)

    try:
        await demo_feeds(context)
        await demo_ratings(context)
        await demo_race_and_repair()
        await demo_rate_limits(context)
        await demo_images(context)

        print("\n" + "=" * 70)
        print("✅ Demo completed successfully!")
        print("=" * 70)
    finally:
        await context.aclose()


if __name__ == "__main__":
    asyncio.run(main())
