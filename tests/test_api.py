"""
Tests for the PromptPilot API.
"""

import pytest
from fastapi.testclient import TestClient

from promptpilot.api.app import create_app
from promptpilot.context import AppContext
from promptpilot.errors import RemoteError
from promptpilot.repositories import InMemoryDataSource, InMemoryPersistentStore


@pytest.fixture
def context(data_source, storage, clock):
    """Create an application context over in-memory collaborators."""
    return AppContext.create(
        data_source,
        store=InMemoryPersistentStore(),
        storage=storage,
        clock=clock,
    )


@pytest.fixture
def client(context):
    """Create a test client."""
    return TestClient(create_app(context=context))


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "PromptPilot API"
    assert data["list_cache_ttl_minutes"] == 5


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_rating_flow(client):
    """Test rate, re-rate and delete endpoints."""
    response = client.post("/prompts/p1/ratings", json={"user_id": "A", "value": 4})
    assert response.status_code == 200
    assert response.json() == {"prompt_id": "p1", "count": 1, "average": 4.0}

    client.post("/prompts/p1/ratings", json={"user_id": "B", "value": 2})
    response = client.post("/prompts/p1/ratings", json={"user_id": "A", "value": 2})
    assert response.json()["average"] == 2.0

    response = client.get("/prompts/p1/ratings/A")
    assert response.status_code == 200
    assert response.json()["value"] == 2

    response = client.get("/prompts/p1/ratings")
    data = response.json()
    assert data["count"] == 2
    assert {r["user_id"] for r in data["ratings"]} == {"A", "B"}

    response = client.delete("/prompts/p1/ratings/B")
    assert response.json() == {"prompt_id": "p1", "count": 1, "average": 2.0}


@pytest.mark.parametrize("value", [0, 6])
def test_invalid_rating_is_bad_request(client, value):
    """Test out-of-range ratings map to 400."""
    response = client.post("/prompts/p1/ratings", json={"user_id": "A", "value": value})
    assert response.status_code == 400


def test_missing_body_field_is_unprocessable(client):
    response = client.post("/prompts/p1/ratings", json={"value": 3})
    assert response.status_code == 422


def test_not_found_errors(client):
    """Test missing prompts and ratings map to 404."""
    assert client.post("/prompts/nope/ratings", json={"user_id": "A", "value": 3}).status_code == 404
    assert client.get("/prompts/p1/ratings/nobody").status_code == 404
    assert client.delete("/prompts/p1/ratings/nobody").status_code == 404
    assert client.get("/prompts/nope/ratings").status_code == 404


def test_repair(client, data_source):
    """Test repair endpoint recomputes the aggregate."""
    client.post("/prompts/p1/ratings", json={"user_id": "A", "value": 5})
    data_source.seed("prompts", "p1", {"averageRating": 1.0, "ratingsCount": 3})

    response = client.post("/prompts/p1/ratings/repair")
    assert response.status_code == 200
    assert response.json() == {"prompt_id": "p1", "count": 1, "average": 5.0}


def test_feeds(client, data_source):
    """Test feed endpoints and cache refresh."""
    response = client.get("/feeds/latest")
    assert response.status_code == 200
    assert [p["id"] for p in response.json()["prompts"]] == ["p4", "p1"]

    client.get("/feeds/latest")
    assert data_source.operation_counts["query"] == 1

    client.get("/feeds/latest", params={"refresh": True})
    assert data_source.operation_counts["query"] == 2

    assert client.get("/feeds/popular").status_code == 200
    assert client.get("/feeds/top-rated").status_code == 200
    assert client.get("/feeds/unknown").status_code == 404


def test_rating_invalidates_feeds(client, data_source):
    client.get("/feeds/top-rated")
    client.post("/prompts/p1/ratings", json={"user_id": "A", "value": 5})

    response = client.get("/feeds/top-rated")
    assert response.json()["prompts"][0]["id"] == "p1"
    assert data_source.operation_counts["query"] == 2


def test_search(client):
    """Test search endpoint."""
    response = client.get("/search", params={"q": "python"})
    assert response.status_code == 200
    assert response.json()["count"] == 1

    response = client.get("/search")
    assert response.json() == {"prompts": [], "count": 0}


def test_images(client):
    """Test image URL resolution endpoint."""
    response = client.get("/images", params={"path": "profile_pics/u1.png"})
    assert response.status_code == 200
    assert response.json()["url"] == "https://cdn.example.com/profile_images/u1.png"

    assert client.get("/images", params={"path": "missing.png"}).status_code == 404


def test_remote_failure_is_bad_gateway(storage, clock):
    """Test data source failures map to 502."""

    class Offline(InMemoryDataSource):
        async def query(self, *args, **kwargs):
            raise RemoteError("deadline exceeded", code="deadline-exceeded")

    context = AppContext.create(
        Offline(), store=InMemoryPersistentStore(), storage=storage, clock=clock
    )
    client = TestClient(create_app(context=context))

    response = client.get("/feeds/latest")
    assert response.status_code == 502
    assert "deadline exceeded" in response.json()["detail"]


def test_stats_and_cleanup(client, clock):
    """Test stats and manual cleanup endpoints."""
    client.get("/feeds/latest")
    client.get("/feeds/latest")

    stats = client.get("/stats").json()
    assert stats["timed_cache"]["hits"] == 1
    assert "fetch_latest_prompts" in stats["measurements"]

    clock.advance(minutes=10)
    response = client.post("/cache/cleanup")
    assert response.status_code == 200
    assert response.json() == {"timed_cache": 1, "image_cache": 0}


def test_lifespan_starts_and_stops_maintenance(context):
    """Test lifespan runs cache maintenance for the served context."""
    with TestClient(create_app(context=context)) as client:
        assert client.get("/health").json()["maintenance_running"] is True
    assert not context.maintenance.running
