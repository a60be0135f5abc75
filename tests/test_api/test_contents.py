"""Tests for the content feed API."""

import pytest
from httpx import AsyncClient

from knowscroll.config import AppConfig, get_config
from knowscroll.main import app

pytestmark = pytest.mark.asyncio


class TestListProviders:
    """Tests for GET /api/providers."""

    async def test_lists_registered_providers(self, client: AsyncClient):
        """Should describe each registered provider."""
        response = await client.get("/api/providers")

        assert response.status_code == 200
        assert response.json() == [
            {"id": "wikipedia", "category": "article", "excerpt_required": True}
        ]


class TestGetContents:
    """Tests for GET /api/contents."""

    async def test_first_page_aggregates_and_persists(self, client: AsyncClient, store):
        """Should return stored records for a fresh aggregation."""
        response = await client.get("/api/contents")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 10
        assert all(item["provider"] == "wikipedia" for item in data)
        assert all(isinstance(item["id"], int) for item in data)
        assert len(await store.get_contents(1, page_size=50)) == 10

    async def test_repeat_first_page_does_not_duplicate(self, client: AsyncClient, store):
        """Should reuse stored ids for items seen before."""
        first = await client.get("/api/contents")
        second = await client.get("/api/contents")

        assert {i["id"] for i in first.json()} == {i["id"] for i in second.json()}
        assert len(await store.get_contents(1, page_size=50)) == 10

    async def test_later_pages_read_from_storage(
        self, client: AsyncClient, store, content_item_factory, wikipedia_transport
    ):
        """Should serve page 2 from storage without calling providers."""
        for _ in range(15):
            await store.persist(content_item_factory())

        response = await client.get("/api/contents", params={"page": 2})

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == list(range(11, 16))
        assert wikipedia_transport.requests == []

    async def test_search_is_forwarded(self, client: AsyncClient, wikipedia_transport):
        """Should send the search term to providers."""
        response = await client.get("/api/contents", params={"q": "  alan turing  "})

        assert response.status_code == 200
        assert wikipedia_transport.requests[0].params["gsrsearch"] == "alan turing"

    async def test_search_pages_through_fresh_batch(
        self, client: AsyncClient, store, wikipedia_transport
    ):
        """Should slice a search by page instead of repeating the first page."""
        app.dependency_overrides[get_config] = lambda: AppConfig(
            {"aggregation": {"page_size": 4}}
        )

        pages = []
        for page in (1, 2, 3, 4):
            response = await client.get("/api/contents", params={"q": "turing", "page": page})
            assert response.status_code == 200
            pages.append([item["id"] for item in response.json()])

        assert [len(ids) for ids in pages] == [4, 4, 2, 0]
        assert len(await store.get_contents(1, page_size=50)) == 10
        assert len(wikipedia_transport.requests) == 4

    async def test_hidden_items_excluded(self, client: AsyncClient, store):
        """Should drop items the user hid from later aggregations."""
        first = (await client.get("/api/contents")).json()
        hidden_id = first[0]["id"]
        await store.hide_item("user-1", hidden_id)

        response = await client.get("/api/contents", params={"user_id": "user-1"})

        ids = [item["id"] for item in response.json()]
        assert hidden_id not in ids
        assert len(ids) == 9

    async def test_unknown_source_is_empty(self, client: AsyncClient):
        """Should return an empty page for an unknown provider."""
        response = await client.get("/api/contents", params={"source": "myspace"})

        assert response.status_code == 200
        assert response.json() == []

    async def test_page_must_be_positive(self, client: AsyncClient):
        """Should reject page numbers below 1."""
        response = await client.get("/api/contents", params={"page": 0})

        assert response.status_code == 422

    async def test_rate_limited(self, client: AsyncClient):
        """Should answer 429 after 60 requests in a minute."""
        for _ in range(60):
            response = await client.get("/api/contents", params={"page": 2})
            assert response.status_code == 200

        response = await client.get("/api/contents", params={"page": 2})

        assert response.status_code == 429
        assert "Too many requests" in response.json()["detail"]


class TestGetContent:
    """Tests for GET /api/contents/{id}."""

    async def test_returns_stored_item(self, client: AsyncClient, store, content_item_factory):
        """Should return a stored record by id."""
        content_id = await store.persist(content_item_factory(title="Lookup me"))

        response = await client.get(f"/api/contents/{content_id}")

        assert response.status_code == 200
        assert response.json()["title"] == "Lookup me"

    async def test_unknown_id(self, client: AsyncClient):
        """Should return 404 for an unknown id."""
        response = await client.get("/api/contents/999")

        assert response.status_code == 404


class TestCreateInteraction:
    """Tests for POST /api/contents/{id}/interactions."""

    async def test_like_increments_counter(
        self, client: AsyncClient, store, content_item_factory
    ):
        """Should return updated counters."""
        content_id = await store.persist(content_item_factory())

        await client.post(f"/api/contents/{content_id}/interactions", json={"action": "like"})
        response = await client.post(
            f"/api/contents/{content_id}/interactions", json={"action": "like"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["likes"] == 2
        assert data["hidden"] is False

    async def test_hide_requires_user(self, client: AsyncClient, store, content_item_factory):
        """Should reject hide without a user id."""
        content_id = await store.persist(content_item_factory())

        response = await client.post(
            f"/api/contents/{content_id}/interactions", json={"action": "hide"}
        )

        assert response.status_code == 422

    async def test_hide_adds_to_hidden_set(
        self, client: AsyncClient, store, content_item_factory
    ):
        """Should record the hide for the user."""
        content_id = await store.persist(content_item_factory())

        response = await client.post(
            f"/api/contents/{content_id}/interactions",
            json={"action": "hide", "user_id": "user-1"},
        )

        assert response.status_code == 200
        assert response.json()["hidden"] is True
        assert await store.get_hidden_item_ids("user-1") == {content_id}

    async def test_unknown_action(self, client: AsyncClient, store, content_item_factory):
        """Should reject actions outside like, share, report and hide."""
        content_id = await store.persist(content_item_factory())

        response = await client.post(
            f"/api/contents/{content_id}/interactions", json={"action": "bookmark"}
        )

        assert response.status_code == 422

    async def test_unknown_content(self, client: AsyncClient):
        """Should return 404 for an unknown id."""
        response = await client.post("/api/contents/999/interactions", json={"action": "like"})

        assert response.status_code == 404
