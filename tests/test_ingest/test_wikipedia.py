"""Tests for the Wikipedia fetcher."""

import pytest

from knowscroll.core.exceptions import RateLimitedError, TransportTimeoutError
from knowscroll.ingest.wikipedia import WikipediaFetcher
from knowscroll.schemas.content import Provider

pytestmark = pytest.mark.asyncio


class TestWikipediaRequests:
    """Tests for discover and search request variants."""

    async def test_discover_uses_random_generator(self, transport_factory):
        """Should request random main-namespace pages without a search term."""
        fetcher = WikipediaFetcher(transport_factory(), page_size=10)

        request = fetcher.build_request()

        assert request.params["generator"] == "random"
        assert request.params["grnnamespace"] == 0
        assert request.params["grnlimit"] == 10
        assert "gsrsearch" not in request.params

    async def test_search_uses_search_generator(self, transport_factory):
        """Should run a full-text search when a term is given."""
        fetcher = WikipediaFetcher(transport_factory(), page_size=10)

        request = fetcher.build_request("neural networks")

        assert request.params["generator"] == "search"
        assert request.params["gsrsearch"] == "neural networks"
        assert request.params["prop"] == "extracts|pageimages"

    async def test_page_size_capped(self, transport_factory):
        """Should never ask for more extracts than the API serves per call."""
        fetcher = WikipediaFetcher(transport_factory(), page_size=100)

        assert fetcher.build_request().params["exlimit"] == 20


class TestWikipediaFetch:
    """Tests for WikipediaFetcher.fetch."""

    async def test_filters_short_extracts(
        self, transport_factory, json_response_factory, wikipedia_payload, fast_retry
    ):
        """Should drop the two pages under the excerpt floor and keep the other 13."""
        transport = transport_factory(
            lambda request: json_response_factory(wikipedia_payload(15, short_excerpts=2))
        )
        fetcher = WikipediaFetcher(transport, page_size=15, retry_config=fast_retry)

        items = await fetcher.fetch()

        assert len(items) == 13
        assert all(item.provider == Provider.WIKIPEDIA for item in items)

    async def test_maps_page_fields(
        self, transport_factory, json_response_factory, wikipedia_payload, fast_retry
    ):
        """Should build canonical URLs from titles and keep lead images."""
        transport = transport_factory(lambda request: json_response_factory(wikipedia_payload(1)))
        fetcher = WikipediaFetcher(transport, retry_config=fast_retry)

        items = await fetcher.fetch()

        assert items[0].source_item_id == "1000"
        assert items[0].title == "Article number 0"
        assert items[0].canonical_url == "https://en.wikipedia.org/wiki/Article_number_0"
        assert items[0].thumbnail_url == "https://upload.wikimedia.org/1000.jpg"
        assert items[0].metadata == {"pageid": 1000}

    async def test_search_keeps_rank_order(
        self, transport_factory, json_response_factory, fast_retry
    ):
        """Should order search results by their index, not page id."""
        excerpt = "An extract long enough to pass the floor for this particular test case."
        payload = {
            "query": {
                "pages": {
                    "1": {"pageid": 1, "title": "Second hit", "index": 2, "extract": excerpt},
                    "2": {"pageid": 2, "title": "First hit", "index": 1, "extract": excerpt},
                }
            }
        }
        transport = transport_factory(lambda request: json_response_factory(payload))
        fetcher = WikipediaFetcher(transport, retry_config=fast_retry)

        items = await fetcher.fetch("hits")

        assert [item.title for item in items] == ["First hit", "Second hit"]

    async def test_no_results_is_empty(
        self, transport_factory, json_response_factory, fast_retry
    ):
        """Should return nothing when a search has no query block."""
        transport = transport_factory(lambda request: json_response_factory({"batchcomplete": ""}))
        fetcher = WikipediaFetcher(transport, retry_config=fast_retry)

        assert await fetcher.fetch("zzzzqqq") == []

    async def test_api_error_is_empty(
        self, transport_factory, json_response_factory, fast_retry
    ):
        """Should swallow API error payloads into an empty result."""
        transport = transport_factory(
            lambda request: json_response_factory({"error": {"info": "bad param"}})
        )
        fetcher = WikipediaFetcher(transport, retry_config=fast_retry)

        assert await fetcher.fetch() == []

    async def test_timeout_is_empty(self, transport_factory, fast_retry):
        """Should return nothing when the transport times out."""
        transport = transport_factory(lambda request: TransportTimeoutError("timed out"))
        fetcher = WikipediaFetcher(transport, retry_config=fast_retry)

        assert await fetcher.fetch() == []
        assert len(transport.requests) == 1

    async def test_retries_rate_limits_then_succeeds(
        self, transport_factory, json_response_factory, wikipedia_payload, fast_retry
    ):
        """Should return items after exactly max_retries 429 responses."""
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            if calls["n"] <= fast_retry.max_retries:
                return RateLimitedError(request.url)
            return json_response_factory(wikipedia_payload(3))

        transport = transport_factory(handler)
        fetcher = WikipediaFetcher(transport, retry_config=fast_retry)

        items = await fetcher.fetch()

        assert len(items) == 3
        assert len(transport.requests) == fast_retry.max_retries + 1

    async def test_rate_limited_every_attempt_is_empty(self, transport_factory, fast_retry):
        """Should give up with an empty result once retries are exhausted."""
        transport = transport_factory(lambda request: RateLimitedError(request.url))
        fetcher = WikipediaFetcher(transport, retry_config=fast_retry)

        assert await fetcher.fetch() == []
        assert len(transport.requests) == fast_retry.max_retries + 1
