"""
Pytest configuration and fixtures for Knowscroll tests.

Provides:
- Stub transport that records outbound requests
- Fast retry config and seeded randomness for deterministic fetchers
- In-memory content store
- Test client for API testing
- Factory fixtures for creating test data
"""

import json
import random
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from knowscroll.config import AppConfig, get_config
from knowscroll.core.datetime_utils import utc_now
from knowscroll.core.limits import limiter
from knowscroll.core.retry import RetryConfig
from knowscroll.core.transport import TransportRequest, TransportResponse
from knowscroll.ingest.base import RawContent
from knowscroll.ingest.orchestrator import ContentAggregator, get_aggregator
from knowscroll.ingest.thumbnails import NullImageSearch, ThumbnailBackfill
from knowscroll.ingest.wikipedia import WikipediaFetcher
from knowscroll.main import app
from knowscroll.schemas.content import ContentCategory, ContentItem, Provider
from knowscroll.services.content_store import MemoryContentStore, get_content_store

LONG_EXCERPT = (
    "A sufficiently long excerpt that comfortably clears the fifty character floor."
)


class StubTransport:
    """
    Transport double that records every request.

    ``handler`` maps a request to a response, or to an exception instance
    which is raised instead.
    """

    def __init__(self, handler: Callable[[TransportRequest], Any] | None = None) -> None:
        self.handler = handler
        self.requests: list[TransportRequest] = []

    async def send(self, request: TransportRequest) -> TransportResponse:
        self.requests.append(request)
        if self.handler is None:
            raise AssertionError(f"Unexpected request to {request.url}")
        result = self.handler(request)
        if isinstance(result, BaseException):
            raise result
        return result


def json_response(data: Any, url: str = "https://example.com") -> TransportResponse:
    """Build a 200 response carrying a JSON body."""
    return TransportResponse(
        status=200,
        text=json.dumps(data),
        url=url,
        content_type="application/json",
    )


def wikipedia_pages(count: int, short_excerpts: int = 0) -> dict:
    """A MediaWiki query payload with ``count`` pages, the first few with short extracts."""
    pages = {}
    for i in range(count):
        page_id = 1000 + i
        pages[str(page_id)] = {
            "pageid": page_id,
            "ns": 0,
            "title": f"Article number {i}",
            "index": i,
            "extract": "Too short." if i < short_excerpts else f"{LONG_EXCERPT} ({i})",
            "thumbnail": {"source": f"https://upload.wikimedia.org/{page_id}.jpg"},
        }
    return {"batchcomplete": "", "query": {"pages": pages}}


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry config that never sleeps."""
    return RetryConfig(max_retries=3, delay_seconds=0, jitter=False)


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible discover requests and shuffles."""
    return random.Random(42)


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration with all defaults, ignoring any local config.yml."""
    return AppConfig({})


@pytest.fixture
def store() -> MemoryContentStore:
    """Fresh in-memory content store."""
    return MemoryContentStore()


@pytest.fixture
def null_thumbnails() -> ThumbnailBackfill:
    """Thumbnail backfill that never finds an image."""
    return ThumbnailBackfill(NullImageSearch())


@pytest.fixture
def raw_content_factory():
    """Factory for raw provider items that pass validation by default."""

    def _create(**overrides) -> RawContent:
        data = {
            "provider": Provider.WIKIPEDIA,
            "category": ContentCategory.ARTICLE,
            "source_item_id": "12345",
            "title": "Alan Turing",
            "excerpt": LONG_EXCERPT,
            "thumbnail_url": "https://upload.wikimedia.org/turing.jpg",
            "metadata": {"pageid": 12345},
            "canonical_url": "https://en.wikipedia.org/wiki/Alan_Turing",
        }
        data.update(overrides)
        return RawContent(**data)

    return _create


@pytest.fixture
def content_item_factory():
    """Factory for normalized content items."""
    counter = {"n": 0}

    def _create(**overrides) -> ContentItem:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "source_item_id": f"item-{n}",
            "provider": Provider.WIKIPEDIA,
            "category": ContentCategory.ARTICLE,
            "title": f"Test item {n}",
            "excerpt": LONG_EXCERPT,
            "thumbnail_url": None,
            "metadata": {},
            "canonical_url": f"https://example.com/items/{n}",
            "fetched_at": utc_now(),
        }
        data.update(overrides)
        return ContentItem(**data)

    return _create


@pytest.fixture
def wikipedia_transport() -> StubTransport:
    """Stub transport serving ten valid Wikipedia pages."""
    return StubTransport(lambda request: json_response(wikipedia_pages(10), request.url))


@pytest.fixture
def aggregator(wikipedia_transport, fast_retry, null_thumbnails, rng) -> ContentAggregator:
    """Aggregator over a single stubbed Wikipedia fetcher."""
    fetcher = WikipediaFetcher(wikipedia_transport, retry_config=fast_retry)
    return ContentAggregator([fetcher], null_thumbnails, max_result_items=50, rng=rng)


@pytest_asyncio.fixture
async def client(
    aggregator: ContentAggregator,
    store: MemoryContentStore,
    app_config: AppConfig,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with aggregator and store overrides."""
    app.dependency_overrides[get_aggregator] = lambda: aggregator
    app.dependency_overrides[get_content_store] = lambda: store
    app.dependency_overrides[get_config] = lambda: app_config

    # Reset rate limiter storage before each test
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def transport_factory():
    """Factory for stub transports: ``transport_factory(handler)``."""
    return StubTransport


@pytest.fixture
def json_response_factory():
    """Factory for JSON responses: ``json_response_factory(data, url)``."""
    return json_response


@pytest.fixture
def wikipedia_payload():
    """Factory for MediaWiki payloads: ``wikipedia_payload(count, short_excerpts)``."""
    return wikipedia_pages
