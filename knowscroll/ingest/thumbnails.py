"""Thumbnail backfill for items that arrive without an image."""

import asyncio
from typing import Protocol

import httpx

from knowscroll.config import AppConfig
from knowscroll.core.logging import get_logger
from knowscroll.core.rate_limit import RateLimiter
from knowscroll.schemas.content import ContentCategory, ContentItem

logger = get_logger(__name__)

PEXELS_API_BASE = "https://api.pexels.com"

# Search terms appended to the title, per category
CATEGORY_TERMS = {
    ContentCategory.ARTICLE: "article",
    ContentCategory.BOOK: "book",
    ContentCategory.TEXTBOOK: "textbook",
    ContentCategory.RESEARCH_PAPER: "research paper",
    ContentCategory.BLOG_POST: "blog",
    ContentCategory.REPOSITORY: "code",
}


class ImageSearch(Protocol):
    """Free-text image lookup."""

    async def search(self, query: str) -> str | None: ...


class NullImageSearch:
    """Image search that never finds anything."""

    async def search(self, query: str) -> str | None:
        return None


class PexelsImageSearch:
    """Client for the Pexels photo search API."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        size: str = "medium",
        limiter: RateLimiter | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.size = size
        self.limiter = limiter

        if not self.api_key:
            logger.warning("pexels_api_key_not_set")

    async def search(self, query: str) -> str | None:
        """
        Find one image for a free-text query.

        Returns:
            URL of the first matching photo, or None if nothing was found
            or the lookup failed
        """
        if not self.api_key:
            return None

        if self.limiter:
            await self.limiter.acquire()

        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    f"{PEXELS_API_BASE}/v1/search",
                    params={"query": query, "per_page": 1},
                    headers={"Authorization": self.api_key},
                    timeout=self.timeout,
                )
                response.raise_for_status()
                photos = response.json().get("photos", [])
            except httpx.HTTPStatusError as e:
                logger.bind(query=query, status=e.response.status_code).warning(
                    "pexels_search_http_error"
                )
                return None
            except Exception as e:
                logger.bind(query=query, error=str(e)).warning("pexels_search_error")
                return None

        if not photos:
            logger.bind(query=query).debug("pexels_no_results")
            return None
        return photos[0].get("src", {}).get(self.size)


def thumbnail_query(item: ContentItem) -> str:
    """Lookup key for an item: its title plus a word for its category."""
    return f"{item.title} {CATEGORY_TERMS.get(item.category, item.category.value)}"


class ThumbnailBackfill:
    """
    Fills in ``thumbnail_url`` from an image search when a provider gave none.

    One instance serves every provider batch, so ``concurrency`` bounds the
    lookups in flight across the whole aggregation.
    """

    def __init__(self, image_search: ImageSearch, concurrency: int = 5) -> None:
        self.image_search = image_search
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)

    async def ensure_thumbnail(self, item: ContentItem) -> ContentItem:
        """Return the item with a thumbnail if one can be found. Never raises."""
        if item.thumbnail_url:
            return item

        query = thumbnail_query(item)
        try:
            url = await self.image_search.search(query)
        except Exception as e:
            logger.bind(provider=item.provider.value, query=query, error=str(e)).warning(
                "thumbnail_lookup_failed"
            )
            return item

        if not url:
            return item
        return item.model_copy(update={"thumbnail_url": url})

    async def ensure_thumbnails(self, items: list[ContentItem]) -> list[ContentItem]:
        """Backfill a batch concurrently, preserving order."""

        async def _bounded(item: ContentItem) -> ContentItem:
            if item.thumbnail_url:
                return item
            async with self._semaphore:
                return await self.ensure_thumbnail(item)

        return list(await asyncio.gather(*(_bounded(item) for item in items)))


def create_thumbnail_backfill(
    config: AppConfig,
    limiter: RateLimiter | None = None,
) -> ThumbnailBackfill:
    """
    Create thumbnail backfill from config, with Pexels when a key is set.

    Pass the transport's limiter so image lookups share the outbound budget.
    """
    api_key = config.settings.pexels_api_key
    image_search: ImageSearch = (
        PexelsImageSearch(
            api_key,
            timeout=config.aggregation.request_timeout_seconds,
            limiter=limiter,
        )
        if api_key
        else NullImageSearch()
    )
    return ThumbnailBackfill(image_search, concurrency=config.aggregation.thumbnail_concurrency)
