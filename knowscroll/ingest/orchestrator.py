import asyncio
import random
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import TypeVar

from knowscroll.config import AppConfig, get_config
from knowscroll.core.exceptions import UnknownProviderError
from knowscroll.core.logging import get_logger
from knowscroll.core.rate_limit import RateLimiter
from knowscroll.core.transport import RateLimitedTransport
from knowscroll.ingest.arxiv import create_arxiv_fetcher
from knowscroll.ingest.base import BaseFetcher
from knowscroll.ingest.devto import create_devto_fetcher
from knowscroll.ingest.github import create_github_fetcher
from knowscroll.ingest.openlibrary import create_openlibrary_fetcher
from knowscroll.ingest.openstax import create_openstax_fetcher
from knowscroll.ingest.thumbnails import ThumbnailBackfill, create_thumbnail_backfill
from knowscroll.ingest.wikipedia import create_wikipedia_fetcher
from knowscroll.schemas.content import ContentItem

logger = get_logger(__name__)

T = TypeVar("T")

# Map provider names to their factory functions, in feed order
FETCHER_FACTORIES: dict[str, Callable[[AppConfig, RateLimitedTransport], BaseFetcher]] = {
    "wikipedia": create_wikipedia_fetcher,
    "blogs": create_devto_fetcher,
    "books": create_openlibrary_fetcher,
    "textbooks": create_openstax_fetcher,
    "github": create_github_fetcher,
    "arxiv": create_arxiv_fetcher,
}


def interleave(lists: Sequence[Sequence[T]]) -> list[T]:
    """
    Round-robin merge by position.

    Takes index 0 from every list, then index 1, and so on, skipping lists
    that are exhausted: [[a0, a1, a2], [b0], [c0, c1]] ->
    [a0, b0, c0, a1, c1, a2].
    """
    merged: list[T] = []
    longest = max((len(items) for items in lists), default=0)
    for index in range(longest):
        for items in lists:
            if index < len(items):
                merged.append(items[index])
    return merged


def create_transport(config: AppConfig) -> RateLimitedTransport:
    """Create the process-wide rate-limited transport from config."""
    rate_limit = config.aggregation.provider_rate_limit
    limiter = RateLimiter(rate_limit.max_requests, rate_limit.per_seconds)
    return RateLimitedTransport(
        limiter,
        timeout_seconds=config.aggregation.request_timeout_seconds,
        user_agent=config.settings.user_agent,
    )


def create_all_fetchers(config: AppConfig, transport: RateLimitedTransport) -> list[BaseFetcher]:
    """Create all enabled fetchers sharing one transport."""
    return [
        factory(config, transport)
        for name, factory in FETCHER_FACTORIES.items()
        if name in config.providers.enabled
    ]


class ContentAggregator:
    """
    Fans out to provider fetchers and merges their results into one feed.

    Holds no item state between calls; the only shared resource is the
    transport's rate limiter, owned by the fetchers.
    """

    def __init__(
        self,
        fetchers: Sequence[BaseFetcher],
        thumbnails: ThumbnailBackfill,
        max_result_items: int = 50,
        rng: random.Random | None = None,
    ) -> None:
        self.fetchers = {fetcher.source_name: fetcher for fetcher in fetchers}
        self.thumbnails = thumbnails
        self.max_result_items = max_result_items
        self.rng = rng or random.Random()

    @property
    def provider_names(self) -> list[str]:
        return list(self.fetchers)

    def get_fetcher(self, source: str) -> BaseFetcher:
        try:
            return self.fetchers[source]
        except KeyError:
            raise UnknownProviderError(source) from None

    async def _run_provider(
        self,
        fetcher: BaseFetcher,
        search_term: str | None,
    ) -> list[ContentItem]:
        items = await fetcher.fetch(search_term)
        return await self.thumbnails.ensure_thumbnails(items)

    async def aggregate(
        self,
        source_filter: str | None = None,
        search_term: str | None = None,
    ) -> list[ContentItem]:
        """
        Fetch a fresh batch of content.

        Args:
            source_filter: Provider name to query alone; None queries all
            search_term: Optional search passed to every queried provider

        Returns:
            At most ``max_result_items`` validated items. With a filter the
            provider's own order is kept; otherwise providers are
            interleaved and then shuffled.
        """
        log = logger.bind(source=source_filter, search=search_term)

        if source_filter:
            try:
                fetcher = self.get_fetcher(source_filter)
            except UnknownProviderError:
                log.warning("unknown_provider")
                return []
            items = await self._run_provider(fetcher, search_term)
            log.bind(count=len(items)).info("aggregate_completed")
            return items[: self.max_result_items]

        fetchers = list(self.fetchers.values())
        results = await asyncio.gather(
            *(self._run_provider(fetcher, search_term) for fetcher in fetchers),
            return_exceptions=True,
        )

        per_provider: list[list[ContentItem]] = []
        failures = 0
        for fetcher, result in zip(fetchers, results, strict=True):
            if isinstance(result, BaseException):
                failures += 1
                log.bind(provider=fetcher.source_name, error=repr(result)).error(
                    "provider_failed"
                )
                continue
            per_provider.append(result)

        merged = interleave(per_provider)
        self.rng.shuffle(merged)
        bounded = merged[: self.max_result_items]

        log.bind(
            providers=len(fetchers),
            failures=failures,
            merged=len(merged),
            count=len(bounded),
        ).info("aggregate_completed")
        return bounded


def create_aggregator(config: AppConfig | None = None) -> ContentAggregator:
    """Wire limiter, transport, fetchers and thumbnail backfill from config."""
    config = config or get_config()
    transport = create_transport(config)
    return ContentAggregator(
        create_all_fetchers(config, transport),
        create_thumbnail_backfill(config, transport.limiter),
        max_result_items=config.aggregation.max_result_items,
    )


@lru_cache
def get_aggregator() -> ContentAggregator:
    """Get cached aggregator instance, built on first use."""
    return create_aggregator()


async def aggregate_content(
    source_filter: str | None = None,
    search_term: str | None = None,
) -> list[ContentItem]:
    """Entry point for callers: one fresh, bounded aggregation."""
    return await get_aggregator().aggregate(source_filter, search_term)
