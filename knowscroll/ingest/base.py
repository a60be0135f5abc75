from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from knowscroll.config import AppConfig
from knowscroll.core.exceptions import ParseError, TransportError
from knowscroll.core.logging import get_logger
from knowscroll.core.retry import RetryConfig, with_retry
from knowscroll.core.transport import RateLimitedTransport, TransportRequest, TransportResponse
from knowscroll.ingest.normalizer import normalize, rejection_reason
from knowscroll.schemas.content import ContentCategory, ContentItem, Provider

logger = get_logger(__name__)


class RawContent(BaseModel):
    """Item as extracted from a provider payload, before validation."""

    provider: Provider
    category: ContentCategory
    source_item_id: str | None = None
    title: str | None = None
    excerpt: str | None = None
    thumbnail_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    canonical_url: str | None = None


class BaseFetcher(ABC):
    """
    Abstract base class for provider fetchers.

    Subclasses describe how to build the discover-mode and search-mode
    requests and how to parse the provider's payload. ``fetch`` owns the
    shared flow: retry, parse, normalize, and collapsing every failure into
    an empty result.
    """

    provider: Provider
    category: ContentCategory
    excerpt_required: bool = True

    def __init__(
        self,
        transport: RateLimitedTransport,
        retry_config: RetryConfig | None = None,
        min_excerpt_length: int = 50,
        excerpt_required: bool | None = None,
    ) -> None:
        self.transport = transport
        self.retry_config = retry_config or RetryConfig()
        self.min_excerpt_length = min_excerpt_length
        if excerpt_required is not None:
            self.excerpt_required = excerpt_required

    @property
    def source_name(self) -> str:
        return self.provider.value

    @abstractmethod
    def build_request(self, search_term: str | None = None) -> TransportRequest | None:
        """
        Build the discover request, or the search request when a term is given.

        Returns None when the provider cannot express the search; ``fetch``
        then yields nothing rather than falling back to discover mode.
        """

    @abstractmethod
    def parse(
        self,
        response: TransportResponse,
        search_term: str | None = None,
    ) -> list[RawContent]:
        """
        Extract raw items from a provider response.

        Raises:
            ParseError: the payload does not have the expected shape
        """

    async def fetch(self, search_term: str | None = None) -> list[ContentItem]:
        """Fetch, parse and normalize items. Never raises."""
        search_term = (search_term or "").strip() or None
        log = logger.bind(provider=self.source_name, search=search_term)

        try:
            request = self.build_request(search_term)
            if request is None:
                log.info("provider_search_unsupported")
                return []
            response = await with_retry(
                lambda: self.transport.send(request),
                config=self.retry_config,
                operation_name=f"fetch:{self.source_name}",
            )
            raw_items = self.parse(response, search_term)
        except TransportError as e:
            log.bind(error=str(e)).error("provider_fetch_failed")
            return []
        except ParseError as e:
            log.bind(error=str(e)).error("provider_parse_failed")
            return []
        except Exception as e:
            log.bind(error=repr(e)).exception("provider_unexpected_error")
            return []

        items: list[ContentItem] = []
        rejected: dict[str, int] = {}
        for raw in raw_items:
            reason = rejection_reason(raw, self.min_excerpt_length, self.excerpt_required)
            if reason:
                rejected[reason] = rejected.get(reason, 0) + 1
                continue
            item = normalize(raw, self.min_excerpt_length, self.excerpt_required)
            if item:
                items.append(item)

        if rejected:
            log.bind(rejected=sum(rejected.values()), reasons=rejected).info(
                "provider_items_rejected"
            )
        log.bind(count=len(items)).info("provider_fetch_success")
        return items


def fetcher_options(config: AppConfig, provider: Provider) -> dict[str, Any]:
    """Shared constructor arguments for a provider fetcher, from config."""
    aggregation = config.aggregation
    return {
        "retry_config": RetryConfig(
            max_retries=aggregation.max_retries,
            delay_seconds=aggregation.retry_delay_seconds,
        ),
        "min_excerpt_length": aggregation.min_excerpt_length,
        "excerpt_required": provider.value not in aggregation.excerpt_exempt_providers,
    }
