import re

from knowscroll.config import AppConfig
from knowscroll.core.exceptions import ParseError
from knowscroll.core.logging import get_logger
from knowscroll.core.transport import RateLimitedTransport, TransportRequest, TransportResponse
from knowscroll.ingest.base import BaseFetcher, RawContent, fetcher_options
from knowscroll.ingest.normalizer import clean_html
from knowscroll.schemas.content import ContentCategory, Provider

logger = get_logger(__name__)

# Pattern to match weekly/monthly article compilation posts
# Matches: "Top 7 articles of the week", "Top 10 DEV posts this month", etc.
# Does NOT match: "Top 7 tools", "Top 10 libraries", etc.
COMPILATION_PATTERN = re.compile(
    r"top\s+\d+\s+(\w+\s+)?(articles?|posts?|stories?|reads?)\s+(of\s+the|this|last)\s+(week|month|day)",
    re.IGNORECASE,
)


def tag_for_search(search_term: str) -> str:
    """dev.to tags are lowercase alphanumerics: "Neural Networks" -> "neuralnetworks"."""
    return re.sub(r"[^a-z0-9]", "", search_term.lower())


class DevToFetcher(BaseFetcher):
    """
    Fetcher for dev.to articles using their public API.

    The API has no full-text search, so search mode filters by the tag
    derived from the search term.

    API docs: https://developers.forem.com/api/v1
    """

    provider = Provider.BLOGS
    category = ContentCategory.BLOG_POST
    base_url = "https://dev.to/api/articles"

    def __init__(self, transport: RateLimitedTransport, page_size: int = 10, **kwargs) -> None:
        super().__init__(transport, **kwargs)
        self.page_size = page_size

    def build_request(self, search_term: str | None = None) -> TransportRequest | None:
        params: dict[str, str | int] = {"per_page": self.page_size}
        if search_term:
            tag = tag_for_search(search_term)
            # No tag can be derived from e.g. "+++" or non-Latin scripts
            if not tag:
                return None
            params["tag"] = tag
        else:
            params["top"] = 1
        return TransportRequest(
            url=self.base_url,
            params=params,
            headers={"Accept": "application/json"},
        )

    def parse(
        self,
        response: TransportResponse,
        search_term: str | None = None,
    ) -> list[RawContent]:
        articles = response.json()
        if not isinstance(articles, list):
            raise ParseError("dev.to response is not a list of articles")

        items = []
        for article in articles:
            title = article.get("title") or ""
            # Skip weekly/monthly article compilations
            if COMPILATION_PATTERN.search(title):
                logger.bind(title=title).debug("devto_skip_compilation")
                continue
            items.append(self._parse_article(article))
        return items

    def _parse_article(self, article: dict) -> RawContent:
        user = article.get("user") or {}
        tags = article.get("tag_list") or article.get("tags") or []
        if isinstance(tags, str):
            tags = [tag.strip() for tag in tags.split(",") if tag.strip()]

        article_id = article.get("id")
        return RawContent(
            provider=self.provider,
            category=self.category,
            source_item_id=str(article_id) if article_id is not None else None,
            title=article.get("title"),
            excerpt=clean_html(article.get("description") or ""),
            thumbnail_url=article.get("cover_image") or article.get("social_image"),
            metadata={
                "author": user.get("name") or user.get("username"),
                "tags": tags,
                "reactions": article.get("positive_reactions_count", 0),
                "comments": article.get("comments_count", 0),
                "reading_time_minutes": article.get("reading_time_minutes", 0),
                "published_at": article.get("published_at"),
            },
            canonical_url=article.get("url"),
        )


def create_devto_fetcher(config: AppConfig, transport: RateLimitedTransport) -> DevToFetcher:
    """Create dev.to fetcher from config."""
    return DevToFetcher(
        transport,
        page_size=config.providers.page_size,
        **fetcher_options(config, Provider.BLOGS),
    )
