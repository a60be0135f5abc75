from dataclasses import dataclass, field

import feedparser

from knowscroll.config import AppConfig
from knowscroll.core.exceptions import ParseError
from knowscroll.core.transport import RateLimitedTransport, TransportRequest, TransportResponse
from knowscroll.ingest.base import BaseFetcher, RawContent, fetcher_options
from knowscroll.ingest.normalizer import collapse_whitespace
from knowscroll.schemas.content import ContentCategory, Provider

ARXIV_API_URL = "https://export.arxiv.org/api/query"

SUMMARY_MAX_CHARS = 300


@dataclass
class AtomEntry:
    """One ``entry`` of an Atom feed, reduced to the fields we keep."""

    id: str
    title: str
    summary: str
    authors: list[str] = field(default_factory=list)
    link: str | None = None
    pdf_link: str | None = None
    published: str | None = None
    categories: list[str] = field(default_factory=list)


def parse_atom_feed(text: str) -> list[AtomEntry]:
    """
    Parse an Atom document into entries.

    Titles and summaries are whitespace-collapsed and summaries truncated to
    300 characters. Entries may have any number of authors.

    Raises:
        ParseError: the document is not a parseable feed
    """
    feed = feedparser.parse(text)
    if feed.bozo and not feed.entries:
        raise ParseError(f"Malformed Atom feed: {feed.get('bozo_exception')}")

    entries = []
    for entry in feed.entries:
        link = entry.get("link")
        pdf_link = None
        for candidate in entry.get("links", []):
            if candidate.get("type") == "application/pdf" or candidate.get("title") == "pdf":
                pdf_link = candidate.get("href")
            elif candidate.get("rel") == "alternate" and not link:
                link = candidate.get("href")

        entries.append(
            AtomEntry(
                id=entry.get("id", ""),
                title=collapse_whitespace(entry.get("title")),
                summary=collapse_whitespace(entry.get("summary"))[:SUMMARY_MAX_CHARS],
                authors=[a["name"] for a in entry.get("authors", []) if a.get("name")],
                link=link,
                pdf_link=pdf_link,
                published=entry.get("published"),
                categories=[t["term"] for t in entry.get("tags", []) if t.get("term")],
            )
        )
    return entries


def arxiv_short_id(entry_id: str) -> str:
    """http://arxiv.org/abs/2401.01234v1 -> 2401.01234v1"""
    return entry_id.rsplit("/abs/", 1)[-1]


class ArxivFetcher(BaseFetcher):
    """
    Fetcher for preprints from the arXiv API (Atom responses).

    arXiv has no thumbnails; items leave ``thumbnail_url`` unset and rely on
    backfill.
    """

    provider = Provider.ARXIV
    category = ContentCategory.RESEARCH_PAPER

    def __init__(
        self,
        transport: RateLimitedTransport,
        page_size: int = 10,
        categories: list[str] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(transport, **kwargs)
        self.page_size = page_size
        self.categories = categories or ["cs.AI", "cs.LG"]

    def build_request(self, search_term: str | None = None) -> TransportRequest:
        if search_term:
            phrase = search_term.replace('"', "")
            params: dict[str, str | int] = {
                "search_query": f'all:"{phrase}"',
                "sortBy": "relevance",
                "sortOrder": "descending",
            }
        else:
            params = {
                "search_query": " OR ".join(f"cat:{c}" for c in self.categories),
                "sortBy": "lastUpdatedDate",
                "sortOrder": "descending",
            }
        params.update({"start": 0, "max_results": self.page_size})
        return TransportRequest(url=ARXIV_API_URL, params=params)

    def parse(
        self,
        response: TransportResponse,
        search_term: str | None = None,
    ) -> list[RawContent]:
        entries = parse_atom_feed(response.text)

        # arXiv reports bad queries as a feed with a single error entry
        if len(entries) == 1 and "/api/errors" in entries[0].id:
            raise ParseError(f"arXiv API error: {entries[0].summary}")

        return [self._to_raw(entry) for entry in entries]

    def _to_raw(self, entry: AtomEntry) -> RawContent:
        return RawContent(
            provider=self.provider,
            category=self.category,
            source_item_id=arxiv_short_id(entry.id) if entry.id else None,
            title=entry.title,
            excerpt=entry.summary,
            thumbnail_url=None,
            metadata={
                "authors": entry.authors,
                "categories": entry.categories,
                "published": entry.published,
                "pdf_url": entry.pdf_link,
            },
            canonical_url=entry.link or entry.id or None,
        )


def create_arxiv_fetcher(config: AppConfig, transport: RateLimitedTransport) -> ArxivFetcher:
    """Create arXiv fetcher from config."""
    return ArxivFetcher(
        transport,
        page_size=config.providers.page_size,
        categories=config.providers.arxiv_categories,
        **fetcher_options(config, Provider.ARXIV),
    )
