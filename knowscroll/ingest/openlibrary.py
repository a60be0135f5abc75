import random

from knowscroll.config import AppConfig
from knowscroll.core.exceptions import ParseError
from knowscroll.core.transport import RateLimitedTransport, TransportRequest, TransportResponse
from knowscroll.ingest.base import BaseFetcher, RawContent, fetcher_options
from knowscroll.schemas.content import ContentCategory, Provider

OPENLIBRARY_BASE = "https://openlibrary.org"
COVERS_BASE = "https://covers.openlibrary.org/b/id"

DEFAULT_SUBJECTS = ["science", "programming", "technology", "fiction"]


def cover_url(cover_id: int | None) -> str | None:
    if not cover_id:
        return None
    return f"{COVERS_BASE}/{cover_id}-L.jpg"


class OpenLibraryFetcher(BaseFetcher):
    """
    Fetcher for books from the Open Library API.

    Discover mode lists works for a random subject; search mode uses the
    search endpoint. The two endpoints return differently shaped payloads
    (``works`` vs ``docs``). Open Library has no blurbs, so the excerpt is
    the author list and the provider is excerpt-exempt by default.
    """

    provider = Provider.BOOKS
    category = ContentCategory.BOOK

    def __init__(
        self,
        transport: RateLimitedTransport,
        page_size: int = 10,
        subjects: list[str] | None = None,
        rng: random.Random | None = None,
        **kwargs,
    ) -> None:
        super().__init__(transport, **kwargs)
        self.page_size = page_size
        self.subjects = subjects or DEFAULT_SUBJECTS
        self.rng = rng or random.Random()

    def build_request(self, search_term: str | None = None) -> TransportRequest:
        if search_term:
            return TransportRequest(
                url=f"{OPENLIBRARY_BASE}/search.json",
                params={
                    "q": search_term,
                    "limit": self.page_size,
                    "fields": "key,title,author_name,cover_i,first_publish_year,subject",
                },
            )

        subject = self.rng.choice(self.subjects)
        return TransportRequest(
            url=f"{OPENLIBRARY_BASE}/subjects/{subject}.json",
            params={"limit": self.page_size},
        )

    def parse(
        self,
        response: TransportResponse,
        search_term: str | None = None,
    ) -> list[RawContent]:
        data = response.json()
        if not isinstance(data, dict):
            raise ParseError("Open Library response is not an object")

        if "works" in data:
            return [self._parse_work(work, data.get("name")) for work in data["works"]]
        if "docs" in data:
            return [self._parse_doc(doc) for doc in data["docs"]]
        raise ParseError("Open Library response has neither works nor docs")

    def _parse_work(self, work: dict, subject: str | None) -> RawContent:
        authors = [a.get("name") for a in work.get("authors") or [] if a.get("name")]
        return self._build(
            key=work.get("key"),
            title=work.get("title"),
            authors=authors,
            cover_id=work.get("cover_id"),
            first_publish_year=work.get("first_publish_year"),
            subjects=work.get("subject") or [],
            subject=subject,
        )

    def _parse_doc(self, doc: dict) -> RawContent:
        return self._build(
            key=doc.get("key"),
            title=doc.get("title"),
            authors=doc.get("author_name") or [],
            cover_id=doc.get("cover_i"),
            first_publish_year=doc.get("first_publish_year"),
            subjects=(doc.get("subject") or [])[:10],
            subject=None,
        )

    def _build(
        self,
        key: str | None,
        title: str | None,
        authors: list[str],
        cover_id: int | None,
        first_publish_year: int | None,
        subjects: list[str],
        subject: str | None,
    ) -> RawContent:
        metadata = {
            "authors": authors,
            "first_publish_year": first_publish_year,
            "subjects": subjects,
        }
        if subject:
            metadata["subject"] = subject

        return RawContent(
            provider=self.provider,
            category=self.category,
            source_item_id=key,
            title=title,
            excerpt=", ".join(authors) or None,
            thumbnail_url=cover_url(cover_id),
            metadata=metadata,
            canonical_url=f"{OPENLIBRARY_BASE}{key}" if key else None,
        )


def create_openlibrary_fetcher(
    config: AppConfig,
    transport: RateLimitedTransport,
) -> OpenLibraryFetcher:
    """Create Open Library fetcher from config."""
    return OpenLibraryFetcher(
        transport,
        page_size=config.providers.page_size,
        subjects=config.providers.book_subjects,
        **fetcher_options(config, Provider.BOOKS),
    )
