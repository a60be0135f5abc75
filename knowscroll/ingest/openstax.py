import random

from knowscroll.config import AppConfig
from knowscroll.core.exceptions import ParseError
from knowscroll.core.logging import get_logger
from knowscroll.core.transport import RateLimitedTransport, TransportRequest, TransportResponse
from knowscroll.ingest.base import BaseFetcher, RawContent, fetcher_options
from knowscroll.ingest.normalizer import clean_html
from knowscroll.schemas.content import ContentCategory, Provider

logger = get_logger(__name__)

OPENSTAX_SUBJECTS_URL = "https://openstax.org/api/v2/subjects"
OPENSTAX_PAGES_URL = "https://openstax.org/apps/cms/api/v2/pages/"
OPENSTAX_DETAILS_URL = "https://openstax.org/details"


class OpenStaxFetcher(BaseFetcher):
    """
    Fetcher for open textbooks from OpenStax.

    Discover mode lists subjects and picks a random one that has books.
    Search mode queries the CMS pages API restricted to book pages.
    """

    provider = Provider.TEXTBOOKS
    category = ContentCategory.TEXTBOOK

    def __init__(
        self,
        transport: RateLimitedTransport,
        page_size: int = 10,
        rng: random.Random | None = None,
        **kwargs,
    ) -> None:
        super().__init__(transport, **kwargs)
        self.page_size = page_size
        self.rng = rng or random.Random()

    def build_request(self, search_term: str | None = None) -> TransportRequest:
        if search_term:
            return TransportRequest(
                url=OPENSTAX_PAGES_URL,
                params={
                    "type": "books.Book",
                    "search": search_term,
                    "fields": "title,description,cover_url,book_subjects,edition,language",
                    "limit": self.page_size,
                },
            )
        return TransportRequest(url=OPENSTAX_SUBJECTS_URL)

    def parse(
        self,
        response: TransportResponse,
        search_term: str | None = None,
    ) -> list[RawContent]:
        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise ParseError("OpenStax response has no items list")

        if search_term:
            return [self._parse_page(page) for page in data["items"][: self.page_size]]

        subjects = [s for s in data["items"] if s.get("books")]
        if not subjects:
            logger.warning("openstax_no_subjects_with_books")
            return []

        subject = self.rng.choice(subjects)
        subject_name = subject.get("name", "")
        return [
            self._parse_book(book, subject_name) for book in subject["books"][: self.page_size]
        ]

    def _parse_book(self, book: dict, subject_name: str) -> RawContent:
        description = clean_html(book.get("description") or "") or "Open textbook"
        slug = book.get("slug")
        book_id = book.get("id")
        return RawContent(
            provider=self.provider,
            category=self.category,
            source_item_id=str(book_id) if book_id is not None else None,
            title=book.get("title"),
            excerpt=f"{subject_name} - {description}" if subject_name else description,
            thumbnail_url=book.get("cover_url"),
            metadata={
                "subject": subject_name,
                "edition": book.get("edition"),
                "language": book.get("language"),
            },
            canonical_url=f"{OPENSTAX_DETAILS_URL}/{slug}" if slug else None,
        )

    def _parse_page(self, page: dict) -> RawContent:
        meta = page.get("meta") or {}
        subjects = [
            s.get("subject_name") or s.get("name")
            for s in page.get("book_subjects") or []
            if isinstance(s, dict)
        ]
        subject_name = next((s for s in subjects if s), "")
        book = {
            "id": page.get("id"),
            "title": page.get("title"),
            "description": page.get("description"),
            "cover_url": page.get("cover_url"),
            "slug": meta.get("slug"),
            "edition": page.get("edition"),
            "language": page.get("language") or meta.get("locale"),
        }
        return self._parse_book(book, subject_name)


def create_openstax_fetcher(
    config: AppConfig,
    transport: RateLimitedTransport,
) -> OpenStaxFetcher:
    """Create OpenStax fetcher from config."""
    return OpenStaxFetcher(
        transport,
        page_size=config.providers.page_size,
        **fetcher_options(config, Provider.TEXTBOOKS),
    )
