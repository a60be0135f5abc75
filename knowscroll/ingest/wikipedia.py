from urllib.parse import quote

from knowscroll.config import AppConfig
from knowscroll.core.exceptions import ParseError
from knowscroll.core.logging import get_logger
from knowscroll.core.transport import RateLimitedTransport, TransportRequest, TransportResponse
from knowscroll.ingest.base import BaseFetcher, RawContent, fetcher_options
from knowscroll.schemas.content import ContentCategory, Provider

logger = get_logger(__name__)

WIKIPEDIA_API_URL = "https://en.wikipedia.org/w/api.php"
WIKIPEDIA_PAGE_URL = "https://en.wikipedia.org/wiki/"

# exchars is capped at 20 pages per request by the extracts module
MAX_EXTRACT_PAGES = 20


class WikipediaFetcher(BaseFetcher):
    """
    Fetcher for Wikipedia articles using the MediaWiki action API.

    Discover mode pulls random main-namespace pages; search mode uses the
    full-text search generator. Both request plain-text intro extracts and
    lead images in the same call.
    """

    provider = Provider.WIKIPEDIA
    category = ContentCategory.ARTICLE

    def __init__(self, transport: RateLimitedTransport, page_size: int = 10, **kwargs) -> None:
        super().__init__(transport, **kwargs)
        self.page_size = min(page_size, MAX_EXTRACT_PAGES)

    def build_request(self, search_term: str | None = None) -> TransportRequest:
        params: dict[str, str | int] = {
            "action": "query",
            "format": "json",
            "prop": "extracts|pageimages",
            "exchars": 300,
            "exlimit": self.page_size,
            "exintro": 1,
            "explaintext": 1,
            "piprop": "thumbnail",
            "pithumbsize": 500,
            "origin": "*",
        }
        if search_term:
            params.update(
                {
                    "generator": "search",
                    "gsrsearch": search_term,
                    "gsrnamespace": 0,
                    "gsrlimit": self.page_size,
                }
            )
        else:
            params.update(
                {
                    "generator": "random",
                    "grnnamespace": 0,
                    "grnlimit": self.page_size,
                }
            )
        return TransportRequest(url=WIKIPEDIA_API_URL, params=params)

    def parse(
        self,
        response: TransportResponse,
        search_term: str | None = None,
    ) -> list[RawContent]:
        data = response.json()
        if not isinstance(data, dict):
            raise ParseError("Wikipedia response is not an object")
        if "error" in data:
            raise ParseError(f"Wikipedia API error: {data['error'].get('info', data['error'])}")

        # A search with no hits omits the query block entirely
        if "query" not in data:
            logger.bind(search=search_term).info("wikipedia_no_results")
            return []

        pages = data["query"].get("pages", {})
        if isinstance(pages, dict):
            pages = list(pages.values())
        if not isinstance(pages, list):
            raise ParseError("Wikipedia pages block has unexpected shape")

        # Search results carry their rank in "index"; keep provider order
        pages.sort(key=lambda page: page.get("index", 0))

        return [self._parse_page(page) for page in pages if not page.get("missing")]

    def _parse_page(self, page: dict) -> RawContent:
        title = page.get("title", "")
        page_id = page.get("pageid")
        return RawContent(
            provider=self.provider,
            category=self.category,
            source_item_id=str(page_id) if page_id is not None else None,
            title=title,
            excerpt=page.get("extract"),
            thumbnail_url=page.get("thumbnail", {}).get("source"),
            metadata={"pageid": page_id},
            canonical_url=f"{WIKIPEDIA_PAGE_URL}{quote(title.replace(' ', '_'))}" if title else None,
        )


def create_wikipedia_fetcher(
    config: AppConfig,
    transport: RateLimitedTransport,
) -> WikipediaFetcher:
    """Create Wikipedia fetcher from config."""
    return WikipediaFetcher(
        transport,
        page_size=config.providers.page_size,
        **fetcher_options(config, Provider.WIKIPEDIA),
    )
