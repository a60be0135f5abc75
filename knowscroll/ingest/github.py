import random

from knowscroll.config import AppConfig
from knowscroll.core.exceptions import ParseError
from knowscroll.core.transport import RateLimitedTransport, TransportRequest, TransportResponse
from knowscroll.ingest.base import BaseFetcher, RawContent, fetcher_options
from knowscroll.schemas.content import ContentCategory, Provider

GITHUB_SEARCH_URL = "https://api.github.com/search/repositories"

DEFAULT_TOPICS = ["machine-learning", "web-development", "data-science", "mobile-apps"]


class GitHubFetcher(BaseFetcher):
    """
    Fetcher for popular repositories via the GitHub search API.

    Discover mode searches a random configured topic among well-starred
    repositories; search mode runs the term as a repository query. A token,
    when configured, raises the unauthenticated rate limit.
    """

    provider = Provider.GITHUB
    category = ContentCategory.REPOSITORY

    def __init__(
        self,
        transport: RateLimitedTransport,
        token: str = "",
        page_size: int = 10,
        topics: list[str] | None = None,
        rng: random.Random | None = None,
        **kwargs,
    ) -> None:
        super().__init__(transport, **kwargs)
        self.token = token
        self.page_size = page_size
        self.topics = topics or DEFAULT_TOPICS
        self.rng = rng or random.Random()

    def build_request(self, search_term: str | None = None) -> TransportRequest:
        if search_term:
            query = f"{search_term} stars:>100"
        else:
            query = f"topic:{self.rng.choice(self.topics)} stars:>1000"

        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"

        return TransportRequest(
            url=GITHUB_SEARCH_URL,
            params={
                "q": query,
                "sort": "stars",
                "order": "desc",
                "per_page": self.page_size,
            },
            headers=headers,
        )

    def parse(
        self,
        response: TransportResponse,
        search_term: str | None = None,
    ) -> list[RawContent]:
        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise ParseError("GitHub search response has no items list")
        return [self._parse_repo(repo) for repo in data["items"]]

    def _parse_repo(self, repo: dict) -> RawContent:
        owner = repo.get("owner") or {}
        repo_id = repo.get("id")
        return RawContent(
            provider=self.provider,
            category=self.category,
            source_item_id=str(repo_id) if repo_id is not None else None,
            title=repo.get("full_name"),
            excerpt=repo.get("description"),
            thumbnail_url=owner.get("avatar_url"),
            metadata={
                "stars": repo.get("stargazers_count", 0),
                "forks": repo.get("forks_count", 0),
                "language": repo.get("language"),
                "topics": repo.get("topics") or [],
            },
            canonical_url=repo.get("html_url"),
        )


def create_github_fetcher(config: AppConfig, transport: RateLimitedTransport) -> GitHubFetcher:
    """Create GitHub fetcher from config."""
    return GitHubFetcher(
        transport,
        token=config.settings.github_token,
        page_size=config.providers.page_size,
        topics=config.providers.github_topics,
        **fetcher_options(config, Provider.GITHUB),
    )
