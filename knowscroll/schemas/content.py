import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, enum.Enum):
    """Registered content providers."""

    WIKIPEDIA = "wikipedia"
    BLOGS = "blogs"
    BOOKS = "books"
    TEXTBOOKS = "textbooks"
    GITHUB = "github"
    ARXIV = "arxiv"


class ContentCategory(str, enum.Enum):
    """Kind of content, used for ad targeting and access tiers."""

    ARTICLE = "article"
    BOOK = "book"
    TEXTBOOK = "textbook"
    RESEARCH_PAPER = "research_paper"
    BLOG_POST = "blog_post"
    REPOSITORY = "repository"


class ContentItem(BaseModel):
    """Canonical, provider-agnostic feed item.

    Instances are immutable; corrections such as thumbnail backfill produce
    a copy via ``model_copy(update=...)``.
    """

    model_config = ConfigDict(frozen=True)

    source_item_id: str
    provider: Provider
    category: ContentCategory
    title: str
    excerpt: str | None = None
    thumbnail_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    canonical_url: str
    fetched_at: datetime

    @property
    def key(self) -> tuple[str, str]:
        """Natural dedup key."""
        return (self.provider.value, self.source_item_id)


class StoredContent(ContentItem):
    """Content item as persisted by the storage collaborator."""

    id: int
    stored_at: datetime
    likes: int = 0
    shares: int = 0
    reports: int = 0


class InteractionAction(str, enum.Enum):
    """User interactions with a feed item."""

    LIKE = "like"
    SHARE = "share"
    REPORT = "report"
    HIDE = "hide"


class InteractionCreate(BaseModel):
    """Request body for recording an interaction."""

    action: InteractionAction
    user_id: str | None = Field(default=None, max_length=100)


class InteractionResponse(BaseModel):
    """Counters after an interaction was recorded."""

    ok: bool = True
    content_id: int
    likes: int
    shares: int
    reports: int
    hidden: bool = False


class ProviderInfo(BaseModel):
    """Public description of a registered provider."""

    id: str
    category: ContentCategory
    excerpt_required: bool
