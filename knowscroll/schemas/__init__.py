from knowscroll.schemas.content import (
    ContentCategory,
    ContentItem,
    InteractionAction,
    InteractionCreate,
    InteractionResponse,
    Provider,
    ProviderInfo,
    StoredContent,
)

__all__ = [
    "ContentCategory",
    "ContentItem",
    "InteractionAction",
    "InteractionCreate",
    "InteractionResponse",
    "Provider",
    "ProviderInfo",
    "StoredContent",
]
