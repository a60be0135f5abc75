"""Storage collaborator for aggregated content.

The aggregation pipeline only reads identities and hidden sets from here;
persisting results and serving later pages is the caller's job.
"""

import asyncio
from collections import defaultdict
from functools import lru_cache
from typing import Protocol

from knowscroll.core.datetime_utils import utc_now
from knowscroll.core.logging import get_logger
from knowscroll.schemas.content import ContentItem, InteractionAction, StoredContent

logger = get_logger(__name__)

COUNTER_FIELDS = {
    InteractionAction.LIKE: "likes",
    InteractionAction.SHARE: "shares",
    InteractionAction.REPORT: "reports",
}


class ContentStore(Protocol):
    """Interface the pipeline and its callers use to reach storage."""

    async def find_stored_identity(self, provider: str, source_item_id: str) -> int | None: ...

    async def get_hidden_item_ids(self, user_id: str) -> set[int]: ...

    async def persist(self, item: ContentItem) -> int: ...

    async def get_contents(
        self,
        page: int,
        source: str | None = None,
        page_size: int = 10,
    ) -> list[StoredContent]: ...

    async def get_content(self, content_id: int) -> StoredContent | None: ...

    async def hide_item(self, user_id: str, content_id: int) -> None: ...

    async def record_interaction(
        self,
        content_id: int,
        action: InteractionAction,
    ) -> StoredContent | None: ...


class MemoryContentStore:
    """In-process store keyed by ``(provider, source_item_id)``."""

    def __init__(self) -> None:
        self._contents: dict[int, StoredContent] = {}
        self._identities: dict[tuple[str, str], int] = {}
        self._hidden: dict[str, set[int]] = defaultdict(set)
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def find_stored_identity(self, provider: str, source_item_id: str) -> int | None:
        return self._identities.get((provider, source_item_id))

    async def get_hidden_item_ids(self, user_id: str) -> set[int]:
        return set(self._hidden.get(user_id, set()))

    async def persist(self, item: ContentItem) -> int:
        """Store an item, returning the existing id if it was seen before."""
        async with self._lock:
            existing = self._identities.get(item.key)
            if existing is not None:
                return existing

            content_id = self._next_id
            self._next_id += 1
            self._contents[content_id] = StoredContent(
                **item.model_dump(),
                id=content_id,
                stored_at=utc_now(),
            )
            self._identities[item.key] = content_id

        logger.bind(provider=item.provider.value, content_id=content_id).debug(
            "content_item_created"
        )
        return content_id

    async def get_contents(
        self,
        page: int,
        source: str | None = None,
        page_size: int = 10,
    ) -> list[StoredContent]:
        """One page (1-based) of stored items in insertion order."""
        contents = list(self._contents.values())
        if source:
            contents = [c for c in contents if c.provider.value == source]
        start = (page - 1) * page_size
        return contents[start : start + page_size]

    async def get_content(self, content_id: int) -> StoredContent | None:
        return self._contents.get(content_id)

    async def hide_item(self, user_id: str, content_id: int) -> None:
        self._hidden[user_id].add(content_id)

    async def record_interaction(
        self,
        content_id: int,
        action: InteractionAction,
    ) -> StoredContent | None:
        """Bump the counter for a like, share or report."""
        field = COUNTER_FIELDS.get(action)
        if field is None:
            raise ValueError(f"{action.value} is not a counted interaction")

        async with self._lock:
            content = self._contents.get(content_id)
            if content is None:
                return None
            updated = content.model_copy(update={field: getattr(content, field) + 1})
            self._contents[content_id] = updated
            return updated


@lru_cache
def get_content_store() -> MemoryContentStore:
    """Get the cached process-wide store."""
    return MemoryContentStore()
