from knowscroll.core.logging import get_logger
from knowscroll.schemas.content import ContentItem
from knowscroll.services.content_store import ContentStore

logger = get_logger(__name__)


async def filter_hidden_items(
    items: list[ContentItem],
    user_id: str | None,
    store: ContentStore,
) -> list[ContentItem]:
    """
    Drop items the user has hidden.

    An item is hidden only if it was persisted before and its stored id is
    in the user's hidden set. Items never stored are always kept.

    Args:
        items: Freshly aggregated items
        user_id: User whose hidden set applies; None skips filtering
        store: Storage collaborator

    Returns:
        Items in their original order, minus hidden ones
    """
    if not user_id or not items:
        return items

    hidden = await store.get_hidden_item_ids(user_id)
    if not hidden:
        return items

    kept = []
    for item in items:
        stored_id = await store.find_stored_identity(item.provider.value, item.source_item_id)
        if stored_id is not None and stored_id in hidden:
            continue
        kept.append(item)

    dropped = len(items) - len(kept)
    if dropped:
        logger.bind(user_id=user_id, dropped=dropped).info("hidden_items_filtered")
    return kept
