from fastapi import APIRouter, HTTPException, Query, Request, status

from knowscroll.core.limits import limiter
from knowscroll.core.logging import get_logger
from knowscroll.dependencies import Aggregator, Config, Store
from knowscroll.pipeline.filters import filter_hidden_items
from knowscroll.schemas.content import (
    InteractionAction,
    InteractionCreate,
    InteractionResponse,
    ProviderInfo,
    StoredContent,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get("/providers", response_model=list[ProviderInfo])
async def list_providers(aggregator: Aggregator) -> list[ProviderInfo]:
    """List the providers the feed can be filtered by."""
    return [
        ProviderInfo(
            id=fetcher.source_name,
            category=fetcher.category,
            excerpt_required=fetcher.excerpt_required,
        )
        for fetcher in aggregator.fetchers.values()
    ]


@router.get("/contents", response_model=list[StoredContent])
@limiter.limit("60/minute")
async def get_contents(
    request: Request,
    aggregator: Aggregator,
    store: Store,
    config: Config,
    page: int = Query(default=1, ge=1),
    source: str | None = Query(default=None, max_length=50),
    q: str | None = Query(default=None, max_length=200),
    user_id: str | None = Query(default=None, max_length=100),
) -> list[StoredContent]:
    """
    One page of the feed.

    Page 1, or any search, pulls a fresh aggregation, drops the user's
    hidden items and persists the rest. A search pages through that fresh
    batch, so pages past its end are empty. Later browse pages are served
    from storage, so they continue whatever earlier first pages stored.
    """
    page_size = config.aggregation.page_size
    search_term = (q or "").strip() or None

    if page > 1 and not search_term:
        contents = await store.get_contents(page, source, page_size)
        if user_id:
            hidden = await store.get_hidden_item_ids(user_id)
            contents = [c for c in contents if c.id not in hidden]
        return contents

    items = await aggregator.aggregate(source, search_term)
    items = await filter_hidden_items(items, user_id, store)

    stored: list[StoredContent] = []
    for item in items:
        content_id = await store.persist(item)
        content = await store.get_content(content_id)
        if content is not None:
            stored.append(content)

    logger.bind(source=source, search=search_term, count=len(stored)).info("contents_served")
    start = (page - 1) * page_size
    return stored[start : start + page_size]


@router.get("/contents/{content_id}", response_model=StoredContent)
async def get_content(content_id: int, store: Store) -> StoredContent:
    """Get a single stored item."""
    content = await store.get_content(content_id)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return content


@router.post("/contents/{content_id}/interactions", response_model=InteractionResponse)
async def create_interaction(
    content_id: int,
    body: InteractionCreate,
    store: Store,
) -> InteractionResponse:
    """Record a like, share, report or hide on a stored item."""
    content = await store.get_content(content_id)
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")

    if body.action == InteractionAction.HIDE:
        if not body.user_id:
            raise HTTPException(
                status_code=422,
                detail="user_id is required to hide an item",
            )
        await store.hide_item(body.user_id, content_id)
        logger.bind(content_id=content_id, user_id=body.user_id).info("content_hidden")
        return InteractionResponse(
            content_id=content_id,
            likes=content.likes,
            shares=content.shares,
            reports=content.reports,
            hidden=True,
        )

    updated = await store.record_interaction(content_id, body.action)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")

    logger.bind(content_id=content_id, action=body.action.value).info("content_interaction")
    return InteractionResponse(
        content_id=content_id,
        likes=updated.likes,
        shares=updated.shares,
        reports=updated.reports,
    )
