import html as html_module
import re
from typing import TYPE_CHECKING

from knowscroll.core.datetime_utils import utc_now
from knowscroll.schemas.content import ContentItem

if TYPE_CHECKING:
    from knowscroll.ingest.base import RawContent

MIN_TITLE_LENGTH = 4

_WHITESPACE_RE = re.compile(r"\s+")
_TAG_RE = re.compile(r"<[^>]+>")


def collapse_whitespace(text: str | None) -> str:
    """Trim and collapse runs of whitespace to single spaces."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_html(html: str) -> str:
    """Remove HTML tags and decode entities."""
    text = _TAG_RE.sub(" ", html)
    text = html_module.unescape(text)
    return collapse_whitespace(text)


def rejection_reason(
    raw: "RawContent",
    min_excerpt_length: int = 50,
    excerpt_required: bool = True,
) -> str | None:
    """
    Check a raw item against the minimum quality floor.

    Returns:
        None when the item is acceptable, otherwise a short reason code
        (``missing_id``, ``short_title``, ``short_excerpt``, ``missing_url``)
    """
    if not (raw.source_item_id or "").strip():
        return "missing_id"
    if len(collapse_whitespace(raw.title)) < MIN_TITLE_LENGTH:
        return "short_title"
    if excerpt_required and len(collapse_whitespace(raw.excerpt)) < min_excerpt_length:
        return "short_excerpt"
    if not (raw.canonical_url or "").strip():
        return "missing_url"
    return None


def normalize(
    raw: "RawContent",
    min_excerpt_length: int = 50,
    excerpt_required: bool = True,
) -> ContentItem | None:
    """
    Coerce a raw provider item into a ContentItem.

    Titles and excerpts are whitespace-collapsed; an empty excerpt on a
    provider that is exempt from the excerpt floor becomes None.
    ``fetched_at`` is stamped here and nowhere else.

    Returns:
        The normalized item, or None if the item fails validation
    """
    if rejection_reason(raw, min_excerpt_length, excerpt_required):
        return None

    excerpt = collapse_whitespace(raw.excerpt) or None
    thumbnail_url = (raw.thumbnail_url or "").strip() or None

    return ContentItem(
        source_item_id=str(raw.source_item_id).strip(),
        provider=raw.provider,
        category=raw.category,
        title=collapse_whitespace(raw.title),
        excerpt=excerpt,
        thumbnail_url=thumbnail_url,
        metadata=dict(raw.metadata),
        canonical_url=str(raw.canonical_url).strip(),
        fetched_at=utc_now(),
    )
