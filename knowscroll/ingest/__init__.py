from knowscroll.ingest.base import BaseFetcher, RawContent
from knowscroll.ingest.normalizer import normalize, rejection_reason
from knowscroll.ingest.orchestrator import ContentAggregator, aggregate_content, interleave

__all__ = [
    "BaseFetcher",
    "RawContent",
    "normalize",
    "rejection_reason",
    "ContentAggregator",
    "aggregate_content",
    "interleave",
]
