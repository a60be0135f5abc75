from knowscroll.pipeline.filters import filter_hidden_items

__all__ = [
    "filter_hidden_items",
]
