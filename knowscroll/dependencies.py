from typing import Annotated

from fastapi import Depends

from knowscroll.config import AppConfig, get_config
from knowscroll.ingest.orchestrator import ContentAggregator, get_aggregator
from knowscroll.services.content_store import MemoryContentStore, get_content_store

# Type aliases for dependency injection
Config = Annotated[AppConfig, Depends(get_config)]
Aggregator = Annotated[ContentAggregator, Depends(get_aggregator)]
Store = Annotated[MemoryContentStore, Depends(get_content_store)]
