"""核心业务逻辑."""

from feedstash.core.store import (
    ALL_FEED_MAX_ITEMS,
    ALL_FEED_UID,
    MemoryStore,
    StoreParams,
)

__all__ = [
    "ALL_FEED_MAX_ITEMS",
    "ALL_FEED_UID",
    "MemoryStore",
    "StoreParams",
]
