"""Resolution caching: TTL store, content hashing and call coalescing."""

from .keys import hash_structure
from .singleflight import SingleFlight
from .store import CacheEntry, TTLCache

__all__ = [
    "CacheEntry",
    "SingleFlight",
    "TTLCache",
    "hash_structure",
]
