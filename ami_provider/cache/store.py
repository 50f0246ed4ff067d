"""Thread-safe in-memory TTL cache."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cached value with expiry tracking."""

    value: Any
    stored_at: float
    ttl_seconds: float

    def is_valid(self, now: Optional[float] = None) -> bool:
        """Check if cache entry is still valid."""
        if now is None:
            now = time.monotonic()
        return now - self.stored_at < self.ttl_seconds


class TTLCache:
    """Key/value store whose entries expire after a fixed TTL.

    Uses an RLock so get/set are individually safe across threads. Expired
    entries are dropped when their key is read and swept on every set().
    Values are stored as-is; callers must not mutate what they get back.
    """

    def __init__(self, default_ttl: float, name: str = "cache") -> None:
        """Initialize cache.

        Args:
            default_ttl: TTL in seconds applied by set_default()
            name: Label used in log messages
        """
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.default_ttl = default_ttl
        self.name = name

    def get(self, key: str) -> Tuple[Any, bool]:
        """Look up key.

        Returns:
            (value, True) on a hit, (None, False) on a miss or expired entry
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None, False
            if not entry.is_valid():
                del self._entries[key]
                logger.debug("%s entry expired for key=%s", self.name, key)
                return None, False
            return entry.value, True

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store value under key for ttl seconds (default_ttl when None).

        Expired entries under any key are swept first, so keys that are no
        longer read do not accumulate.
        """
        with self._lock:
            self.cleanup_expired()
            self._entries[key] = CacheEntry(
                value=value,
                stored_at=time.monotonic(),
                ttl_seconds=self.default_ttl if ttl is None else ttl,
            )

    def set_default(self, key: str, value: Any) -> None:
        self.set(key, value)

    def items(self) -> List[Tuple[str, Any]]:
        """Snapshot of the live (unexpired) entries."""
        with self._lock:
            now = time.monotonic()
            return [
                (key, entry.value)
                for key, entry in self._entries.items()
                if entry.is_valid(now)
            ]

    def cleanup_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = time.monotonic()
            expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]
            for key in expired:
                del self._entries[key]
            if expired:
                logger.debug("Cleaned up %d expired %s entries", len(expired), self.name)
            return len(expired)

    def flush(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
