"""Thread-safe registry of the most recent resolution per node class."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

PATH_DEFAULT = "default"
PATH_SELECTOR = "selector"


@dataclass
class ResolutionInfo:
    """Resolution outcome stored in registry."""

    node_class: str
    path: str  # "default" or "selector"
    family: Optional[str] = None
    kubernetes_version: Optional[str] = None
    image_ids: List[str] = field(default_factory=list)
    resolved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None

    @property
    def status(self) -> str:
        return "failed" if self.error else "resolved"

    @property
    def count(self) -> int:
        return len(self.image_ids)


class ResolutionRegistry:
    """Last resolution per node class, kept for a history TTL.

    Uses RLock for thread-safe operations; stale entries are dropped by
    cleanup_old_entries().
    """

    def __init__(self, history_ttl: int = 3600):
        """Initialize registry.

        Args:
            history_ttl: TTL in seconds for recorded resolutions (default: 3600)
        """
        self._resolutions: Dict[str, ResolutionInfo] = {}
        self._lock = threading.RLock()
        self._history_ttl = history_ttl

    def record(
        self,
        node_class: str,
        path: str,
        image_ids: Optional[List[str]] = None,
        family: Optional[str] = None,
        kubernetes_version: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        """Record the outcome of a resolution.

        Args:
            node_class: Node class name
            path: PATH_DEFAULT or PATH_SELECTOR
            image_ids: Resolved image IDs, sorted newest first
            family: Image family for the default path
            kubernetes_version: Version used for the default path
            error: Error message when resolution failed
        """
        with self._lock:
            self._resolutions[node_class] = ResolutionInfo(
                node_class=node_class,
                path=path,
                family=family,
                kubernetes_version=kubernetes_version,
                image_ids=list(image_ids or []),
                error=error,
            )
            logger.debug("Recorded %s resolution for node class %s", path, node_class)

    def get(self, node_class: str) -> Optional[ResolutionInfo]:
        with self._lock:
            return self._resolutions.get(node_class)

    def list_resolutions(self, failed_only: bool = False) -> List[ResolutionInfo]:
        """List recorded resolutions.

        Args:
            failed_only: If True, only return resolutions that failed
        """
        with self._lock:
            resolutions = list(self._resolutions.values())
            if failed_only:
                resolutions = [r for r in resolutions if r.error]
            return resolutions

    def cleanup_old_entries(self) -> int:
        """Remove entries older than TTL.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = time.time()
            to_remove = [
                name
                for name, info in self._resolutions.items()
                if now - info.resolved_at.timestamp() > self._history_ttl
            ]
            for name in to_remove:
                del self._resolutions[name]

            if to_remove:
                logger.debug("Cleaned up %d old resolution entries", len(to_remove))

            return len(to_remove)

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._resolutions.clear()
