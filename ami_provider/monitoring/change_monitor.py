"""Suppress repeated log lines for values that did not change."""

from __future__ import annotations

import threading
from typing import Any, Dict

from ..cache import hash_structure


class ChangeMonitor:
    """Remembers the last value reported on each named channel.

    Values are compared by their order-independent content hash, so two
    image sets holding the same images in a different order count as
    unchanged.
    """

    def __init__(self) -> None:
        self._last: Dict[str, str] = {}
        self._lock = threading.Lock()

    def has_changed(self, key: str, value: Any) -> bool:
        """Record value for key and report whether it differs from the last one.

        The first value seen on a channel counts as a change.
        """
        digest = hash_structure(value)
        with self._lock:
            changed = self._last.get(key) != digest
            self._last[key] = digest
            return changed

    def reset(self) -> None:
        with self._lock:
            self._last.clear()
