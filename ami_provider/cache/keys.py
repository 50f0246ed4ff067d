"""Order-independent content hashing for cache and dedup keys."""

from __future__ import annotations

import dataclasses
import hashlib
import json
from typing import Any

from ..errors import CacheKeyError


def _canonical(value: Any) -> Any:
    """Render value as JSON-compatible data with all sequences unordered.

    Lists, tuples and sets are sorted by the JSON encoding of their
    canonicalized members, so [a, b] and [b, a] render identically.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: _canonical(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {str(key): _canonical(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        members = [_canonical(item) for item in value]
        return sorted(members, key=lambda item: json.dumps(item, sort_keys=True))
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "node_selector_requirements"):
        return _canonical(value.node_selector_requirements())
    raise TypeError(f"cannot hash value of type {type(value).__name__}")


def hash_structure(value: Any) -> str:
    """Hex sha256 digest of value, treating every sequence as a set.

    Raises:
        CacheKeyError: value contains something that cannot be canonicalized
    """
    try:
        encoded = json.dumps(_canonical(value), sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise CacheKeyError(f"hashing {type(value).__name__}, {exc}", cause=exc) from exc
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
