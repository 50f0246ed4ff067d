"""Cancellation and deadline propagation for resolution calls."""

from __future__ import annotations

from threading import Event
from time import monotonic
from typing import Optional

from .errors import ResolutionCancelled


class ResolutionContext:
    """Token passed through every external call made while resolving images.

    A context is cancelled either explicitly via `cancel()` or implicitly once
    its deadline (seconds from creation) has elapsed. Resolvers call `check()`
    before each external call and between result pages.
    """

    def __init__(self, timeout: Optional[float] = None, event: Optional[Event] = None) -> None:
        self._event = event or Event()
        self._deadline = monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - monotonic())

    def check(self) -> None:
        """Raise ResolutionCancelled if the call should stop now."""
        if self.cancelled:
            raise ResolutionCancelled("resolution cancelled")
        if self.expired:
            raise ResolutionCancelled("resolution deadline exceeded")


def background() -> ResolutionContext:
    """Context that is never cancelled and has no deadline."""
    return ResolutionContext()
