"""Coalescing of concurrent calls that compute the same key."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..context import ResolutionContext, background
from ..errors import ResolutionCancelled

logger = logging.getLogger(__name__)

# Longest a follower blocks before re-checking its own context
WAIT_SLICE = 0.05


@dataclass
class _Call:
    done: threading.Event = field(default_factory=threading.Event)
    result: Any = None
    error: Optional[BaseException] = None


class SingleFlight:
    """Runs at most one call per key at a time.

    Callers arriving while a call for the same key is in flight block until
    it finishes and receive its result, or have its exception re-raised.
    Cancellation stays with the caller it belongs to: a follower stops
    waiting as soon as its own context is cancelled, and a follower whose
    leader was cancelled takes over the call with its own fn.
    """

    def __init__(self) -> None:
        self._calls: Dict[str, _Call] = {}
        self._lock = threading.Lock()

    def do(
        self,
        key: str,
        fn: Callable[[], Any],
        ctx: Optional[ResolutionContext] = None,
    ) -> Any:
        """Run fn for key, or share the outcome of the call already running.

        Args:
            key: Coalescing key
            fn: Computation, bound to this caller's context
            ctx: This caller's context, checked while waiting on another caller

        Raises:
            ResolutionCancelled: ctx was cancelled or expired while waiting
        """
        ctx = ctx or background()
        while True:
            with self._lock:
                call = self._calls.get(key)
                leader = call is None
                if leader:
                    call = _Call()
                    self._calls[key] = call

            if leader:
                return self._lead(key, call, fn)

            logger.debug("Joining in-flight resolution for key=%s", key)
            self._wait(call, ctx)
            if isinstance(call.error, ResolutionCancelled):
                # The leader's cancellation is not ours; run the call again
                logger.debug("In-flight resolution for key=%s was cancelled, retrying", key)
                continue
            if call.error is not None:
                raise call.error
            return call.result

    def _lead(self, key: str, call: _Call, fn: Callable[[], Any]) -> Any:
        try:
            call.result = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                del self._calls[key]
            call.done.set()
        return call.result

    def _wait(self, call: _Call, ctx: ResolutionContext) -> None:
        while True:
            ctx.check()
            remaining = ctx.remaining()
            timeout = WAIT_SLICE if remaining is None else min(WAIT_SLICE, remaining)
            if call.done.wait(timeout):
                return

    def in_flight(self) -> int:
        with self._lock:
            return len(self._calls)
