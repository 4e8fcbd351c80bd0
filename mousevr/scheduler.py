"""Named, single-shot callbacks fired from the control loop."""

from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from mousevr.utils._logger import get_logger

logger = get_logger(__name__)

__all__ = ["DeferredScheduler", "ScheduledCall"]


@dataclass(order=True)
class ScheduledCall:
    fire_time: float
    seq: int
    name: str = field(compare=False)
    callback: Callable[[], None] = field(compare=False, repr=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class DeferredScheduler:
    """Priority queue of ``(fire_time, callback)`` drained once per tick.

    Delays are measured from registration against ``clock`` (the control
    loop's clock). Nothing fires on its own: :meth:`run_due` has to be called,
    so a callback never runs concurrently with the rest of the loop. Callbacks
    are expected to check the current trial state before acting, which keeps
    stale firings harmless.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._heap: list[ScheduledCall] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._clock()

    def schedule(self, name: str, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        call = ScheduledCall(self._clock() + float(delay), next(self._counter), name, callback)
        heapq.heappush(self._heap, call)
        logger.debug("Scheduled %s in %.3f s", name, delay)
        return call

    def run_due(self, now: Optional[float] = None) -> int:
        """Fire every callback whose time has come; return how many ran."""
        if now is None:
            now = self._clock()
        due: list[ScheduledCall] = []
        while self._heap and self._heap[0].fire_time <= now:
            due.append(heapq.heappop(self._heap))

        fired = 0
        for call in due:
            if call.cancelled:
                continue
            try:
                call.callback()
            except Exception:
                logger.exception("Deferred callback %s failed", call.name)
            fired += 1
        return fired

    def cancel(self, name: str) -> int:
        count = 0
        for call in self._heap:
            if call.name == name and not call.cancelled:
                call.cancel()
                count += 1
        return count

    def clear(self) -> None:
        self._heap.clear()

    def pending(self) -> list[str]:
        return [call.name for call in sorted(self._heap) if not call.cancelled]

    def __len__(self) -> int:
        return sum(1 for call in self._heap if not call.cancelled)
