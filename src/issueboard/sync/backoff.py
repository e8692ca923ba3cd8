"""Per-project back-off after GitHub rate limiting."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class _Block:
    until: float  # Clock value before which no call may go out
    await_cycle: bool  # Also wait for the next scheduled pull after `until`


class RateLimitGate:
    """Tracks which projects must not call GitHub yet.

    A block lasts until `retry_after` has elapsed. When pulls are driven by
    a timer, the block also holds until the next scheduled pull, so work
    resumes at whichever of the two comes later.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._blocks: dict[str, _Block] = {}
        self._lock = threading.Lock()

    def block(self, key: str, retry_after: float, await_cycle: bool = False) -> None:
        until = self._clock() + max(0.0, retry_after)
        with self._lock:
            current = self._blocks.get(key)
            if current is not None and current.until > until:
                until = current.until
            self._blocks[key] = _Block(until=until, await_cycle=await_cycle)
        logger.warning("Rate limited on %s; holding remote calls for %.0fs", key, retry_after)

    def remaining(self, key: str, scheduled: bool = False) -> float | None:
        """Seconds (possibly 0.0) the caller must still wait, or None if free.

        Args:
            key: Project id
            scheduled: True when called from a timer-driven pull, which is
                the cycle a cycle-bound block waits for
        """
        with self._lock:
            block = self._blocks.get(key)
            if block is None:
                return None

            left = block.until - self._clock()
            if left > 0:
                return left
            if block.await_cycle and not scheduled:
                return 0.0

            del self._blocks[key]
            logger.info("Rate limit block lifted for %s", key)
            return None

    def clear(self, key: str) -> None:
        with self._lock:
            self._blocks.pop(key, None)
