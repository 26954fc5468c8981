"""
Per-identity sliding-window rate limiting.

State lives in process memory only. A deployment running several processes
needs a shared store behind the same interface; this limiter is only
correct within one process.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping

from examiner_swarm.config import RATE_LIMITS
from examiner_swarm.logging import get_logger
from examiner_swarm.models import RateLimitDecision, RateTier

logger = get_logger(__name__)


@dataclass
class RateLimitRecord:
    """Admitted request times for one identity, ascending."""

    identity: str
    timestamps: deque[float] = field(default_factory=deque)

    def prune(self, cutoff: float) -> None:
        while self.timestamps and self.timestamps[0] <= cutoff:
            self.timestamps.popleft()


class RateLimiter:
    """
    Sliding-window limiter keyed by identity.

    `check` never blocks waiting for capacity. All reads and writes of the
    record map happen under one lock, and the critical section contains no
    suspension point, so it is safe from threads and asyncio tasks alike.
    """

    def __init__(
        self,
        limits: Mapping[RateTier, tuple[int, float]] | None = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] | None = None,
        gc_every: int = 1000,
    ):
        """
        Args:
            limits: (max requests, window seconds) per tier.
            clock: Monotonic clock used for window arithmetic.
            wall_clock: Current UTC time, used to report reset times.
            gc_every: Sweep stale identities after this many checks; 0 never
                sweeps automatically.
        """
        if gc_every < 0:
            raise ValueError("gc_every must not be negative")
        self._limits = dict(limits or RATE_LIMITS)
        self._clock = clock
        self._wall_clock = wall_clock or (lambda: datetime.now(timezone.utc))
        self._gc_every = gc_every
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._checks = 0

    def check(self, identity: str, tier: RateTier = RateTier.FREE) -> RateLimitDecision:
        """
        Admit or deny one request for `identity`.

        Admission appends the current time to the identity's window.
        """
        limit, window = self._limits[tier]

        with self._lock:
            now = self._clock()
            record = self._records.get(identity)
            if record is None:
                record = RateLimitRecord(identity=identity)
                self._records[identity] = record
            record.prune(now - window)

            allowed = len(record.timestamps) < limit
            if allowed:
                record.timestamps.append(now)
                remaining = limit - len(record.timestamps)
            else:
                remaining = 0

            oldest = record.timestamps[0]
            reset_at = self._wall_clock() + timedelta(seconds=oldest + window - now)

            self._checks += 1
            if self._gc_every and self._checks % self._gc_every == 0:
                self._sweep(now)

        if not allowed:
            logger.info("rate_limited", identity=identity, tier=tier.value, limit=limit)

        return RateLimitDecision(
            allowed=allowed, remaining=remaining, limit=limit, reset_at=reset_at
        )

    def prune_stale(self) -> int:
        """Drop identities whose every timestamp has left the longest window."""
        with self._lock:
            return self._sweep(self._clock())

    def reset(self, identity: str | None = None) -> None:
        """Forget one identity, or everyone."""
        with self._lock:
            if identity is None:
                self._records.clear()
            else:
                self._records.pop(identity, None)

    def _sweep(self, now: float) -> int:
        longest = max(window for _, window in self._limits.values())
        stale = [
            key
            for key, record in self._records.items()
            if not record.timestamps or record.timestamps[-1] <= now - longest
        ]
        for key in stale:
            del self._records[key]
        return len(stale)
