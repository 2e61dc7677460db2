"""In-memory fixed-window bucket store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the reset-and-increment step runs under a single lock.
- Bounded: expired buckets are swept opportunistically from ``hit``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from app.adapters.rate_limit.base import AbstractRateLimitStore, BucketSnapshot

DEFAULT_SWEEP_INTERVAL = 1000


@dataclass
class _WindowState:
    window_start: float
    window_seconds: int
    count: int

    def expired(self, now: float) -> bool:
        return now >= self.window_start + self.window_seconds


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Bucket table keyed by ``policy:requester`` strings.

    A bucket's window starts with its first hit and lasts ``window_seconds``.
    Once ``now`` reaches the window end the next hit starts a fresh window
    with a zero count. Every ``sweep_interval`` hits, buckets whose window
    has ended are dropped, so one-off requesters do not accumulate.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self, *, sweep_interval: int = DEFAULT_SWEEP_INTERVAL) -> None:
        if sweep_interval < 1:
            raise ValueError("sweep_interval must be >= 1")
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._sweep_interval = sweep_interval
        self._hits_since_sweep = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def hit(
        self,
        key: str,
        *,
        now: float,
        window_seconds: int,
        cost: int = 1,
    ) -> BucketSnapshot:
        """Reset the bucket if its window elapsed, then add ``cost``.

        Raises:
            ValueError: If key is empty or cost/window are invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            self._hits_since_sweep += 1
            if self._hits_since_sweep >= self._sweep_interval:
                self._sweep(now)

            state = self._state_by_key.get(key)
            if state is None or now >= state.window_start + window_seconds:
                state = _WindowState(window_start=now, window_seconds=window_seconds, count=0)
                self._state_by_key[key] = state

            state.count += cost
            return BucketSnapshot(count=state.count, window_start=state.window_start)

    def _sweep(self, now: float) -> None:
        # Caller holds the lock.
        expired = [key for key, state in self._state_by_key.items() if state.expired(now)]
        for key in expired:
            del self._state_by_key[key]
        self._hits_since_sweep = 0

    def reset(self, key: str) -> None:
        with self._lock:
            self._state_by_key.pop(key, None)
