"""Rate limit storage interfaces.

The policy engine depends on this abstraction (not the concrete store) so the
bucket table can move to Redis or another shared store without changes to
the engine or the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


@dataclass(frozen=True)
class BucketSnapshot:
    """State of a bucket right after a hit.

    Attributes:
        count: Units consumed in the current window, including this hit.
        window_start: UNIX time the current window started.
    """

    count: int
    window_start: float


class AbstractRateLimitStore(ABC):
    """Interface for bucket stores backing the fixed-window limiter."""

    @abstractmethod
    def hit(
        self,
        key: str,
        *,
        now: float,
        window_seconds: int,
        cost: int = 1,
    ) -> BucketSnapshot:
        """Atomically reset-if-expired and increment the bucket for ``key``.

        Args:
            key: Bucket identifier (policy name plus requester key).
            now: Current UNIX time in seconds.
            window_seconds: Window length used to decide expiry.
            cost: Units to add (default 1).

        Returns:
            BucketSnapshot after the increment.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str) -> None:
        """Drop any state held for ``key``."""
        raise NotImplementedError
