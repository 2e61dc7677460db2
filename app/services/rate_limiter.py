"""Named rate limit policies and the fixed-window policy engine.

Policies are small immutable value objects registered once by name. A check
resolves the requester key from the identity according to the policy's key
source, performs one atomic hit on the bucket store and turns the resulting
count into an allow/reject decision.
"""

from __future__ import annotations

import enum
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from app.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from app.services.identity import Identity


class KeySource(str, enum.Enum):
    """Where the requester key of a policy comes from."""

    IDENTITY_OR_ADDRESS = "identity_or_address"
    ADDRESS = "address"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Immutable rate limit rule: ``max_requests`` per ``window_seconds``."""

    name: str
    max_requests: int
    window_seconds: int = 60
    key_source: KeySource = KeySource.IDENTITY_OR_ADDRESS

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("policy name must be a non-empty string")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

    def key_for(self, identity: Identity) -> str:
        if self.key_source is KeySource.ADDRESS:
            return identity.address_key()
        return identity.rate_limit_key()


DEFAULT_POLICIES: tuple[RateLimitPolicy, ...] = (
    # General API traffic
    RateLimitPolicy("api", 60, 60, KeySource.IDENTITY_OR_ADDRESS),
    # Login, register, social login
    RateLimitPolicy("auth", 10, 60, KeySource.ADDRESS),
    # OTP delivery and verification
    RateLimitPolicy("otp", 3, 60, KeySource.ADDRESS),
    # Password reset, contact forms
    RateLimitPolicy("sensitive", 5, 60, KeySource.ADDRESS),
    RateLimitPolicy("orders", 10, 60, KeySource.IDENTITY_OR_ADDRESS),
    # Reviews, questions, messages, CMS pages
    RateLimitPolicy("content", 5, 60, KeySource.IDENTITY_OR_ADDRESS),
    RateLimitPolicy("refunds", 5, 60, KeySource.IDENTITY_OR_ADDRESS),
    RateLimitPolicy("uploads", 10, 60, KeySource.IDENTITY_OR_ADDRESS),
    RateLimitPolicy("search", 30, 60, KeySource.ADDRESS),
)


class RateLimiterEngine:
    """Registry of named policies backed by a fixed-window bucket store.

    Example:
        >>> engine = RateLimiterEngine(InMemoryRateLimitStore())
        >>> engine.register(RateLimitPolicy("api", 2))
        >>> identity = Identity(user_id=None, network_address="10.0.0.1")
        >>> [engine.check("api", identity).allowed for _ in range(3)]
        [True, True, False]
    """

    def __init__(
        self,
        store: AbstractRateLimitStore,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock
        self._policies: dict[str, RateLimitPolicy] = {}
        self._lock = threading.Lock()

    @property
    def policies(self) -> Mapping[str, RateLimitPolicy]:
        return dict(self._policies)

    def register(self, policy: RateLimitPolicy) -> None:
        """Register a policy under its name.

        Raises:
            ValueError: If a policy with the same name is already registered.
        """
        with self._lock:
            if policy.name in self._policies:
                raise ValueError(f"rate limit policy '{policy.name}' is already registered")
            self._policies[policy.name] = policy

    def get(self, name: str) -> RateLimitPolicy:
        try:
            return self._policies[name]
        except KeyError:
            raise KeyError(f"unknown rate limit policy '{name}'") from None

    def check(self, policy_name: str, identity: Identity) -> RateLimitResult:
        """Count one request against ``policy_name`` and decide admission.

        The hit is recorded even when the request is rejected; only the
        passage of time resets a bucket.

        Args:
            policy_name: Name of a registered policy.
            identity: Resolved caller identity.

        Returns:
            RateLimitResult describing the decision and window metadata.

        Raises:
            KeyError: If the policy is not registered.
        """
        policy = self.get(policy_name)
        now = self._clock()
        bucket = self._store.hit(
            f"{policy.name}:{policy.key_for(identity)}",
            now=now,
            window_seconds=policy.window_seconds,
        )

        reset_at = bucket.window_start + policy.window_seconds
        remaining = max(0, policy.max_requests - bucket.count)

        if bucket.count <= policy.max_requests:
            return RateLimitResult(
                allowed=True,
                limit=policy.max_requests,
                remaining=remaining,
                reset_at=int(math.ceil(reset_at)),
                retry_after_seconds=None,
            )

        return RateLimitResult(
            allowed=False,
            limit=policy.max_requests,
            remaining=0,
            reset_at=int(math.ceil(reset_at)),
            retry_after_seconds=max(1, int(math.ceil(reset_at - now))),
        )


def build_rate_limiter(
    policies: Iterable[RateLimitPolicy] = DEFAULT_POLICIES,
    *,
    store: AbstractRateLimitStore | None = None,
    clock: Callable[[], float] = time.time,
) -> RateLimiterEngine:
    """Create an engine with the given policies registered."""
    engine = RateLimiterEngine(store or InMemoryRateLimitStore(), clock=clock)
    for policy in policies:
        engine.register(policy)
    return engine
