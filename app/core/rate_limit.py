"""Rate limiting dependencies for FastAPI routes.

This module wires the policy engine into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on ``rate_limit("<policy>")`` only.
- Injected state: the engine (and its bucket store) lives on ``app.state``,
  created by the application factory, never as a module global.
- Safe toggling: the whole limiter can be disabled via settings.

Rate limiting strategy:
- Fixed window per (policy, requester key).
- Requester key is the authenticated user id, else the client IP, unless the
  policy is keyed by address only.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Depends, Request

from app.core.auth import get_identity
from app.core.config import settings
from app.core.errors import RateLimitAppError
from app.core.logging import hash_for_log
from app.services.identity import Identity
from app.services.rate_limiter import RateLimiterEngine

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> RateLimiterEngine:
    """Return the engine created for this application instance."""
    return request.app.state.rate_limiter


def enforce_policy(
    engine: RateLimiterEngine,
    policy_name: str,
    identity: Identity,
) -> None:
    """Count the request against ``policy_name``; raise when over quota.

    Raises:
        RateLimitAppError: When the policy rejects the request.
    """
    policy = engine.get(policy_name)
    result = engine.check(policy_name, identity)
    key = policy.key_for(identity)
    key_hash = hash_for_log(key)
    key_type = key.split(":", 1)[0]

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "policy": policy_name,
                "key_type": key_type,
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
                "window_s": policy.window_seconds,
            },
        )
        return

    retry_after = result.retry_after_seconds or 1
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "policy": policy_name,
            "key_type": key_type,
            "key_hash": key_hash,
            "limit": result.limit,
            "window_s": policy.window_seconds,
            "retry_after_s": retry_after,
        },
    )
    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message="Too many requests. Try again later.",
        details={
            "policy": policy_name,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
            "retry_after": retry_after,
        },
    )


def rate_limit(policy_name: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency enforcing the named policy.

    Usage:
        @router.post("/cms-pages", dependencies=[Depends(rate_limit("content"))])
        async def store(): ...

    Args:
        policy_name: Name of a policy registered on the engine.

    Returns:
        Async FastAPI dependency raising RateLimitAppError (HTTP 429).
    """

    async def _enforce_rate_limit(
        request: Request,
        identity: Identity = Depends(get_identity),
    ) -> None:
        if not settings.app.rate_limit_enabled:
            return
        enforce_policy(get_rate_limiter(request), policy_name, identity)

    _enforce_rate_limit.__name__ = f"rate_limit_{policy_name}"
    return _enforce_rate_limit
