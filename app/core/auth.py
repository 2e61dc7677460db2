"""Identity and capability dependencies.

Bearer tokens are resolved to user ids through the token table configured
with ``APP_API_TOKENS``; capabilities come from the role / permission store
attached to the application.

Design principles:
- Resolution never fails: unknown tokens are treated as anonymous callers
- Authorization is a separate step that denies by default
- Dependency Injection: used via FastAPI Depends() for loose coupling
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Depends, Request

from app.core.errors import AuthorizationAppError
from app.core.logging import hash_for_log
from app.services.authorizer import Authorizer
from app.services.identity import Identity, resolve_identity

logger = logging.getLogger(__name__)


def get_authorizer(request: Request) -> Authorizer:
    """Return the authorizer created for this application instance."""
    return request.app.state.authorizer


async def get_identity(request: Request) -> Identity:
    """FastAPI dependency resolving the caller identity.

    Cached by FastAPI per request, so the rate limiter and the authorizer
    see the same identity.
    """
    identity = resolve_identity(request, request.app.state.api_tokens)
    logger.debug(
        "auth.identity_resolved",
        extra={
            "authenticated": identity.is_authenticated,
            "identity_hash": hash_for_log(identity.rate_limit_key()),
        },
    )
    return identity


def ensure_capability(
    authorizer: Authorizer,
    identity: Identity,
    capabilities: tuple[str, ...],
) -> None:
    """Raise unless ``identity`` holds one of ``capabilities``.

    Raises:
        AuthorizationAppError: If the identity is anonymous or under-privileged.
    """
    if authorizer.authorize_any(identity, capabilities):
        return

    logger.warning(
        "authz.denied",
        extra={
            "authenticated": identity.is_authenticated,
            "user_id": identity.user_id,
            "capabilities": list(capabilities),
        },
    )
    raise AuthorizationAppError(
        code="not_authorized",
        message="You are not authorized to perform this action.",
        details={"capabilities": list(capabilities)},
    )


def require_capability(*capabilities: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency requiring any one of ``capabilities``.

    Usage:
        @router.post(
            "/cms-pages",
            dependencies=[Depends(rate_limit("content")), Depends(require_capability("editor"))],
        )

    List it after the rate limit dependencies: FastAPI resolves route
    dependencies in declaration order.
    """
    if not capabilities:
        raise ValueError("at least one capability is required")

    async def _require_capability(
        identity: Identity = Depends(get_identity),
        authorizer: Authorizer = Depends(get_authorizer),
    ) -> None:
        ensure_capability(authorizer, identity, capabilities)

    return _require_capability
