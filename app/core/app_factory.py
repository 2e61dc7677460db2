from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
the per-application state the control layer depends on: the rate limiter
with its bucket store, the role/permission store, the bearer token table and
the CMS page service. Tests build a fresh app (and therefore fresh state) per
test by calling ``create_app`` with their own collaborators.
"""

import logging
from typing import Mapping

from fastapi import FastAPI

from app.adapters.pages.base import AbstractPageRepository
from app.adapters.pages.in_memory import InMemoryPageRepository
from app.adapters.permissions.base import AbstractPermissionStore
from app.adapters.permissions.in_memory import InMemoryPermissionStore
from app.api.routes import cms_pages_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.authorizer import (
    Authorizer,
    apply_role_assignments,
    parse_role_assignments,
    seed_default_roles,
)
from app.services.cms_page_service import CmsPageService
from app.services.identity import parse_api_tokens
from app.services.rate_limiter import RateLimiterEngine, build_rate_limiter

logger = logging.getLogger(__name__)


def create_app(
    *,
    rate_limiter: RateLimiterEngine | None = None,
    permission_store: AbstractPermissionStore | None = None,
    page_repository: AbstractPageRepository | None = None,
    api_tokens: Mapping[str, int] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Engine with policies registered; defaults to the
            built-in policy set over an in-memory bucket store.
        permission_store: Role/permission store; seeded with the built-in
            roles and the configured role assignments.
        page_repository: CMS page store; defaults to in-memory.
        api_tokens: Bearer token to user id table; defaults to settings.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Marketplace Content API",
        description=(
            "CMS pages for the marketplace storefront. Public reads by slug or "
            "path; create, update and delete require the editor or super admin "
            "capability. Every route is admitted through named rate limit "
            "policies (429 with Retry-After when exhausted)."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    guard = settings.app.auth_guard
    store = permission_store or InMemoryPermissionStore()
    seed_default_roles(store, guard=guard)
    apply_role_assignments(store, parse_role_assignments(settings.app.role_assignments), guard=guard)

    app.state.rate_limiter = rate_limiter or build_rate_limiter()
    app.state.authorizer = Authorizer(store, guard=guard)
    app.state.api_tokens = dict(api_tokens) if api_tokens is not None else parse_api_tokens(settings.app.api_tokens)
    app.state.page_service = CmsPageService(page_repository or InMemoryPageRepository())

    logger.info(
        "app.initialized",
        extra={
            "policies": sorted(app.state.rate_limiter.policies),
            "token_count": len(app.state.api_tokens),
            "rate_limit_enabled": settings.app.rate_limit_enabled,
        },
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(cms_pages_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
