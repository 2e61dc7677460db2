from __future__ import annotations

from app.api.routes.cms_pages import router as cms_pages_router
from app.api.routes.health import router as health_router

__all__ = ["cms_pages_router", "health_router"]
