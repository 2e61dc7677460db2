from __future__ import annotations

import json
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import require_capability
from app.core.config import settings
from app.core.rate_limit import rate_limit
from app.schemas.cms_page import (
    CmsPageEnvelope,
    CmsPageListResponse,
    DeleteResponse,
)
from app.services.authorizer import CMS_EDITOR_CAPABILITIES
from app.services.cms_content import present_page, validation_failed
from app.services.cms_page_service import CmsPageService

# Every CMS route passes the general API policy first.
router = APIRouter(
    prefix="/cms-pages",
    tags=["CMS"],
    dependencies=[Depends(rate_limit("api"))],
)

# Mutations: content policy, then capability check, both before the handler body.
_editor_dependencies = [
    Depends(rate_limit("content")),
    Depends(require_capability(*CMS_EDITOR_CAPABILITIES)),
]


def get_page_service(request: Request) -> CmsPageService:
    return request.app.state.page_service


async def _read_json(request: Request) -> Any:
    """Decode the request body; an undecodable body is a validation failure."""
    body = await request.body()
    if not body:
        return {}
    try:
        return json.loads(body)
    except ValueError:
        raise validation_failed({"body": ["The request body must be valid JSON."]}) from None


@router.get("", response_model=CmsPageListResponse)
async def list_pages(
    limit: int | None = Query(None, ge=1, description="Page size."),
    page: int = Query(1, ge=1, description="1-based page number."),
    search: str | None = Query(
        None, description="Criteria as 'field:value;field:value' over slug and title."
    ),
    search_join: Literal["and", "or"] = Query("or", alias="searchJoin"),
    service: CmsPageService = Depends(get_page_service),
) -> dict[str, Any]:
    """Publicly list CMS pages with pagination."""
    per_page = min(limit or settings.app.cms_default_per_page, settings.app.cms_max_per_page)
    result = service.list_pages(
        page=page,
        per_page=per_page,
        search=search,
        match_all=search_join == "and",
    )
    return {
        "data": [present_page(item) for item in result.items],
        "current_page": result.page,
        "per_page": result.per_page,
        "total": result.total,
        "last_page": result.last_page,
    }


@router.get("/path/{path:path}", response_model=CmsPageEnvelope)
async def show_page_by_path(
    path: str,
    service: CmsPageService = Depends(get_page_service),
) -> dict[str, Any]:
    """Publicly fetch a page by its URL path (``/path/`` resolves ``/``)."""
    return {"data": present_page(service.get_by_path(f"/{path}"))}


@router.get("/{slug}", response_model=CmsPageEnvelope)
async def show_page(
    slug: str,
    service: CmsPageService = Depends(get_page_service),
) -> dict[str, Any]:
    """Publicly fetch a page by slug, blocks ordered for display."""
    return {"data": present_page(service.get_by_slug(slug))}


@router.post(
    "",
    response_model=CmsPageEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=_editor_dependencies,
)
async def store_page(
    request: Request,
    service: CmsPageService = Depends(get_page_service),
) -> dict[str, Any]:
    """Create a page (editor or super admin)."""
    page = service.create(await _read_json(request))
    return {"data": present_page(page)}


@router.put(
    "/{page_id}",
    response_model=CmsPageEnvelope,
    dependencies=_editor_dependencies,
)
async def update_page(
    page_id: int,
    request: Request,
    service: CmsPageService = Depends(get_page_service),
) -> dict[str, Any]:
    """Update a page (editor or super admin); slug may stay the same."""
    page = service.update(page_id, await _read_json(request))
    return {"data": present_page(page)}


@router.delete(
    "/{page_id}",
    response_model=DeleteResponse,
    dependencies=_editor_dependencies,
)
async def destroy_page(
    page_id: int,
    service: CmsPageService = Depends(get_page_service),
) -> dict[str, Any]:
    """Delete a page (editor or super admin)."""
    service.delete(page_id)
    return {"success": True}
