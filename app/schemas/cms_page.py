"""Pydantic schemas for CMS page payloads and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

MAX_STRING_LENGTH = 191


class BlockIn(BaseModel):
    """One content block as submitted by an editor.

    Unknown keys are kept so page-builder specific attributes survive a
    round trip through storage.
    """

    model_config = ConfigDict(extra="allow")

    type: StrictStr = Field(..., min_length=1, description="Component type rendered by the storefront.")
    order: StrictInt = Field(..., description="Display position; lower values render first.")
    props: Dict[str, Any] | None = Field(
        default=None, description="Component properties (free-form JSON object)."
    )


class PageData(BaseModel):
    """Page-builder document: root props, ordered content and named zones.

    Builder specific top-level keys are kept as submitted.
    """

    model_config = ConfigDict(extra="allow")

    root: Dict[str, Any] | None = None
    content: List[Any] | None = None
    zones: Dict[str, Any] | None = None


class PageIn(BaseModel):
    """Create/update payload for a CMS page."""

    slug: StrictStr = Field(..., min_length=1, max_length=MAX_STRING_LENGTH)
    title: StrictStr = Field(..., min_length=1, max_length=MAX_STRING_LENGTH)
    path: StrictStr | None = Field(
        default=None,
        min_length=1,
        max_length=MAX_STRING_LENGTH,
        description="URL path; derived from the slug when omitted on create.",
    )
    content: List[BlockIn] | None = None
    data: PageData | None = Field(
        default=None,
        description="Page-builder document; its content fills ``content`` when that is omitted.",
    )
    meta: Dict[str, Any] | None = None


class CmsPageOut(BaseModel):
    """Presented CMS page (content blocks ordered for display)."""

    id: int
    slug: str
    path: str
    title: str
    content: Any = None
    meta: Dict[str, Any] | None = None
    data: Dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class CmsPageEnvelope(BaseModel):
    data: CmsPageOut


class CmsPageListResponse(BaseModel):
    """Paginated page listing."""

    data: List[CmsPageOut] = Field(default_factory=list)
    current_page: int
    per_page: int
    total: int
    last_page: int


class DeleteResponse(BaseModel):
    success: bool = True
