"""CMS page use cases: listing, lookup, and validated mutations."""

from __future__ import annotations

import logging
from typing import Any

from app.adapters.pages.base import AbstractPageRepository, CmsPage, PageSlice
from app.services.cms_content import (
    PageInput,
    derive_path,
    validate_page_payload,
    validation_failed,
)

logger = logging.getLogger(__name__)


def parse_search_criteria(search: str | None) -> dict[str, str]:
    """Parse ``field:value;field:value`` search criteria.

    Raises:
        ValueError: If an entry lacks the ``field:value`` shape.
    """
    if not search:
        return {}

    criteria: dict[str, str] = {}
    for entry in search.split(";"):
        if not entry.strip():
            continue
        name, sep, value = entry.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"malformed search criteria entry: {entry!r}")
        criteria[name.strip()] = value.strip()
    return criteria


class CmsPageService:
    """Orchestrates validation and persistence of CMS pages."""

    def __init__(self, repository: AbstractPageRepository) -> None:
        self._repository = repository

    @property
    def repository(self) -> AbstractPageRepository:
        return self._repository

    def list_pages(
        self,
        *,
        page: int = 1,
        per_page: int = 10,
        search: str | None = None,
        match_all: bool = False,
    ) -> PageSlice:
        """Paginate pages, applying search criteria when they parse.

        Criteria are a best-effort refinement: a malformed string is logged
        and the unfiltered listing is returned.
        """
        try:
            filters = parse_search_criteria(search)
        except ValueError as exc:
            logger.warning(
                "cms_page.search_criteria_ignored",
                extra={"reason": str(exc)},
            )
            filters = {}
        return self._repository.paginate(
            page=page, per_page=per_page, filters=filters, match_all=match_all
        )

    def get_by_slug(self, slug: str) -> CmsPage:
        return self._repository.get_by_slug(slug)

    def get_by_path(self, path: str) -> CmsPage:
        return self._repository.get_by_path(path)

    def create(self, payload: Any) -> CmsPage:
        page_input = validate_page_payload(payload, repository=self._repository)
        path = page_input.path or derive_path(page_input.slug)
        if page_input.path is None and self._repository.path_taken(path):
            raise validation_failed({"path": ["The path has already been taken."]})

        page = self._repository.create(self._fields(page_input, path=path))
        logger.info(
            "cms_page.created",
            extra={"page_id": page.id, "slug": page.slug, "blocks": len(page.content or [])},
        )
        return page

    def update(self, page_id: int, payload: Any) -> CmsPage:
        existing = self._repository.get(page_id)
        page_input = validate_page_payload(payload, repository=self._repository, ignore_id=page_id)

        fields = self._fields(page_input, path=page_input.path or existing.path)
        # Omitted optional fields (content, meta, builder data) keep their stored values.
        if page_input.content is None:
            fields.pop("content")
        if page_input.meta is None:
            fields.pop("meta")
        if page_input.data is None:
            fields.pop("data")

        page = self._repository.update(page_id, fields)
        logger.info(
            "cms_page.updated",
            extra={"page_id": page.id, "slug": page.slug, "blocks": len(page.content or [])},
        )
        return page

    def delete(self, page_id: int) -> None:
        self._repository.delete(page_id)
        logger.info("cms_page.deleted", extra={"page_id": page_id})

    @staticmethod
    def _fields(page_input: PageInput, *, path: str) -> dict[str, Any]:
        return {
            "slug": page_input.slug,
            "path": path,
            "title": page_input.title,
            "content": page_input.content,
            "meta": page_input.meta,
            "data": page_input.data,
        }
