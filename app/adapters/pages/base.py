"""CMS page repository interface.

The service layer depends on this abstraction; uniqueness of ``slug`` and
``path`` is the repository's job and must hold under concurrent writes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

# Fields matched by the listing "search" criteria (case-insensitive "like").
SEARCHABLE_FIELDS: tuple[str, ...] = ("slug", "title")


@dataclass
class CmsPage:
    """Stored CMS page record."""

    id: int
    slug: str
    path: str
    title: str
    content: list[dict[str, Any]] | None
    meta: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime
    # Page-builder document (root, content, zones) as submitted.
    data: dict[str, Any] | None = None


@dataclass(frozen=True)
class PageSlice:
    """One page of a paginated listing."""

    items: list[CmsPage] = field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 10

    @property
    def last_page(self) -> int:
        return max(1, -(-self.total // self.per_page))


class AbstractPageRepository(ABC):
    """Interface for CMS page storage.

    Lookups raise ``NotFoundAppError`` for unknown records; writes raise
    ``ConflictAppError`` when ``slug`` or ``path`` collide with another page.
    """

    @abstractmethod
    def get(self, page_id: int) -> CmsPage:
        raise NotImplementedError

    @abstractmethod
    def get_by_slug(self, slug: str) -> CmsPage:
        raise NotImplementedError

    @abstractmethod
    def get_by_path(self, path: str) -> CmsPage:
        raise NotImplementedError

    @abstractmethod
    def slug_taken(self, slug: str, *, ignore_id: int | None = None) -> bool:
        raise NotImplementedError

    @abstractmethod
    def path_taken(self, path: str, *, ignore_id: int | None = None) -> bool:
        raise NotImplementedError

    @abstractmethod
    def create(self, fields: Mapping[str, Any]) -> CmsPage:
        raise NotImplementedError

    @abstractmethod
    def update(self, page_id: int, fields: Mapping[str, Any]) -> CmsPage:
        raise NotImplementedError

    @abstractmethod
    def delete(self, page_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def paginate(
        self,
        *,
        page: int = 1,
        per_page: int = 10,
        filters: Mapping[str, str] | None = None,
        match_all: bool = False,
    ) -> PageSlice:
        """Return pages ordered by id.

        Args:
            page: 1-based page number.
            per_page: Page size.
            filters: Mapping of searchable field to substring.
            match_all: Require every filter to match instead of any.
        """
        raise NotImplementedError
