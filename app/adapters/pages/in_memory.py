"""In-memory CMS page repository.

Notes:
- Per-process only; records are lost on restart.
- Thread-safe: uniqueness checks and writes for ``slug`` and ``path`` happen
  under the same lock, so of two colliding concurrent writes exactly one
  succeeds and the other raises ``ConflictAppError``.
- Returned records are copies; mutating them does not touch the store.
"""

from __future__ import annotations

import copy
import itertools
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from app.adapters.pages.base import (
    SEARCHABLE_FIELDS,
    AbstractPageRepository,
    CmsPage,
    PageSlice,
)
from app.core.errors import ConflictAppError, NotFoundAppError

_UNIQUE_FIELDS = ("slug", "path")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _not_found(key_name: str, key: Any) -> NotFoundAppError:
    return NotFoundAppError(
        code="not_found",
        message="CMS page not found.",
        details={"entity": "cms_page", "key": f"{key_name}={key}"},
    )


class InMemoryPageRepository(AbstractPageRepository):
    """Dict-backed page table with unique indexes on slug and path."""

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._pages: dict[int, CmsPage] = {}
        self._index: dict[str, dict[str, int]] = {name: {} for name in _UNIQUE_FIELDS}

    def _lookup(self, index_name: str, value: str) -> CmsPage:
        with self._lock:
            page_id = self._index[index_name].get(value)
            if page_id is None:
                raise _not_found(index_name, value)
            return copy.deepcopy(self._pages[page_id])

    def get(self, page_id: int) -> CmsPage:
        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                raise _not_found("id", page_id)
            return copy.deepcopy(page)

    def get_by_slug(self, slug: str) -> CmsPage:
        return self._lookup("slug", slug)

    def get_by_path(self, path: str) -> CmsPage:
        return self._lookup("path", path)

    def _taken(self, index_name: str, value: str, ignore_id: int | None) -> bool:
        with self._lock:
            owner = self._index[index_name].get(value)
            return owner is not None and owner != ignore_id

    def slug_taken(self, slug: str, *, ignore_id: int | None = None) -> bool:
        return self._taken("slug", slug, ignore_id)

    def path_taken(self, path: str, *, ignore_id: int | None = None) -> bool:
        return self._taken("path", path, ignore_id)

    def _assert_unique(self, fields: Mapping[str, Any], ignore_id: int | None) -> None:
        for name in _UNIQUE_FIELDS:
            value = fields.get(name)
            if value is not None and self._taken(name, value, ignore_id):
                raise ConflictAppError(
                    code="unique_constraint_violation",
                    message=f"The {name} has already been taken.",
                    details={"entity": "cms_page", "field": name},
                )

    def create(self, fields: Mapping[str, Any]) -> CmsPage:
        with self._lock:
            self._assert_unique(fields, None)
            now = self._clock()
            page = CmsPage(
                id=next(self._ids),
                slug=fields["slug"],
                path=fields["path"],
                title=fields["title"],
                content=copy.deepcopy(fields.get("content")),
                meta=copy.deepcopy(fields.get("meta")),
                data=copy.deepcopy(fields.get("data")),
                created_at=now,
                updated_at=now,
            )
            self._pages[page.id] = page
            for name in _UNIQUE_FIELDS:
                self._index[name][getattr(page, name)] = page.id
            return copy.deepcopy(page)

    def update(self, page_id: int, fields: Mapping[str, Any]) -> CmsPage:
        with self._lock:
            page = self._pages.get(page_id)
            if page is None:
                raise _not_found("id", page_id)
            self._assert_unique(fields, page_id)

            for name in _UNIQUE_FIELDS:
                if name in fields and fields[name] != getattr(page, name):
                    del self._index[name][getattr(page, name)]
                    self._index[name][fields[name]] = page_id

            for name in ("slug", "path", "title", "content", "meta", "data"):
                if name in fields:
                    setattr(page, name, copy.deepcopy(fields[name]))
            page.updated_at = self._clock()
            return copy.deepcopy(page)

    def delete(self, page_id: int) -> None:
        with self._lock:
            page = self._pages.pop(page_id, None)
            if page is None:
                raise _not_found("id", page_id)
            for name in _UNIQUE_FIELDS:
                self._index[name].pop(getattr(page, name), None)

    def paginate(
        self,
        *,
        page: int = 1,
        per_page: int = 10,
        filters: Mapping[str, str] | None = None,
        match_all: bool = False,
    ) -> PageSlice:
        page = max(1, page)
        per_page = max(1, per_page)
        criteria = {
            name: value.lower()
            for name, value in (filters or {}).items()
            if name in SEARCHABLE_FIELDS and value
        }

        def matches(record: CmsPage) -> bool:
            if not criteria:
                return True
            hits = (needle in str(getattr(record, name)).lower() for name, needle in criteria.items())
            return all(hits) if match_all else any(hits)

        with self._lock:
            selected = [p for _, p in sorted(self._pages.items()) if matches(p)]
            start = (page - 1) * per_page
            items = copy.deepcopy(selected[start:start + per_page])

        return PageSlice(items=items, total=len(selected), page=page, per_page=per_page)
