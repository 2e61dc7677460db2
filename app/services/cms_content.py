"""CMS content pipeline: payload validation on write, block ordering on read.

Stored content keeps whatever order the editor submitted; ordering by the
``order`` key is applied only when a page is presented.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from app.adapters.pages.base import AbstractPageRepository, CmsPage
from app.core.errors import ValidationAppError
from app.schemas.cms_page import MAX_STRING_LENGTH, PageIn


@dataclass(frozen=True)
class PageInput:
    """Validated page fields ready for persistence.

    ``path``, ``content``, ``meta`` and ``data`` are None when the payload
    omitted them.
    """

    slug: str
    title: str
    path: str | None
    content: list[dict[str, Any]] | None
    meta: dict[str, Any] | None
    data: dict[str, Any] | None = None


def _is_block(item: Any) -> bool:
    if not isinstance(item, Mapping):
        return False
    order = item.get("order")
    return isinstance(order, int) and not isinstance(order, bool)


def present_content(content: Any) -> Any:
    """Return blocks sorted by ``order`` for display.

    ``sorted`` is stable, so blocks sharing an ``order`` keep their submitted
    relative position. Anything that is not a list of blocks (None, a dict,
    a list with an unordered entry) is returned unchanged.
    """
    if not isinstance(content, list) or not all(_is_block(item) for item in content):
        return content
    return sorted(content, key=lambda block: block["order"])


def present_page(page: CmsPage) -> dict[str, Any]:
    """Build the public representation of a page."""
    return {
        "id": page.id,
        "slug": page.slug,
        "path": page.path,
        "title": page.title,
        "content": present_content(page.content),
        "meta": page.meta,
        "data": page.data,
        "created_at": page.created_at,
        "updated_at": page.updated_at,
    }


def derive_path(slug: str) -> str:
    """Derive a URL path from a slug: keep a leading "/" or prepend one."""
    if slug.startswith("/"):
        return slug
    return f"/{slug}"


def _error_key(loc: tuple[Any, ...], *, content_from_data: bool = False) -> str:
    parts = [str(part) for part in loc]
    if content_from_data and parts and parts[0] == "content":
        parts = ["data", *parts]
    return ".".join(parts) or "body"


def _collect_schema_errors(
    exc: ValidationError, *, content_from_data: bool = False
) -> dict[str, list[str]]:
    fields: dict[str, list[str]] = {}
    for error in exc.errors():
        key = _error_key(tuple(error["loc"]), content_from_data=content_from_data)
        fields.setdefault(key, []).append(error["msg"])
    return fields


def _builder_content(payload: Mapping[str, Any]) -> list[Any] | None:
    """Return ``data.content`` when it should stand in for an omitted ``content``."""
    if payload.get("content") is not None:
        return None
    data = payload.get("data")
    if not isinstance(data, Mapping):
        return None
    content = data.get("content")
    return content if isinstance(content, list) else None


def validation_failed(fields: dict[str, list[str]]) -> ValidationAppError:
    return ValidationAppError(
        code="validation_failed",
        message="The given data was invalid.",
        details={"fields": fields},
    )


def validate_page_payload(
    payload: Any,
    *,
    repository: AbstractPageRepository,
    ignore_id: int | None = None,
) -> PageInput:
    """Validate a create/update payload and check slug/path uniqueness.

    All problems are collected before raising, so the caller gets the full
    per-field error list in one response.

    A supplied ``path`` is normalized with :func:`derive_path` before its
    uniqueness check. When ``content`` is omitted and the page-builder
    document carries ``data.content``, those blocks become the page content
    and are validated like submitted blocks (errors keyed ``data.content.*``).

    Args:
        payload: Decoded JSON body.
        repository: Page store used for the uniqueness checks.
        ignore_id: Id of the page being updated (excluded from uniqueness).

    Returns:
        PageInput with normalized path and blocks.

    Raises:
        ValidationAppError: With ``details.fields`` mapping field paths
            (e.g. ``content.1.order``) to messages.
    """
    if not isinstance(payload, Mapping):
        raise validation_failed({"body": ["The request body must be a JSON object."]})

    candidate = dict(payload)
    builder_content = _builder_content(payload)
    if builder_content is not None:
        candidate["content"] = builder_content

    fields: dict[str, list[str]] = {}
    parsed: PageIn | None = None
    try:
        parsed = PageIn.model_validate(candidate)
    except ValidationError as exc:
        fields = _collect_schema_errors(exc, content_from_data=builder_content is not None)

    slug = payload.get("slug")
    if "slug" not in fields and isinstance(slug, str):
        if repository.slug_taken(slug, ignore_id=ignore_id):
            fields.setdefault("slug", []).append("The slug has already been taken.")

    path = payload.get("path")
    if "path" not in fields and isinstance(path, str) and path:
        path = derive_path(path)
        if len(path) > MAX_STRING_LENGTH:
            fields.setdefault("path", []).append(
                f"The path may not be greater than {MAX_STRING_LENGTH} characters."
            )
        elif repository.path_taken(path, ignore_id=ignore_id):
            fields.setdefault("path", []).append("The path has already been taken.")

    if fields or parsed is None:
        raise validation_failed(fields)

    content = None
    if parsed.content is not None:
        content = [block.model_dump(exclude_unset=True) for block in parsed.content]

    return PageInput(
        slug=parsed.slug,
        title=parsed.title,
        path=derive_path(parsed.path) if parsed.path else None,
        content=content,
        meta=parsed.meta,
        data=parsed.data.model_dump(exclude_unset=True) if parsed.data is not None else None,
    )
