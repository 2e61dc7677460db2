"""Unit tests for block ordering, path derivation and payload validation."""

from datetime import datetime, timezone

import pytest

from app.adapters.pages.base import CmsPage
from app.adapters.pages.in_memory import InMemoryPageRepository
from app.core.errors import ValidationAppError
from app.services.cms_content import (
    derive_path,
    present_content,
    present_page,
    validate_page_payload,
)


class TestPresentContent:
    """Test read-time block ordering."""

    def test_sorts_by_order(self) -> None:
        content = [{"type": "B", "order": 2}, {"type": "A", "order": 1}]

        assert [b["type"] for b in present_content(content)] == ["A", "B"]

    def test_equal_orders_keep_insertion_order(self) -> None:
        content = [
            {"type": "X", "order": 1},
            {"type": "Y", "order": 1},
            {"type": "W", "order": 0},
            {"type": "Z", "order": 1},
        ]

        assert [b["type"] for b in present_content(content)] == ["W", "X", "Y", "Z"]

    def test_does_not_mutate_stored_sequence(self) -> None:
        content = [{"type": "B", "order": 2}, {"type": "A", "order": 1}]

        present_content(content)

        assert [b["type"] for b in content] == ["B", "A"]

    @pytest.mark.parametrize(
        "content",
        [
            None,
            {"root": {"props": {}}},
            "plain text",
            [{"type": "A"}, {"type": "B", "order": 1}],
            [{"type": "A", "order": True}],
            ["not-a-block"],
        ],
    )
    def test_passes_through_non_block_content(self, content) -> None:
        assert present_content(content) == content

    def test_empty_list(self) -> None:
        assert present_content([]) == []

    def test_present_page_orders_content(self) -> None:
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        page = CmsPage(
            id=1,
            slug="home",
            path="/home",
            title="Home",
            content=[{"type": "B", "order": 2}, {"type": "A", "order": 1}],
            meta={"description": "Front page"},
            created_at=now,
            updated_at=now,
        )

        presented = present_page(page)

        assert presented["content"][0]["type"] == "A"
        assert presented["path"] == "/home"
        assert presented["meta"] == {"description": "Front page"}


@pytest.mark.parametrize(
    "slug, expected",
    [("about", "/about"), ("/about", "/about"), ("/", "/"), ("docs/faq", "/docs/faq")],
)
def test_derive_path(slug: str, expected: str) -> None:
    assert derive_path(slug) == expected


class TestValidatePagePayload:
    """Test write-time validation."""

    @pytest.fixture
    def repository(self) -> InMemoryPageRepository:
        return InMemoryPageRepository()

    def _fields(self, repository, payload, **kwargs) -> dict[str, list[str]]:
        with pytest.raises(ValidationAppError) as exc_info:
            validate_page_payload(payload, repository=repository, **kwargs)
        assert exc_info.value.code == "validation_failed"
        return exc_info.value.details["fields"]

    def test_valid_payload(self, repository) -> None:
        data = validate_page_payload(
            {
                "slug": "landing",
                "title": "Landing",
                "content": [
                    {"type": "Hero", "order": 2, "props": {"headline": "Hi"}},
                    {"type": "Heading", "order": 1, "anchor": "top"},
                ],
                "meta": {"og:title": "Landing"},
            },
            repository=repository,
        )

        assert data.slug == "landing"
        assert data.path is None
        # Stored order is the submitted order; unknown keys survive.
        assert data.content == [
            {"type": "Hero", "order": 2, "props": {"headline": "Hi"}},
            {"type": "Heading", "order": 1, "anchor": "top"},
        ]
        assert data.meta == {"og:title": "Landing"}

    def test_missing_required_fields(self, repository) -> None:
        fields = self._fields(repository, {})

        assert set(fields) == {"slug", "title"}

    def test_block_missing_order(self, repository) -> None:
        fields = self._fields(
            repository,
            {"slug": "a", "title": "A", "content": [{"type": "Hero", "order": 1}, {"type": "Text"}]},
        )

        assert list(fields) == ["content.1.order"]

    @pytest.mark.parametrize(
        "block, field",
        [
            ({"type": "", "order": 1}, "content.0.type"),
            ({"type": 7, "order": 1}, "content.0.type"),
            ({"order": 1}, "content.0.type"),
            ({"type": "A", "order": "1"}, "content.0.order"),
            ({"type": "A", "order": 1.5}, "content.0.order"),
            ({"type": "A", "order": True}, "content.0.order"),
            ({"type": "A", "order": 1, "props": ["x"]}, "content.0.props"),
        ],
    )
    def test_malformed_blocks(self, repository, block: dict, field: str) -> None:
        fields = self._fields(repository, {"slug": "a", "title": "A", "content": [block]})

        assert field in fields

    def test_content_must_be_a_list(self, repository) -> None:
        fields = self._fields(repository, {"slug": "a", "title": "A", "content": {"type": "A"}})

        assert "content" in fields

    def test_meta_must_be_a_mapping(self, repository) -> None:
        fields = self._fields(repository, {"slug": "a", "title": "A", "meta": ["x"]})

        assert "meta" in fields

    def test_length_limits(self, repository) -> None:
        fields = self._fields(repository, {"slug": "s" * 192, "title": "t" * 192})

        assert set(fields) == {"slug", "title"}
        validate_page_payload({"slug": "s" * 191, "title": "t" * 191}, repository=repository)

    def test_slug_must_be_unique(self, repository) -> None:
        repository.create({"slug": "home", "path": "/home", "title": "Home"})

        fields = self._fields(repository, {"slug": "home", "title": "Other"})

        assert fields == {"slug": ["The slug has already been taken."]}

    def test_slug_uniqueness_ignores_page_being_updated(self, repository) -> None:
        page = repository.create({"slug": "home", "path": "/home", "title": "Home"})

        data = validate_page_payload(
            {"slug": "home", "title": "Home v2"}, repository=repository, ignore_id=page.id
        )

        assert data.title == "Home v2"

    def test_path_must_be_unique(self, repository) -> None:
        repository.create({"slug": "home", "path": "/", "title": "Home"})

        fields = self._fields(repository, {"slug": "index", "path": "/", "title": "Index"})

        assert "path" in fields

    def test_errors_are_collected_together(self, repository) -> None:
        repository.create({"slug": "home", "path": "/home", "title": "Home"})

        fields = self._fields(
            repository, {"slug": "home", "content": [{"type": "A"}]}
        )

        assert set(fields) == {"slug", "title", "content.0.order"}

    def test_non_object_body(self, repository) -> None:
        fields = self._fields(repository, [{"slug": "a"}])

        assert "body" in fields

    def test_supplied_path_is_normalized(self, repository) -> None:
        data = validate_page_payload(
            {"slug": "about", "path": "about", "title": "About"}, repository=repository
        )

        assert data.path == "/about"

    def test_path_uniqueness_checks_normalized_value(self, repository) -> None:
        repository.create({"slug": "about", "path": "/about", "title": "About"})

        fields = self._fields(repository, {"slug": "about-us", "path": "about", "title": "About"})

        assert fields == {"path": ["The path has already been taken."]}

    def test_normalized_path_length_limit(self, repository) -> None:
        fields = self._fields(repository, {"slug": "a", "path": "p" * 191, "title": "A"})

        assert "path" in fields

    def test_data_content_fills_omitted_content(self, repository) -> None:
        data = validate_page_payload(
            {
                "slug": "landing",
                "title": "Landing",
                "data": {"root": {"props": {}}, "content": [{"type": "Hero", "order": 1}]},
            },
            repository=repository,
        )

        assert data.content == [{"type": "Hero", "order": 1}]
        assert data.data == {"root": {"props": {}}, "content": [{"type": "Hero", "order": 1}]}

    def test_data_content_blocks_are_validated(self, repository) -> None:
        fields = self._fields(
            repository,
            {"slug": "a", "title": "A", "data": {"content": [{"type": "Hero"}]}},
        )

        assert list(fields) == ["data.content.0.order"]

    @pytest.mark.parametrize(
        "document, field",
        [
            ({"root": ["x"]}, "data.root"),
            ({"zones": "main"}, "data.zones"),
            ({"content": {"type": "Hero"}}, "data.content"),
            ("not-a-document", "data"),
        ],
    )
    def test_malformed_data(self, repository, document, field: str) -> None:
        fields = self._fields(repository, {"slug": "a", "title": "A", "data": document})

        assert field in fields
