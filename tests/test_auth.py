"""Unit tests for identity resolution and capability checks."""

import asyncio
from unittest.mock import Mock

import pytest

from app.adapters.permissions.in_memory import InMemoryPermissionStore
from app.core.auth import ensure_capability, require_capability
from app.core.errors import AuthorizationAppError
from app.services.authorizer import (
    CMS_EDITOR_CAPABILITIES,
    Authorizer,
    apply_role_assignments,
    parse_role_assignments,
    seed_default_roles,
)
from app.services.identity import (
    Identity,
    client_address,
    extract_bearer_token,
    parse_api_tokens,
    resolve_identity,
)


def _request(headers: dict[str, str] | None = None, host: str | None = "192.0.2.10") -> Mock:
    request = Mock()
    request.headers = headers or {}
    request.client = Mock(host=host) if host is not None else None
    return request


class TestParseAPITokens:
    """Test bearer token table parsing."""

    def test_parse_pairs(self) -> None:
        assert parse_api_tokens("tok-a:1,tok-b:2") == {"tok-a": 1, "tok-b": 2}

    def test_parse_trims_whitespace(self) -> None:
        assert parse_api_tokens(" tok-a : 1 ,  tok-b:2 ") == {"tok-a": 1, "tok-b": 2}

    def test_parse_none_and_empty(self) -> None:
        assert parse_api_tokens(None) == {}
        assert parse_api_tokens("") == {}

    def test_parse_skips_malformed_entries(self) -> None:
        assert parse_api_tokens("no-id,:5,tok:abc,ok:7") == {"ok": 7}


class TestIdentityResolution:
    """Test request → identity derivation."""

    def test_bearer_token_resolves_user(self) -> None:
        identity = resolve_identity(_request({"Authorization": "Bearer tok"}), {"tok": 9})

        assert identity == Identity(user_id=9, network_address="192.0.2.10")
        assert identity.rate_limit_key() == "user:9"
        assert identity.address_key() == "ip:192.0.2.10"

    def test_unknown_token_is_anonymous(self) -> None:
        identity = resolve_identity(_request({"Authorization": "Bearer nope"}), {"tok": 9})

        assert identity.is_authenticated is False
        assert identity.rate_limit_key() == "ip:192.0.2.10"

    def test_missing_client_falls_back_to_unknown_address(self) -> None:
        identity = resolve_identity(_request(host=None), {})

        assert identity.rate_limit_key() == "ip:unknown"
        assert client_address(_request(host="")) == "unknown"

    @pytest.mark.parametrize(
        "header, expected",
        [
            ("Bearer abc", "abc"),
            ("bearer   abc ", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
            (None, None),
        ],
    )
    def test_extract_bearer_token(self, header: str | None, expected: str | None) -> None:
        assert extract_bearer_token(header) == expected


class TestAuthorizer:
    """Test role / permission evaluation."""

    @pytest.fixture
    def store(self) -> InMemoryPermissionStore:
        store = InMemoryPermissionStore()
        seed_default_roles(store)
        return store

    def test_role_grants_capability(self, store: InMemoryPermissionStore) -> None:
        store.assign_role(1, store.find_role("editor", "api").id)
        authorizer = Authorizer(store)

        assert authorizer.authorize(Identity(1, "x"), "editor") is True
        assert authorizer.authorize(Identity(1, "x"), "super_admin") is False

    def test_direct_permission_grants_capability(self, store: InMemoryPermissionStore) -> None:
        store.give_permission_to_user(5, store.find_permission("editor", "api").id)

        assert Authorizer(store).authorize(Identity(5, "x"), "editor") is True

    def test_default_deny(self, store: InMemoryPermissionStore) -> None:
        authorizer = Authorizer(store)

        assert authorizer.authorize(Identity(None, "x"), "editor") is False
        assert authorizer.authorize(Identity(2, "x"), "editor") is False
        assert authorizer.authorize(Identity(2, "x"), "unknown_capability") is False

    def test_guard_scopes_permissions(self, store: InMemoryPermissionStore) -> None:
        store.assign_role(1, store.find_role("editor", "api").id)

        assert Authorizer(store, guard="web").authorize(Identity(1, "x"), "editor") is False

    def test_super_admin_passes_cms_check(self, store: InMemoryPermissionStore) -> None:
        store.assign_role(3, store.find_role("super_admin", "api").id)

        assert Authorizer(store).authorize_any(Identity(3, "x"), CMS_EDITOR_CAPABILITIES) is True

    def test_revoked_role_permission_denies(self, store: InMemoryPermissionStore) -> None:
        role = store.find_role("editor", "api")
        permission = store.find_permission("editor", "api")
        store.assign_role(1, role.id)

        assert store.revoke_permission_from_role(role.id, permission.id) is True
        assert Authorizer(store).authorize(Identity(1, "x"), "editor") is False

    def test_revoked_direct_permission_denies(self, store: InMemoryPermissionStore) -> None:
        permission = store.find_permission("editor", "api")
        store.give_permission_to_user(5, permission.id)

        assert store.revoke_permission_from_user(5, permission.id) is True
        assert store.revoke_permission_from_user(5, permission.id) is False
        assert Authorizer(store).authorize(Identity(5, "x"), "editor") is False


class TestSeedingAndAssignments:
    """Test idempotent role/permission setup."""

    def test_seed_is_idempotent(self) -> None:
        store = InMemoryPermissionStore()
        seed_default_roles(store)
        role = store.find_role("editor", "api")
        permission = store.find_permission("editor", "api")

        seed_default_roles(store)

        assert store.find_role("editor", "api") == role
        assert store.find_permission("editor", "api") == permission
        assert store.give_permission_to_role(role.id, permission.id) is False

    def test_relinking_does_not_duplicate(self) -> None:
        store = InMemoryPermissionStore()
        role = store.find_or_create_role("editor", "api")

        assert store.assign_role(1, role.id) is True
        assert store.assign_role(1, role.id) is False
        assert store.role_ids_for_user(1) == frozenset({role.id})

        assert store.remove_role(1, role.id) is True
        assert store.remove_role(1, role.id) is False

    def test_parse_role_assignments(self) -> None:
        assert parse_role_assignments("1:editor, 3:super_admin,bad,x:editor,4:") == [
            (1, "editor"),
            (3, "super_admin"),
        ]

    def test_apply_role_assignments_skips_unknown_roles(self) -> None:
        store = InMemoryPermissionStore()
        seed_default_roles(store)

        apply_role_assignments(store, [(1, "editor"), (2, "ghost")])

        assert len(store.role_ids_for_user(1)) == 1
        assert store.role_ids_for_user(2) == frozenset()


class TestCapabilityDependency:
    """Test the FastAPI-facing helpers."""

    def test_ensure_capability_raises_for_anonymous(self) -> None:
        store = InMemoryPermissionStore()
        seed_default_roles(store)

        with pytest.raises(AuthorizationAppError) as exc_info:
            ensure_capability(Authorizer(store), Identity(None, "x"), ("editor",))

        assert exc_info.value.code == "not_authorized"
        assert exc_info.value.details == {"capabilities": ["editor"]}

    def test_require_capability_dependency_allows_editor(self) -> None:
        store = InMemoryPermissionStore()
        seed_default_roles(store)
        store.assign_role(1, store.find_role("editor", "api").id)
        dependency = require_capability("editor")

        # Should not raise
        asyncio.run(dependency(identity=Identity(1, "x"), authorizer=Authorizer(store)))

    def test_require_capability_needs_arguments(self) -> None:
        with pytest.raises(ValueError):
            require_capability()
