"""Capability checks against the role / permission graph.

An identity holds a capability when the capability is attached to it
directly or to any of its roles. Anonymous identities hold nothing.
"""

from __future__ import annotations

import logging
from typing import Iterable

from app.adapters.permissions.base import AbstractPermissionStore
from app.services.identity import Identity

logger = logging.getLogger(__name__)

SUPER_ADMIN = "super_admin"
EDITOR = "editor"

# Capabilities allowed to create, update and delete CMS pages.
CMS_EDITOR_CAPABILITIES: tuple[str, ...] = (SUPER_ADMIN, EDITOR)

# role name -> permission names granted by that role
DEFAULT_ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    SUPER_ADMIN: (SUPER_ADMIN,),
    EDITOR: (EDITOR,),
}


class Authorizer:
    """Evaluate capabilities for resolved identities."""

    def __init__(self, store: AbstractPermissionStore, *, guard: str = "api") -> None:
        self._store = store
        self._guard = guard

    @property
    def store(self) -> AbstractPermissionStore:
        return self._store

    @property
    def guard(self) -> str:
        return self._guard

    def authorize(self, identity: Identity, capability: str) -> bool:
        """Return True when ``identity`` holds ``capability``."""
        if identity.user_id is None:
            return False

        permission = self._store.find_permission(capability, self._guard)
        if permission is None:
            return False

        if self._store.user_has_direct_permission(identity.user_id, permission.id):
            return True

        return any(
            self._store.role_has_permission(role_id, permission.id)
            for role_id in self._store.role_ids_for_user(identity.user_id)
        )

    def authorize_any(self, identity: Identity, capabilities: Iterable[str]) -> bool:
        """Return True when ``identity`` holds at least one of ``capabilities``."""
        return any(self.authorize(identity, capability) for capability in capabilities)


def seed_default_roles(store: AbstractPermissionStore, *, guard: str = "api") -> None:
    """Create the built-in roles and permissions and link them.

    Safe to run any number of times: every step is find-or-create or
    insert-if-absent.
    """
    for role_name, permission_names in DEFAULT_ROLE_PERMISSIONS.items():
        role = store.find_or_create_role(role_name, guard)
        for permission_name in permission_names:
            permission = store.find_or_create_permission(permission_name, guard)
            if store.give_permission_to_role(role.id, permission.id):
                logger.info(
                    "authz.role_permission_linked",
                    extra={"role": role_name, "permission": permission_name, "guard": guard},
                )


def parse_role_assignments(assignments: str | None) -> list[tuple[int, str]]:
    """Parse comma-separated ``user_id:role`` pairs.

    Examples:
        >>> parse_role_assignments("1:super_admin, 2:editor")
        [(1, 'super_admin'), (2, 'editor')]
        >>> parse_role_assignments(None)
        []
    """
    if not assignments:
        return []

    parsed: list[tuple[int, str]] = []
    for entry in assignments.split(","):
        user_id, sep, role = entry.strip().partition(":")
        if not sep or not role.strip():
            continue
        try:
            parsed.append((int(user_id.strip()), role.strip()))
        except ValueError:
            continue
    return parsed


def apply_role_assignments(
    store: AbstractPermissionStore,
    assignments: Iterable[tuple[int, str]],
    *,
    guard: str = "api",
) -> None:
    """Attach configured roles to users; unknown role names are skipped."""
    for user_id, role_name in assignments:
        role = store.find_role(role_name, guard)
        if role is None:
            logger.warning(
                "authz.unknown_role",
                extra={"user_id": user_id, "role": role_name, "guard": guard},
            )
            continue
        store.assign_role(user_id, role.id)
