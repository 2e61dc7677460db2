"""In-memory role / permission store.

Thread-safe: all reads and writes of the record tables and association sets
happen under one lock, so find-or-create and link operations never produce
duplicate rows under concurrency.
"""

from __future__ import annotations

import itertools
import threading

from app.adapters.permissions.base import AbstractPermissionStore, Permission, Role


class InMemoryPermissionStore(AbstractPermissionStore):
    """Role/permission tables plus three id-pair association sets."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._permissions: dict[tuple[str, str], Permission] = {}
        self._roles: dict[tuple[str, str], Role] = {}
        self._role_permissions: set[tuple[int, int]] = set()
        self._user_roles: set[tuple[int, int]] = set()
        self._user_permissions: set[tuple[int, int]] = set()

    def find_permission(self, name: str, guard: str) -> Permission | None:
        with self._lock:
            return self._permissions.get((name, guard))

    def find_role(self, name: str, guard: str) -> Role | None:
        with self._lock:
            return self._roles.get((name, guard))

    def find_or_create_permission(self, name: str, guard: str) -> Permission:
        with self._lock:
            permission = self._permissions.get((name, guard))
            if permission is None:
                permission = Permission(id=next(self._ids), name=name, guard=guard)
                self._permissions[(name, guard)] = permission
            return permission

    def find_or_create_role(self, name: str, guard: str) -> Role:
        with self._lock:
            role = self._roles.get((name, guard))
            if role is None:
                role = Role(id=next(self._ids), name=name, guard=guard)
                self._roles[(name, guard)] = role
            return role

    def _link(self, table: set[tuple[int, int]], pair: tuple[int, int]) -> bool:
        with self._lock:
            if pair in table:
                return False
            table.add(pair)
            return True

    def _unlink(self, table: set[tuple[int, int]], pair: tuple[int, int]) -> bool:
        with self._lock:
            if pair not in table:
                return False
            table.discard(pair)
            return True

    def give_permission_to_role(self, role_id: int, permission_id: int) -> bool:
        return self._link(self._role_permissions, (role_id, permission_id))

    def revoke_permission_from_role(self, role_id: int, permission_id: int) -> bool:
        return self._unlink(self._role_permissions, (role_id, permission_id))

    def assign_role(self, user_id: int, role_id: int) -> bool:
        return self._link(self._user_roles, (user_id, role_id))

    def remove_role(self, user_id: int, role_id: int) -> bool:
        return self._unlink(self._user_roles, (user_id, role_id))

    def give_permission_to_user(self, user_id: int, permission_id: int) -> bool:
        return self._link(self._user_permissions, (user_id, permission_id))

    def revoke_permission_from_user(self, user_id: int, permission_id: int) -> bool:
        return self._unlink(self._user_permissions, (user_id, permission_id))

    def role_ids_for_user(self, user_id: int) -> frozenset[int]:
        with self._lock:
            return frozenset(role_id for uid, role_id in self._user_roles if uid == user_id)

    def role_has_permission(self, role_id: int, permission_id: int) -> bool:
        with self._lock:
            return (role_id, permission_id) in self._role_permissions

    def user_has_direct_permission(self, user_id: int, permission_id: int) -> bool:
        with self._lock:
            return (user_id, permission_id) in self._user_permissions

