"""Role / permission store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Permission:
    """A named capability registered under a guard."""

    id: int
    name: str
    guard: str


@dataclass(frozen=True)
class Role:
    """A named group of capabilities registered under a guard."""

    id: int
    name: str
    guard: str


class AbstractPermissionStore(ABC):
    """Interface for role/permission storage.

    ``(name, guard)`` is unique for roles and for permissions. Every linking
    method is idempotent and returns True only when a new association row was
    created.
    """

    @abstractmethod
    def find_permission(self, name: str, guard: str) -> Permission | None:
        raise NotImplementedError

    @abstractmethod
    def find_role(self, name: str, guard: str) -> Role | None:
        raise NotImplementedError

    @abstractmethod
    def find_or_create_permission(self, name: str, guard: str) -> Permission:
        raise NotImplementedError

    @abstractmethod
    def find_or_create_role(self, name: str, guard: str) -> Role:
        raise NotImplementedError

    @abstractmethod
    def give_permission_to_role(self, role_id: int, permission_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def revoke_permission_from_role(self, role_id: int, permission_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def assign_role(self, user_id: int, role_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def remove_role(self, user_id: int, role_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def give_permission_to_user(self, user_id: int, permission_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def revoke_permission_from_user(self, user_id: int, permission_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def role_ids_for_user(self, user_id: int) -> frozenset[int]:
        raise NotImplementedError

    @abstractmethod
    def role_has_permission(self, role_id: int, permission_id: int) -> bool:
        raise NotImplementedError

    @abstractmethod
    def user_has_direct_permission(self, user_id: int, permission_id: int) -> bool:
        raise NotImplementedError
