# Overview: Pure permission resolution and lookup helpers.

"""
Effective permission resolution.

A user's effective permissions are either the defaults of their role or a
custom override list that REPLACES those defaults entirely. The two cases
are kept as distinct types so an override is never confused with "use the
defaults". The Owner role bypasses resolution and is always granted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from .definitions import PERMISSION_DEFINITIONS
from .roles import Role, DEFAULT_ROLE_PERMISSIONS


@dataclass(frozen=True)
class RoleDefault:
    role: str

    @property
    def permissions(self) -> frozenset[str]:
        return DEFAULT_ROLE_PERMISSIONS.get(self.role, frozenset())


@dataclass(frozen=True)
class CustomOverride:
    codes: frozenset[str]

    @property
    def permissions(self) -> frozenset[str]:
        return self.codes


EffectivePermissions = Union[RoleDefault, CustomOverride]


def resolve_permissions(role: str, custom_permissions: Iterable[str] | None = None) -> EffectivePermissions:
    """
    Pick the permission source for a user.

    A present, non-empty override list wins; None or an empty list falls
    back to the role defaults.
    """
    if custom_permissions:
        return CustomOverride(frozenset(custom_permissions))
    return RoleDefault(role)


def get_user_permissions(role: str, custom_permissions: Iterable[str] | None = None) -> frozenset[str]:
    """Effective permission set for a role and optional override list."""
    return resolve_permissions(role, custom_permissions).permissions


def has_user_permission(role: str, permission: str, custom_permissions: Iterable[str] | None = None) -> bool:
    """Owner is always granted; everyone else needs the code in their effective set."""
    if role == Role.OWNER:
        return True
    return permission in get_user_permissions(role, custom_permissions)


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def get_permission_groups() -> list[dict]:
    """Permissions grouped by category, in definition order, for the admin UI."""
    groups: dict[str, list[dict]] = {}
    for code, name, description, category in PERMISSION_DEFINITIONS:
        groups.setdefault(category, []).append({"code": code, "name": name, "description": description})
    return [{"category": category, "permissions": perms} for category, perms in groups.items()]
