# Overview: Permission system package.
# Re-exports all public APIs for backwards-compatible imports.

from .categories import PermissionCategory
from .definitions import Permissions, PERMISSION_DEFINITIONS
from .roles import Role, ALL_ROLES, ROLE_LABELS, DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    RoleDefault,
    CustomOverride,
    EffectivePermissions,
    resolve_permissions,
    get_user_permissions,
    has_user_permission,
    get_all_permission_codes,
    get_permission_groups,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "Permissions",
    "PERMISSION_DEFINITIONS",
    "Role",
    "ALL_ROLES",
    "ROLE_LABELS",
    "DEFAULT_ROLE_PERMISSIONS",
    "RoleDefault",
    "CustomOverride",
    "EffectivePermissions",
    "resolve_permissions",
    "get_user_permissions",
    "has_user_permission",
    "get_all_permission_codes",
    "get_permission_groups",
    "validate_permission_code",
]
