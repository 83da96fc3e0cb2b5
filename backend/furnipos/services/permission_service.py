# Overview: User-bound wrappers around the pure permission model.

from ..models import User
from ..permissions import (
    CustomOverride,
    Role,
    get_all_permission_codes,
    has_user_permission,
    resolve_permissions,
)


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""

    def __init__(self, permission_code: str):
        super().__init__(f"Missing permission: {permission_code}")
        self.permission_code = permission_code


def get_effective_permissions(user: User) -> list[str]:
    """Sorted effective codes. The Owner gets the full vocabulary."""
    if user.role == Role.OWNER:
        return sorted(get_all_permission_codes())
    return sorted(resolve_permissions(user.role, user.custom_permissions).permissions)


def permission_source(user: User) -> str:
    """'role' when defaults apply, 'custom' when an override replaces them."""
    effective = resolve_permissions(user.role, user.custom_permissions)
    return "custom" if isinstance(effective, CustomOverride) else "role"


def user_has_permission(user: User, permission_code: str) -> bool:
    return has_user_permission(user.role, permission_code, user.custom_permissions)


def require_permission(user: User, permission_code: str) -> None:
    if not user_has_permission(user, permission_code):
        raise PermissionDeniedError(permission_code)
