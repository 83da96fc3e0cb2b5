# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and user administration.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters
- Inactive users cannot authenticate
- The Owner's role can never be changed
"""

import bcrypt
from flask import current_app

from ..errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ..extensions import db
from ..models import User
from ..permissions import Role, ALL_ROLES, validate_permission_code
from furnipos.time_utils import utcnow
from . import session_service


MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(BadRequestError):
    """Raised when password doesn't meet strength requirements."""


class UserAdminError(BadRequestError):
    """Invalid user administration request."""


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """Validate then hash with bcrypt (cost from BCRYPT_ROUNDS, default 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_custom_permissions(custom_permissions):
    """
    None or [] clears the override (role defaults apply).

    Any unknown code is rejected.
    """
    if custom_permissions is None:
        return None
    if not isinstance(custom_permissions, list):
        raise UserAdminError("custom_permissions must be a list of permission codes")
    unknown = [code for code in custom_permissions if not validate_permission_code(code)]
    if unknown:
        raise UserAdminError("Unknown permission codes", details={"codes": unknown})
    if not custom_permissions:
        return None
    return sorted(set(custom_permissions))


def create_user(
    username: str,
    password: str,
    full_name: str,
    role: str,
    phone: str | None = None,
    custom_permissions: list | None = None,
) -> User:
    """
    Create a new user.

    Raises ConflictError on a duplicate username and UserAdminError on an
    unknown role or invalid input.
    """
    username = (username or "").strip()
    full_name = (full_name or "").strip()
    if not username:
        raise UserAdminError("username is required")
    if not full_name:
        raise UserAdminError("full_name is required")
    if role not in ALL_ROLES:
        raise UserAdminError(f"Unknown role: {role}")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        full_name=full_name,
        phone=phone,
        password_hash=hash_password(password),
        role=role,
        custom_permissions=_normalize_custom_permissions(custom_permissions),
        is_active=True,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns the User on success (updating last_login_at), None otherwise.
    Unknown, inactive and wrong-password cases are indistinguishable.
    """
    user = db.session.query(User).filter(
        User.username == (username or "").strip(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def list_login_users() -> list[User]:
    """Active users for the login picker."""
    return db.session.query(User).filter(User.is_active.is_(True)).order_by(User.full_name).all()


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_user(user_id: int, data: dict) -> User:
    """
    Update profile fields, role and permission overrides.

    An Owner's role is immutable (403). Passing custom_permissions as
    null or [] clears the override.
    """
    user = get_user(user_id)

    if "role" in data and data["role"] != user.role:
        if user.role == Role.OWNER:
            raise ForbiddenError("Cannot change the Owner's role")
        if data["role"] not in ALL_ROLES:
            raise UserAdminError(f"Unknown role: {data['role']}")
        user.role = data["role"]

    if "full_name" in data:
        full_name = (data["full_name"] or "").strip()
        if not full_name:
            raise UserAdminError("full_name cannot be empty")
        user.full_name = full_name

    if "phone" in data:
        user.phone = data["phone"]

    if "custom_permissions" in data:
        user.custom_permissions = _normalize_custom_permissions(data["custom_permissions"])

    db.session.commit()
    return user


def set_user_active(user_id: int, is_active: bool) -> User:
    """Soft-delete or restore. Deactivation revokes every open session."""
    user = get_user(user_id)
    if user.role == Role.OWNER and not is_active:
        raise ForbiddenError("Cannot deactivate the Owner")

    user.is_active = is_active
    db.session.commit()

    if not is_active:
        session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")
    return user


def reset_password(user_id: int, new_password: str) -> User:
    user = get_user(user_id)
    user.password_hash = hash_password(new_password)
    db.session.commit()
    session_service.revoke_all_user_sessions(user.id, reason="Password reset")
    return user


def change_password(user: User, current_password: str, new_password: str) -> User:
    if not verify_password(current_password or "", user.password_hash):
        raise UserAdminError("Current password is incorrect")
    user.password_hash = hash_password(new_password)
    db.session.commit()
    return user
