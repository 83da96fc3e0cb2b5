# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/furnipos/routes/admin.py
"""
User administration (Owner only).

Users are never hard-deleted; DELETE deactivates.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, owner_only
from ..errors import ServiceError
from ..extensions import db
from ..permissions import ALL_ROLES, ROLE_LABELS, DEFAULT_ROLE_PERMISSIONS, get_permission_groups
from ..services import auth_service, permission_service


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _admin_user_dict(user) -> dict:
    data = user.to_dict()
    data["effective_permissions"] = permission_service.get_effective_permissions(user)
    data["permission_source"] = permission_service.permission_source(user)
    return data


def _error(e: ServiceError):
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


@admin_bp.get("/users")
@require_auth
@owner_only
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"users": [_admin_user_dict(user) for user in users]}), 200


@admin_bp.post("/users")
@require_auth
@owner_only
def create_user_route():
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            full_name=data.get("full_name"),
            role=data.get("role"),
            phone=data.get("phone"),
            custom_permissions=data.get("custom_permissions"),
        )
        current_app.logger.info("User created id=%s role=%s", user.id, user.role)
        return jsonify({"user": _admin_user_dict(user)}), 201

    except ServiceError as e:
        return _error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/users/<int:user_id>")
@require_auth
@owner_only
def get_user_route(user_id: int):
    try:
        return jsonify({"user": _admin_user_dict(auth_service.get_user(user_id))}), 200
    except ServiceError as e:
        return _error(e)


@admin_bp.patch("/users/<int:user_id>")
@require_auth
@owner_only
def update_user_route(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.update_user(user_id, data)
        return jsonify({"user": _admin_user_dict(user)}), 200

    except ServiceError as e:
        return _error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@owner_only
def deactivate_user_route(user_id: int):
    try:
        user = auth_service.set_user_active(user_id, False)
        return jsonify({"user": _admin_user_dict(user)}), 200
    except ServiceError as e:
        return _error(e)


@admin_bp.post("/users/<int:user_id>/activate")
@require_auth
@owner_only
def activate_user_route(user_id: int):
    try:
        user = auth_service.set_user_active(user_id, True)
        return jsonify({"user": _admin_user_dict(user)}), 200
    except ServiceError as e:
        return _error(e)


@admin_bp.post("/users/<int:user_id>/reset-password")
@require_auth
@owner_only
def reset_password_route(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        auth_service.reset_password(user_id, data.get("password"))
        return jsonify({"message": "Password reset"}), 200

    except ServiceError as e:
        return _error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/permissions")
@require_auth
@owner_only
def list_permissions_route():
    """Permission vocabulary grouped for the UI, plus the default role table."""
    return jsonify({
        "groups": get_permission_groups(),
        "roles": [
            {
                "role": role,
                "label": ROLE_LABELS[role],
                "permissions": sorted(DEFAULT_ROLE_PERMISSIONS[role]),
            }
            for role in ALL_ROLES
        ],
    }), 200
