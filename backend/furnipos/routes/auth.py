# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/furnipos/routes/auth.py
"""
Authentication API routes

- Opaque bearer tokens (see session_service)
- Users are created by the Owner only (POST /api/admin/users)
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import ServiceError, UnauthorizedError
from ..extensions import db
from ..permissions import ROLE_LABELS
from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _user_payload(user) -> dict:
    return {
        "user": user.to_dict(),
        "role": user.role,
        "role_label": ROLE_LABELS.get(user.role, user.role),
        "permissions": permission_service.get_effective_permissions(user),
        "permission_source": permission_service.permission_source(user),
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Unknown user, inactive user and wrong password all return the same 401.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("Failed login for username=%s", username)
            raise UnauthorizedError("Invalid credentials")

        session, token = session_service.create_session(
            user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        payload = _user_payload(user)
        payload["token"] = token
        payload["expires_at"] = session.to_dict()["expires_at"]
        return jsonify(payload), 200

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify(_user_payload(g.current_user)), 200


@auth_bp.get("/login-users")
def login_users_route():
    """Public: who can log in (name and role only)."""
    users = auth_service.list_login_users()
    return jsonify({"users": [user.to_public_dict() for user in users]}), 200


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    try:
        data = request.get_json(silent=True) or {}
        auth_service.change_password(
            g.current_user,
            data.get("current_password"),
            data.get("new_password"),
        )
        return jsonify({"message": "Password changed"}), 200

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to change password")
        return jsonify({"error": "Internal server error"}), 500
