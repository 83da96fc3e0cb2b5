# Overview: Flask API routes for employees and salary advances.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission, require_any_permission
from ..errors import ServiceError
from ..extensions import db
from ..permissions import Permissions
from ..services import employee_service, notification_service


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("")
@require_auth
@require_permission(Permissions.EMPLOYEE_MANAGE)
def list_employees_route():
    return jsonify({"employees": employee_service.list_employees()}), 200


@employees_bp.get("/<int:user_id>/advances")
@require_auth
@require_any_permission(Permissions.EMPLOYEE_MANAGE, Permissions.EMPLOYEE_ADVANCE)
def list_advances_route(user_id: int):
    try:
        advances = employee_service.list_advances(user_id)
        return jsonify({"advances": [advance.to_dict() for advance in advances]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@employees_bp.post("/<int:user_id>/advances")
@require_auth
@require_permission(Permissions.EMPLOYEE_ADVANCE)
def add_advance_route(user_id: int):
    """
    Request body:
    {"amount_uzs": 300000, "cash_register": "SALES" | "SERVICE", "notes": "optional"}
    """
    try:
        data = request.get_json(silent=True) or {}
        advance, events = employee_service.add_advance(g.current_user, user_id, data)
        body = {"advance": advance.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record advance")
        return jsonify({"error": "Internal server error"}), 500
