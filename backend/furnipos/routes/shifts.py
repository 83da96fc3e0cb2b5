# Overview: Flask API routes for cashier shifts; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission
from ..errors import ServiceError
from ..extensions import db
from ..permissions import Permissions
from ..services import notification_service, shift_service


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.get("/current")
@require_auth
@require_permission(Permissions.SHIFT_OWN)
def current_shift_route():
    shift = shift_service.get_current_shift(g.current_user)
    return jsonify({"shift": shift.to_dict() if shift else None}), 200


@shifts_bp.post("/open")
@require_auth
@require_permission(Permissions.SHIFT_OWN)
def open_shift_route():
    """
    Request body:
    {
        "exchange_rate": 12650,
        "opening_balance_uzs": 500000,
        "opening_balance_usd_cents": 0
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        shift, events = shift_service.open_shift(g.current_user, data)
        body = {"shift": shift.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to open shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.post("/<int:shift_id>/close")
@require_auth
@require_permission(Permissions.SHIFT_OWN)
def close_shift_route(shift_id: int):
    try:
        shift, events = shift_service.close_shift(g.current_user, shift_id)
        body = {"shift": shift.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 200

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to close shift")
        return jsonify({"error": "Internal server error"}), 500


@shifts_bp.get("")
@require_auth
@require_permission(Permissions.SHIFT_VIEW_ALL)
def list_shifts_route():
    try:
        shifts = shift_service.list_shifts(request.args.to_dict())
        return jsonify({"shifts": [shift.to_dict() for shift in shifts]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
