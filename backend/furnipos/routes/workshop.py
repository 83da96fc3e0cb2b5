# Overview: Flask API routes for workshop tasks; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_any_permission, master, owner_only
from ..errors import ServiceError
from ..extensions import db
from ..permissions import Permissions
from ..services import notification_service, workshop_service
from ..validation import positive_int


workshop_bp = Blueprint("workshop", __name__, url_prefix="/api/workshop")


@workshop_bp.get("/tasks")
@require_auth
@require_any_permission(Permissions.WORKSHOP_VIEW, Permissions.WORKSHOP_MANAGE)
def list_tasks_route():
    try:
        tasks = workshop_service.list_tasks(g.current_user, request.args.get("status"))
        return jsonify({"tasks": tasks}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@workshop_bp.post("/tasks/<int:task_id>/status")
@require_auth
@master
def update_status_route(task_id: int):
    """
    Request body:
    {"status": "IN_PROGRESS" | "COMPLETED", "notes": "optional"}
    """
    try:
        data = request.get_json(silent=True) or {}
        task, events = workshop_service.update_status(
            g.current_user, task_id, data.get("status"), data.get("notes")
        )
        body = {"task": task.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 200

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update workshop task")
        return jsonify({"error": "Internal server error"}), 500


@workshop_bp.post("/tasks/<int:task_id>/assign")
@require_auth
@owner_only
def assign_task_route(task_id: int):
    try:
        data = request.get_json(silent=True) or {}
        assigned_to_id = positive_int(data.get("assigned_to_id"), "assigned_to_id")
        task, events = workshop_service.assign_task(g.current_user, task_id, assigned_to_id)
        body = {"task": task.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 200

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to assign workshop task")
        return jsonify({"error": "Internal server error"}), 500
