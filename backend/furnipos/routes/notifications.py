# Overview: Polling endpoint over the notification outbox.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import notification_service


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def poll_route():
    """
    GET /api/notifications?room=room:stock&after_id=42

    Clients keep the last id they saw and pass it back as after_id.
    """
    try:
        events = notification_service.list_events(
            request.args.get("room"),
            after_id=request.args.get("after_id", 0, type=int),
            limit=request.args.get("limit", 100, type=int),
        )
        return jsonify({"events": [event.to_dict() for event in events]}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
