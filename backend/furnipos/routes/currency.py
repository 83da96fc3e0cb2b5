# Overview: Flask API routes for exchange rates; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import optional_auth, require_auth
from ..errors import ServiceError
from ..extensions import db
from ..services import currency_service, notification_service


currency_bp = Blueprint("currency", __name__, url_prefix="/api/currency")


@currency_bp.get("/today")
@optional_auth
def today_route():
    """Public: today's UZS-per-USD rate, or null when not yet set."""
    rate = currency_service.get_today_rate()
    return jsonify({"rate": rate.to_dict() if rate else None}), 200


@currency_bp.get("/current")
@require_auth
def current_route():
    rate = currency_service.get_current_rate()
    return jsonify({"rate": rate.to_dict() if rate else None}), 200


@currency_bp.post("/rate")
@require_auth
def set_rate_route():
    try:
        data = request.get_json(silent=True) or {}
        rate, events = currency_service.set_rate(g.current_user, data.get("rate"))
        body = {"rate": rate.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 200

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to set exchange rate")
        return jsonify({"error": "Internal server error"}), 500


@currency_bp.get("/history")
@require_auth
def history_route():
    rates = currency_service.get_history()
    return jsonify({"rates": [rate.to_dict() for rate in rates]}), 200
