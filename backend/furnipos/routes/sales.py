# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/furnipos/routes/sales.py
"""
Sales API routes

SALE LIFECYCLE:
- POST /api/sales                  -> OPEN (optionally spawns a workshop task)
- POST /api/sales/<id>/complete    -> COMPLETED (decrements stock)
- POST /api/sales/<id>/cancel      -> CANCELLED (no stock effect)

The exchange rate is resolved once per request and handed to the service.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_any_permission
from ..errors import ServiceError
from ..extensions import db
from ..permissions import Permissions
from ..services import currency_service, notification_service, sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

_SALES_PERMISSIONS = (Permissions.SALE_PRODUCT, Permissions.SALE_SERVICE)


@sales_bp.post("")
@require_auth
@require_any_permission(*_SALES_PERMISSIONS)
def create_sale_route():
    """
    Create an OPEN sale.

    Request body:
    {
        "sale_type": "PRODUCT" | "SERVICE",
        "customer_id": 1,
        "warehouse_id": 1,
        "goes_to_workshop": false,
        "assigned_to_id": 4,
        "items": [
            {"product_id": 1, "quantity": 3, "price_uzs": 50000, "price_usd_cents": 400},
            {"service_name": "Cutting", "quantity": 1, "price_uzs": 20000}
        ]
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        rate = currency_service.get_current_rate()
        sale, events = sales_service.create_sale(g.current_user, data, rate)
        body = {"sale": sales_service.get_sale(sale.id)}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_any_permission(*_SALES_PERMISSIONS)
def list_sales_route():
    try:
        result = sales_service.list_sales(g.current_user, request.args.to_dict())
        return jsonify(result), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_any_permission(*_SALES_PERMISSIONS)
def get_sale_route(sale_id: int):
    try:
        return jsonify({"sale": sales_service.get_sale(sale_id)}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.post("/<int:sale_id>/complete")
@require_auth
@require_any_permission(*_SALES_PERMISSIONS)
def complete_sale_route(sale_id: int):
    try:
        sale, events = sales_service.complete_sale(g.current_user, sale_id)
        body = {"sale": sale.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 200

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to complete sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
@require_any_permission(*_SALES_PERMISSIONS)
def cancel_sale_route(sale_id: int):
    try:
        sale, events = sales_service.cancel_sale(g.current_user, sale_id)
        body = {"sale": sale.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 200

    except ServiceError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500
