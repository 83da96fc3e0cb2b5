# Overview: Flask API routes for customers and suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_permission, sales_cashier
from ..errors import ServiceError
from ..extensions import db
from ..permissions import Permissions
from ..services import catalog_service, payment_service
from ..validation import optional_int


customers_bp = Blueprint("customers", __name__, url_prefix="/api")


def _service_error(e: ServiceError):
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


@customers_bp.get("/customers")
@require_auth
@require_permission(Permissions.CUSTOMER_READ)
def list_customers_route():
    try:
        result = catalog_service.list_customers(
            search=request.args.get("search"),
            page=optional_int(request.args.get("page"), "page") or 1,
            limit=optional_int(request.args.get("limit"), "limit") or 50,
        )
        return jsonify(result), 200
    except ServiceError as e:
        return _service_error(e)


@customers_bp.get("/customers/<int:customer_id>")
@require_auth
@require_permission(Permissions.CUSTOMER_READ)
def get_customer_route(customer_id: int):
    try:
        return jsonify({"customer": catalog_service.get_customer(customer_id).to_dict()}), 200
    except ServiceError as e:
        return _service_error(e)


@customers_bp.post("/customers")
@require_auth
@require_permission(Permissions.CUSTOMER_CREATE)
def create_customer_route():
    try:
        data = request.get_json(silent=True) or {}
        customer = catalog_service.create_customer(data)
        return jsonify({"customer": customer.to_dict()}), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.patch("/customers/<int:customer_id>")
@require_auth
@require_permission(Permissions.CUSTOMER_UPDATE)
def update_customer_route(customer_id: int):
    try:
        data = request.get_json(silent=True) or {}
        customer = catalog_service.update_customer(customer_id, data)
        return jsonify({"customer": customer.to_dict()}), 200

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/customers/<int:customer_id>")
@require_auth
@require_permission(Permissions.CUSTOMER_DELETE)
def delete_customer_route(customer_id: int):
    try:
        customer = catalog_service.delete_customer(customer_id)
        return jsonify({"customer": customer.to_dict()}), 200
    except ServiceError as e:
        return _service_error(e)


@customers_bp.get("/customers/<int:customer_id>/payments")
@require_auth
@require_permission(Permissions.CUSTOMER_READ)
def customer_payments_route(customer_id: int):
    try:
        payments = payment_service.list_payments_for_customer(customer_id)
        return jsonify({"payments": [payment.to_dict() for payment in payments]}), 200
    except ServiceError as e:
        return _service_error(e)


@customers_bp.get("/suppliers")
@require_auth
@sales_cashier
def list_suppliers_route():
    suppliers = catalog_service.list_suppliers()
    return jsonify({"suppliers": [supplier.to_dict() for supplier in suppliers]}), 200


@customers_bp.post("/suppliers")
@require_auth
@sales_cashier
def create_supplier_route():
    try:
        data = request.get_json(silent=True) or {}
        supplier = catalog_service.create_supplier(data)
        return jsonify({"supplier": supplier.to_dict()}), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500
