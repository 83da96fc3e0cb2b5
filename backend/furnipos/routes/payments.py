# Overview: Flask API routes for payments, expenses and cash registers.

"""
Money in, money out.

- Payments and expenses each append exactly one cash register operation.
- Register balances are running totals maintained on every append.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission, require_any_permission, owner_only, service_cashier
from ..errors import ServiceError
from ..extensions import db
from ..permissions import Permissions
from ..services import expense_service, notification_service, payment_service, register_service


payments_bp = Blueprint("payments", __name__, url_prefix="/api")


def _service_error(e: ServiceError):
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


# =============================================================================
# Payments
# =============================================================================

@payments_bp.post("/payments")
@require_auth
@require_permission(Permissions.PAYMENT_RECEIVE)
def create_payment_route():
    """
    Request body:
    {
        "sale_id": 1,               // and/or customer_id
        "customer_id": 2,
        "amount_uzs": 100000,
        "amount_usd_cents": 0,
        "payment_type": "CASH_UZS",
        "source": "NEW_SALE" | "OLD_DEBT",
        "cash_register": "SALES"    // honored for the Owner only
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        payment, events = payment_service.create_payment(g.current_user, data)
        body = {"payment": payment.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/sales/<int:sale_id>/payments")
@require_auth
@require_permission(Permissions.PAYMENT_RECEIVE)
def sale_payments_route(sale_id: int):
    payments = payment_service.list_payments_for_sale(sale_id)
    return jsonify({"payments": [payment.to_dict() for payment in payments]}), 200


# =============================================================================
# Expenses
# =============================================================================

@payments_bp.post("/expenses")
@require_auth
@require_permission(Permissions.EXPENSE_CREATE)
def create_expense_route():
    try:
        data = request.get_json(silent=True) or {}
        expense, events = expense_service.create_expense(g.current_user, data)
        body = {"expense": expense.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/expenses")
@require_auth
@require_any_permission(Permissions.EXPENSE_CREATE, Permissions.EXPENSE_VIEW_ALL)
def list_expenses_route():
    try:
        expenses = expense_service.list_expenses(g.current_user, request.args.to_dict())
        return jsonify({"expenses": [expense.to_dict() for expense in expenses]}), 200
    except ServiceError as e:
        return _service_error(e)


@payments_bp.get("/expense-categories")
@require_auth
def list_expense_categories_route():
    categories = expense_service.list_expense_categories()
    return jsonify({"categories": [category.to_dict() for category in categories]}), 200


@payments_bp.post("/expense-categories")
@require_auth
@owner_only
def create_expense_category_route():
    try:
        data = request.get_json(silent=True) or {}
        category = expense_service.create_expense_category(data.get("name"))
        return jsonify({"category": category.to_dict()}), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create expense category")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Cash registers
# =============================================================================

@payments_bp.get("/registers")
@require_auth
@require_any_permission(Permissions.REPORT_ALL, Permissions.PAYMENT_RECEIVE)
def register_balances_route():
    return jsonify({"registers": register_service.get_register_balances()}), 200


@payments_bp.get("/registers/ops")
@require_auth
@require_any_permission(Permissions.REPORT_ALL, Permissions.PAYMENT_RECEIVE)
def register_ops_route():
    try:
        ops = register_service.list_register_ops(
            register_type=request.args.get("register_type"),
            limit=request.args.get("limit", 50, type=int),
        )
        return jsonify({"operations": [op.to_dict() for op in ops]}), 200
    except ServiceError as e:
        return _service_error(e)


@payments_bp.get("/registers/service")
@require_auth
@service_cashier
def service_register_route():
    """SERVICE register balance with its latest operations."""
    ops = register_service.list_register_ops(
        register_type=register_service.REGISTER_SERVICE,
        limit=request.args.get("limit", 20, type=int),
    )
    return jsonify({
        "register": register_service.get_register_balance(register_service.REGISTER_SERVICE),
        "operations": [op.to_dict() for op in ops],
    }), 200
