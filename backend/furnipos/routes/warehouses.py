# Overview: Flask API routes for warehouses and stock; parses input and returns JSON responses.

"""
Warehouse and stock routes.

Every stock mutation is one service transaction; notifications are
dispatched only after it commits.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_permission, owner_only, sales_cashier
from ..errors import ServiceError
from ..extensions import db
from ..permissions import Permissions
from ..services import (
    catalog_service,
    count_service,
    currency_service,
    notification_service,
    purchase_service,
    stock_service,
)


warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")


def _service_error(e: ServiceError):
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


def _internal_error(action: str):
    db.session.rollback()
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@warehouses_bp.get("")
@require_auth
@require_permission(Permissions.WAREHOUSE_READ)
def list_warehouses_route():
    warehouses = catalog_service.list_warehouses()
    return jsonify({"warehouses": [warehouse.to_dict() for warehouse in warehouses]}), 200


@warehouses_bp.post("")
@require_auth
@owner_only
def create_warehouse_route():
    try:
        data = request.get_json(silent=True) or {}
        warehouse = catalog_service.create_warehouse(data)
        return jsonify({"warehouse": warehouse.to_dict()}), 201
    except ServiceError as e:
        return _service_error(e)
    except Exception:
        return _internal_error("create warehouse")


@warehouses_bp.get("/stock")
@require_auth
@require_permission(Permissions.WAREHOUSE_READ)
def stock_route():
    try:
        rows = stock_service.get_stock(
            warehouse_id=request.args.get("warehouse_id"),
            category_id=request.args.get("category_id"),
            low_stock_only=request.args.get("low_stock") == "true",
        )
        return jsonify({"stock": rows}), 200
    except ServiceError as e:
        return _service_error(e)


@warehouses_bp.get("/movements")
@require_auth
@require_permission(Permissions.WAREHOUSE_READ)
def movements_route():
    try:
        movements = stock_service.list_movements(
            warehouse_id=request.args.get("warehouse_id"),
            movement_type=request.args.get("movement_type"),
            limit=request.args.get("limit", 100, type=int),
        )
        return jsonify({"movements": [movement.to_dict() for movement in movements]}), 200
    except ServiceError as e:
        return _service_error(e)


# =============================================================================
# Purchases
# =============================================================================

@warehouses_bp.post("/purchases")
@require_auth
@sales_cashier
@require_permission(Permissions.WAREHOUSE_PURCHASE)
def create_purchase_route():
    try:
        data = request.get_json(silent=True) or {}
        rate = currency_service.get_current_rate()
        purchase, events = purchase_service.create_purchase(g.current_user, data, rate)
        body = {"purchase": purchase.to_dict(include_lines=True)}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        return _internal_error("create purchase")


@warehouses_bp.get("/purchases")
@require_auth
@require_permission(Permissions.WAREHOUSE_READ)
def list_purchases_route():
    purchases = purchase_service.list_purchases(limit=request.args.get("limit", 100, type=int))
    return jsonify({"purchases": [purchase.to_dict() for purchase in purchases]}), 200


@warehouses_bp.get("/purchases/<int:purchase_id>")
@require_auth
@require_permission(Permissions.WAREHOUSE_READ)
def get_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase(purchase_id)
        return jsonify({"purchase": purchase.to_dict(include_lines=True)}), 200
    except ServiceError as e:
        return _service_error(e)


# =============================================================================
# Transfers, write-offs, returns, corrections
# =============================================================================

@warehouses_bp.post("/transfers")
@require_auth
@require_permission(Permissions.WAREHOUSE_TRANSFER)
def transfer_route():
    try:
        data = request.get_json(silent=True) or {}
        transfer, events = stock_service.transfer_stock(g.current_user, data)
        body = {"transfer": transfer.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        return _internal_error("transfer stock")


@warehouses_bp.get("/transfers")
@require_auth
@require_permission(Permissions.WAREHOUSE_READ)
def list_transfers_route():
    transfers = stock_service.list_transfers(limit=request.args.get("limit", 100, type=int))
    return jsonify({"transfers": [transfer.to_dict() for transfer in transfers]}), 200


@warehouses_bp.post("/write-off")
@require_auth
@owner_only
def write_off_route():
    try:
        data = request.get_json(silent=True) or {}
        movement, events = stock_service.write_off(g.current_user, data)
        body = {"movement": movement.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        return _internal_error("write off stock")


@warehouses_bp.post("/return")
@require_auth
@require_permission(Permissions.WAREHOUSE_RETURN)
def return_route():
    try:
        data = request.get_json(silent=True) or {}
        movement, events = stock_service.return_to_stock(g.current_user, data)
        body = {"movement": movement.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        return _internal_error("return stock")


@warehouses_bp.post("/set-stock")
@require_auth
@owner_only
def set_stock_route():
    try:
        data = request.get_json(silent=True) or {}
        movement, events = stock_service.set_stock(g.current_user, data)
        body = {"movement": movement.to_dict()}
        notification_service.dispatch(events)
        return jsonify(body), 200

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        return _internal_error("set stock")


# =============================================================================
# Inventory checks
# =============================================================================

@warehouses_bp.post("/inventory-checks")
@require_auth
@owner_only
def create_inventory_check_route():
    try:
        data = request.get_json(silent=True) or {}
        check = count_service.create_inventory_check(g.current_user, data)
        return jsonify({"inventory_check": check.to_dict(include_lines=True)}), 201

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        return _internal_error("create inventory check")


@warehouses_bp.post("/inventory-checks/<int:check_id>/apply")
@require_auth
@owner_only
def apply_inventory_check_route(check_id: int):
    try:
        check, events = count_service.apply_inventory_check(g.current_user, check_id)
        body = {"inventory_check": check.to_dict(include_lines=True)}
        notification_service.dispatch(events)
        return jsonify(body), 200

    except ServiceError as e:
        return _service_error(e)
    except Exception:
        return _internal_error("apply inventory check")


@warehouses_bp.get("/inventory-checks")
@require_auth
@require_permission(Permissions.WAREHOUSE_INVENTORY)
def list_inventory_checks_route():
    checks = count_service.list_inventory_checks()
    return jsonify({"inventory_checks": [check.to_dict() for check in checks]}), 200


@warehouses_bp.get("/inventory-checks/<int:check_id>")
@require_auth
@require_permission(Permissions.WAREHOUSE_INVENTORY)
def get_inventory_check_route(check_id: int):
    try:
        check = count_service.get_inventory_check(check_id)
        return jsonify({"inventory_check": check.to_dict(include_lines=True)}), 200
    except ServiceError as e:
        return _service_error(e)
