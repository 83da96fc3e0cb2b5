# Overview: Service-layer operations for inventory checks (physical counts).

"""
Inventory checks are two-phase:

1. create: snapshot expected (live) vs actual (counted) per product,
   difference = actual - expected. Live stock is untouched.
2. apply: overwrite live stock with the counted values and mark the check
   COMPLETED, both in one transaction. A COMPLETED check cannot be applied
   again.
"""

from __future__ import annotations

from ..errors import BadRequestError, NotFoundError
from ..extensions import db
from ..models import InventoryCheck, InventoryCheckLine
from ..validation import positive_int, non_negative_int, MAX_QUANTITY
from furnipos.time_utils import utcnow
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from . import stock_service


CHECK_STATUS_DRAFT = "DRAFT"
CHECK_STATUS_COMPLETED = "COMPLETED"


class CountError(BadRequestError):
    pass


def create_inventory_check(actor, data: dict) -> InventoryCheck:
    warehouse_id = positive_int(data.get("warehouse_id"), "warehouse_id")
    raw_items = data.get("items", data.get("lines"))
    if not isinstance(raw_items, list) or not raw_items:
        raise CountError("At least one counted item is required")

    counted = {}
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise CountError("Counted items must be objects")
        product_id = positive_int(raw.get("product_id"), "product_id")
        if product_id in counted:
            raise CountError("Each product may be counted only once", details={"product_id": product_id})
        counted[product_id] = non_negative_int(raw.get("actual_qty"), "actual_qty", MAX_QUANTITY)

    def _op():
        begin_immediate()
        stock_service.require_warehouse(warehouse_id)

        check = InventoryCheck(
            warehouse_id=warehouse_id,
            status=CHECK_STATUS_DRAFT,
            notes=data.get("notes"),
            created_by_user_id=actor.id,
        )
        db.session.add(check)
        db.session.flush()

        for product_id, actual_qty in counted.items():
            stock_service.require_product(product_id)
            expected_qty = stock_service.get_quantity(product_id, warehouse_id)
            db.session.add(InventoryCheckLine(
                check_id=check.id,
                product_id=product_id,
                expected_qty=expected_qty,
                actual_qty=actual_qty,
                difference=actual_qty - expected_qty,
            ))

        db.session.commit()
        return check

    return run_with_retry(_op)


def apply_inventory_check(actor, check_id: int):
    """Returns (check, notifications)."""
    def _op():
        begin_immediate()
        check = lock_for_update(db.session.query(InventoryCheck).filter_by(id=check_id)).first()
        if not check:
            raise NotFoundError("Inventory check not found")
        if check.status == CHECK_STATUS_COMPLETED:
            raise CountError("Inventory check already completed")

        for line in check.lines:
            stock_service.set_stock_quantity(line.product_id, check.warehouse_id, line.actual_qty)

        check.status = CHECK_STATUS_COMPLETED
        check.completed_at = utcnow()
        check.applied_by_user_id = actor.id
        db.session.commit()
        return check

    check = run_with_retry(_op)
    return check, [stock_service.stock_updated_notification(check.warehouse_id)]


def get_inventory_check(check_id: int) -> InventoryCheck:
    check = db.session.get(InventoryCheck, check_id)
    if not check:
        raise NotFoundError("Inventory check not found")
    return check


def list_inventory_checks(limit: int = 50) -> list[InventoryCheck]:
    limit = max(1, min(int(limit), 200))
    return db.session.query(InventoryCheck).order_by(InventoryCheck.id.desc()).limit(limit).all()
