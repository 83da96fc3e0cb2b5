# Overview: Service-layer operations for stock; encapsulates business logic and database work.

"""
Stock Invariants

- Stock is a mutable quantity per (product_id, warehouse_id) StockItem row.
- Rows are created zero-based on first reference, then adjusted in place.
- Every adjustment is a single UPDATE statement evaluated by the database
  (quantity = quantity + n). Python never reads, modifies and writes back.
- Decrements are conditional (WHERE quantity >= n); a miss means
  insufficient stock and nothing was changed.
- New quantities are read back after the UPDATE, so threshold decisions
  use the value this transaction produced.

Primitives below never commit. Workflows wrap them in run_with_retry and
commit once, so multi-row operations (transfer) are a single transaction.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import select, update

from ..errors import BadRequestError, NotFoundError
from ..extensions import db
from ..models import Product, StockItem, StockMovement, Transfer, Warehouse
from ..validation import positive_int, non_negative_int, optional_int, MAX_QUANTITY
from .concurrency import begin_immediate, run_with_retry
from .notification_service import notify, ROOM_STOCK


MOVEMENT_WRITE_OFF = "WRITE_OFF"
MOVEMENT_RETURN = "RETURN"
MOVEMENT_SET = "SET"


class StockError(BadRequestError):
    """Raised for invalid or impossible stock operations."""


# =============================================================================
# Primitives
# =============================================================================

def get_or_create_stock_item(product_id: int, warehouse_id: int) -> StockItem:
    item = db.session.query(StockItem).filter_by(
        product_id=product_id,
        warehouse_id=warehouse_id,
    ).first()
    if item is None:
        item = StockItem(product_id=product_id, warehouse_id=warehouse_id, quantity=0)
        db.session.add(item)
        db.session.flush()
    return item


def get_quantity(product_id: int, warehouse_id: int) -> int:
    """Live quantity; 0 when no row exists yet."""
    quantity = db.session.execute(
        select(StockItem.quantity).where(
            StockItem.product_id == product_id,
            StockItem.warehouse_id == warehouse_id,
        )
    ).scalar_one_or_none()
    return quantity or 0


def _stock_row(product_id: int, warehouse_id: int):
    return (
        StockItem.product_id == product_id,
        StockItem.warehouse_id == warehouse_id,
    )


def increment_stock(product_id: int, warehouse_id: int, quantity: int) -> int:
    """Add quantity and return the new level."""
    get_or_create_stock_item(product_id, warehouse_id)
    db.session.execute(
        update(StockItem)
        .where(*_stock_row(product_id, warehouse_id))
        .values(quantity=StockItem.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    return get_quantity(product_id, warehouse_id)


def decrement_stock(product_id: int, warehouse_id: int, quantity: int) -> int:
    """
    Subtract quantity if available and return the new level.

    Raises StockError (nothing changed) when on-hand < quantity.
    """
    get_or_create_stock_item(product_id, warehouse_id)
    result = db.session.execute(
        update(StockItem)
        .where(*_stock_row(product_id, warehouse_id), StockItem.quantity >= quantity)
        .values(quantity=StockItem.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise StockError(
            "Insufficient stock",
            details={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "available": get_quantity(product_id, warehouse_id),
                "requested": quantity,
            },
        )
    return get_quantity(product_id, warehouse_id)


def set_stock_quantity(product_id: int, warehouse_id: int, quantity: int) -> int:
    get_or_create_stock_item(product_id, warehouse_id)
    db.session.execute(
        update(StockItem)
        .where(*_stock_row(product_id, warehouse_id))
        .values(quantity=quantity)
        .execution_options(synchronize_session=False)
    )
    return quantity


def low_stock_notification(product: Product, warehouse_id: int, quantity: int):
    """
    stock:low notification when quantity is at or below the product's
    threshold. A threshold of 0 never alerts.
    """
    if not current_app.config.get("LOW_STOCK_ALERTS_ENABLED", True):
        return None
    threshold = product.min_stock_alert or 0
    if threshold <= 0 or quantity > threshold:
        return None
    return notify(ROOM_STOCK, "stock:low", {
        "product_id": product.id,
        "product_name": product.name,
        "warehouse_id": warehouse_id,
        "quantity": quantity,
        "min_stock_alert": threshold,
    })


def stock_updated_notification(warehouse_id: int):
    return notify(ROOM_STOCK, "stock:updated", {"warehouse_id": warehouse_id})


def require_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def require_warehouse(warehouse_id: int) -> Warehouse:
    warehouse = db.session.get(Warehouse, warehouse_id)
    if not warehouse:
        raise NotFoundError("Warehouse not found", details={"warehouse_id": warehouse_id})
    return warehouse


# =============================================================================
# Workflows
# =============================================================================

def transfer_stock(actor, data: dict):
    """
    Move quantity of one product between warehouses.

    Source decrement, destination increment and the Transfer record commit
    together or not at all. Returns (transfer, notifications).
    """
    product_id = positive_int(data.get("product_id"), "product_id")
    from_warehouse_id = positive_int(data.get("from_warehouse_id"), "from_warehouse_id")
    to_warehouse_id = positive_int(data.get("to_warehouse_id"), "to_warehouse_id")
    quantity = positive_int(data.get("quantity"), "quantity", MAX_QUANTITY)

    if from_warehouse_id == to_warehouse_id:
        raise StockError("Cannot transfer to the same warehouse")

    def _op():
        begin_immediate()
        require_product(product_id)
        require_warehouse(from_warehouse_id)
        require_warehouse(to_warehouse_id)

        decrement_stock(product_id, from_warehouse_id, quantity)
        increment_stock(product_id, to_warehouse_id, quantity)

        transfer = Transfer(
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            product_id=product_id,
            quantity=quantity,
            notes=data.get("notes"),
            created_by_user_id=actor.id,
        )
        db.session.add(transfer)
        db.session.commit()
        return transfer

    transfer = run_with_retry(_op)
    events = [
        stock_updated_notification(from_warehouse_id),
        stock_updated_notification(to_warehouse_id),
    ]
    return transfer, events


def _record_movement(actor, movement_type, product_id, warehouse_id, quantity, quantity_after, reason):
    movement = StockMovement(
        movement_type=movement_type,
        warehouse_id=warehouse_id,
        product_id=product_id,
        quantity=quantity,
        quantity_after=quantity_after,
        reason=reason,
        user_id=actor.id,
    )
    db.session.add(movement)
    db.session.flush()
    return movement


def write_off(actor, data: dict):
    """Remove damaged or lost goods. Insufficient stock fails with nothing changed."""
    product_id = positive_int(data.get("product_id"), "product_id")
    warehouse_id = positive_int(data.get("warehouse_id"), "warehouse_id")
    quantity = positive_int(data.get("quantity"), "quantity", MAX_QUANTITY)
    reason = (data.get("reason") or "").strip() or None

    def _op():
        begin_immediate()
        product = require_product(product_id)
        require_warehouse(warehouse_id)
        new_qty = decrement_stock(product_id, warehouse_id, quantity)
        movement = _record_movement(
            actor, MOVEMENT_WRITE_OFF, product_id, warehouse_id, quantity, new_qty, reason
        )
        db.session.commit()
        return movement, product, new_qty

    movement, product, new_qty = run_with_retry(_op)
    events = [stock_updated_notification(warehouse_id)]
    low = low_stock_notification(product, warehouse_id, new_qty)
    if low:
        events.append(low)
    return movement, events


def return_to_stock(actor, data: dict):
    """Put goods back on stock. No upper bound."""
    product_id = positive_int(data.get("product_id"), "product_id")
    warehouse_id = positive_int(data.get("warehouse_id"), "warehouse_id")
    quantity = positive_int(data.get("quantity"), "quantity", MAX_QUANTITY)
    reason = (data.get("reason") or "").strip() or None

    def _op():
        begin_immediate()
        require_product(product_id)
        require_warehouse(warehouse_id)
        new_qty = increment_stock(product_id, warehouse_id, quantity)
        movement = _record_movement(
            actor, MOVEMENT_RETURN, product_id, warehouse_id, quantity, new_qty, reason
        )
        db.session.commit()
        return movement

    movement = run_with_retry(_op)
    return movement, [stock_updated_notification(warehouse_id)]


def set_stock(actor, data: dict):
    """Owner correction to an absolute quantity."""
    product_id = positive_int(data.get("product_id"), "product_id")
    warehouse_id = positive_int(data.get("warehouse_id"), "warehouse_id")
    quantity = non_negative_int(data.get("quantity"), "quantity", MAX_QUANTITY)
    reason = (data.get("reason") or "").strip() or None

    def _op():
        begin_immediate()
        require_product(product_id)
        require_warehouse(warehouse_id)
        set_stock_quantity(product_id, warehouse_id, quantity)
        movement = _record_movement(
            actor, MOVEMENT_SET, product_id, warehouse_id, quantity, quantity, reason
        )
        db.session.commit()
        return movement

    movement = run_with_retry(_op)
    return movement, [stock_updated_notification(warehouse_id)]


def get_stock(warehouse_id=None, category_id=None, low_stock_only: bool = False) -> list[dict]:
    """Stock rows joined with product info, optionally filtered."""
    warehouse_id = optional_int(warehouse_id, "warehouse_id")
    category_id = optional_int(category_id, "category_id")

    query = (
        db.session.query(StockItem, Product)
        .join(Product, Product.id == StockItem.product_id)
        .filter(Product.is_active.is_(True))
    )
    if warehouse_id is not None:
        query = query.filter(StockItem.warehouse_id == warehouse_id)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if low_stock_only:
        query = query.filter(
            Product.min_stock_alert > 0,
            StockItem.quantity <= Product.min_stock_alert,
        )

    rows = query.order_by(Product.name, StockItem.warehouse_id).all()
    return [
        {
            **item.to_dict(),
            "product_name": product.name,
            "sku": product.sku,
            "min_stock_alert": product.min_stock_alert,
            "is_low": product.min_stock_alert > 0 and item.quantity <= product.min_stock_alert,
        }
        for item, product in rows
    ]


def list_movements(warehouse_id=None, movement_type: str | None = None, limit: int = 100) -> list[StockMovement]:
    query = db.session.query(StockMovement)
    if warehouse_id is not None:
        query = query.filter(StockMovement.warehouse_id == optional_int(warehouse_id, "warehouse_id"))
    if movement_type:
        query = query.filter(StockMovement.movement_type == movement_type)
    limit = max(1, min(int(limit), 500))
    return query.order_by(StockMovement.id.desc()).limit(limit).all()


def list_transfers(limit: int = 100) -> list[Transfer]:
    limit = max(1, min(int(limit), 500))
    return db.session.query(Transfer).order_by(Transfer.id.desc()).limit(limit).all()
