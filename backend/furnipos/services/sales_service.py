# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sale Workflow

CREATE:
- rate is resolved once by the caller and passed in; its value is frozen
  on the sale
- actors without product:price_below_min (the Owner always has it) may not
  price a product line below the product floor (first violation wins)
- line totals are price x quantity per currency, taken at face value; the
  sale totals are their sums and are never recomputed
- sale, lines and the optional workshop task are one transaction

COMPLETE:
- OPEN only; stock leaves the sale's warehouse through conditional
  decrements. Any line without enough stock rejects the whole completion
  and nothing is changed.

CANCEL:
- OPEN only; no stock effect

Every workflow returns (result, notifications); nothing is emitted here.
"""

from __future__ import annotations

from collections import OrderedDict

from ..errors import BadRequestError, ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Customer, Product, Sale, SaleLine, User, Warehouse, WorkshopTask
from ..permissions import Permissions, Role, has_user_permission
from ..validation import (
    positive_int,
    non_negative_int,
    optional_int,
    check_money_ceiling,
    MAX_AMOUNT_UZS,
    MAX_AMOUNT_USD_CENTS,
    MAX_QUANTITY,
)
from furnipos.time_utils import utcnow, parse_iso_date
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .document_service import next_document_number
from .notification_service import notify, ROOM_BOSS, ROOM_SALES, ROOM_WORKSHOP
from . import stock_service


SALE_TYPE_PRODUCT = "PRODUCT"
SALE_TYPE_SERVICE = "SERVICE"
SALE_TYPES = (SALE_TYPE_PRODUCT, SALE_TYPE_SERVICE)

SALE_STATUS_OPEN = "OPEN"
SALE_STATUS_COMPLETED = "COMPLETED"
SALE_STATUS_CANCELLED = "CANCELLED"
SALE_STATUS_RETURNED = "RETURNED"
SALE_STATUSES = (SALE_STATUS_OPEN, SALE_STATUS_COMPLETED, SALE_STATUS_CANCELLED, SALE_STATUS_RETURNED)

WORKSHOP_PENDING = "PENDING"
WORKSHOP_IN_PROGRESS = "IN_PROGRESS"
WORKSHOP_COMPLETED = "COMPLETED"

_SALE_TYPE_PERMISSION = {
    SALE_TYPE_PRODUCT: Permissions.SALE_PRODUCT,
    SALE_TYPE_SERVICE: Permissions.SALE_SERVICE,
}


class SaleError(BadRequestError):
    """Raised for invalid sale operations."""


def _parse_lines(raw_lines) -> list[dict]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise SaleError("At least one line item is required")

    lines = []
    for index, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise SaleError(f"Line {index + 1} must be an object")

        product_id = optional_int(raw.get("product_id"), "product_id")
        service_name = (raw.get("service_name") or "").strip() or None
        if product_id is None and service_name is None:
            raise SaleError(f"Line {index + 1} needs product_id or service_name")

        line = {
            "product_id": product_id,
            "service_name": service_name,
            "quantity": positive_int(raw.get("quantity"), "quantity", MAX_QUANTITY),
            "price_uzs": non_negative_int(raw.get("price_uzs", 0), "price_uzs", MAX_AMOUNT_UZS),
            "price_usd_cents": non_negative_int(
                raw.get("price_usd_cents", 0), "price_usd_cents", MAX_AMOUNT_USD_CENTS
            ),
            "assigned_to_id": optional_int(raw.get("assigned_to_id"), "assigned_to_id"),
        }
        check_money_ceiling(
            line["price_uzs"] * line["quantity"],
            line["price_usd_cents"] * line["quantity"],
            "line_total",
        )
        lines.append(line)
    return lines


def _needs_workshop(goes_to_workshop: bool, lines: list[dict]) -> bool:
    """Flagged by the caller, or any service line without a technician."""
    if goes_to_workshop:
        return True
    return any(
        line["product_id"] is None and line["assigned_to_id"] is None
        for line in lines
    )


def _check_price_floor(actor, product: Product, price_uzs: int) -> None:
    if has_user_permission(actor.role, Permissions.PRODUCT_PRICE_BELOW_MIN, actor.custom_permissions):
        return
    if price_uzs < product.min_price_uzs:
        raise ForbiddenError(
            f'"{product.name}" minimum price is {product.min_price_uzs} UZS; cannot sell below it',
            details={"product_id": product.id, "min_price_uzs": product.min_price_uzs},
        )


def create_sale(actor, data: dict, rate):
    """
    Create an OPEN sale with its lines (and workshop task when routed).

    rate: the ExchangeRate applicable to this request (resolved by caller).
    Returns (sale, notifications).
    """
    if rate is None:
        raise BadRequestError("No exchange rate set")

    sale_type = data.get("sale_type") or SALE_TYPE_PRODUCT
    if sale_type not in SALE_TYPES:
        raise SaleError(f"Unknown sale_type: {sale_type}")

    if not has_user_permission(actor.role, _SALE_TYPE_PERMISSION[sale_type], actor.custom_permissions):
        raise ForbiddenError(f"Not allowed to create {sale_type} sales")

    lines = _parse_lines(data.get("items", data.get("lines")))
    check_money_ceiling(
        sum(line["price_uzs"] * line["quantity"] for line in lines),
        sum(line["price_usd_cents"] * line["quantity"] for line in lines),
        "total",
    )
    customer_id = optional_int(data.get("customer_id"), "customer_id")
    warehouse_id = optional_int(data.get("warehouse_id"), "warehouse_id")
    assigned_to_id = optional_int(data.get("assigned_to_id"), "assigned_to_id")
    goes_to_workshop = _needs_workshop(bool(data.get("goes_to_workshop")), lines)
    notes = data.get("notes")

    def _op():
        begin_immediate()

        if customer_id is not None and not db.session.get(Customer, customer_id):
            raise NotFoundError("Customer not found")
        if warehouse_id is not None and not db.session.get(Warehouse, warehouse_id):
            raise NotFoundError("Warehouse not found")
        if assigned_to_id is not None:
            technician = db.session.get(User, assigned_to_id)
            if not technician or not technician.is_active:
                raise NotFoundError("Assigned user not found")

        total_uzs = 0
        total_usd_cents = 0
        sale_lines = []
        for line in lines:
            if line["product_id"] is not None:
                product = db.session.get(Product, line["product_id"])
                if not product or not product.is_active:
                    raise NotFoundError("Product not found", details={"product_id": line["product_id"]})
                _check_price_floor(actor, product, line["price_uzs"])

            line_total_uzs = line["price_uzs"] * line["quantity"]
            line_total_usd_cents = line["price_usd_cents"] * line["quantity"]
            total_uzs += line_total_uzs
            total_usd_cents += line_total_usd_cents

            sale_lines.append(SaleLine(
                product_id=line["product_id"],
                service_name=line["service_name"],
                quantity=line["quantity"],
                price_uzs=line["price_uzs"],
                price_usd_cents=line["price_usd_cents"],
                total_uzs=line_total_uzs,
                total_usd_cents=line_total_usd_cents,
            ))

        sale = Sale(
            document_number=next_document_number("SALE", "S"),
            sale_type=sale_type,
            status=SALE_STATUS_OPEN,
            customer_id=customer_id,
            warehouse_id=warehouse_id,
            cashier_id=actor.id,
            total_uzs=total_uzs,
            total_usd_cents=total_usd_cents,
            exchange_rate=rate.rate,
            goes_to_workshop=goes_to_workshop,
            workshop_status=WORKSHOP_PENDING if goes_to_workshop else None,
            notes=notes,
        )
        db.session.add(sale)
        db.session.flush()

        for sale_line in sale_lines:
            sale_line.sale_id = sale.id
            db.session.add(sale_line)

        task = None
        if goes_to_workshop:
            task = WorkshopTask(
                sale_id=sale.id,
                description=f"Sale {sale.document_number}: cutting/service",
                assigned_to_id=assigned_to_id,
                status=WORKSHOP_PENDING,
            )
            db.session.add(task)

        db.session.commit()
        return sale, task

    sale, task = run_with_retry(_op)

    events = []
    if task is not None:
        events.append(notify(ROOM_WORKSHOP, "workshop:newTask", {
            "task_id": task.id,
            "sale_id": sale.id,
            "description": f"New task: sale {sale.document_number}",
            "assigned_to_id": task.assigned_to_id,
        }))
    events.append(notify((ROOM_SALES, ROOM_BOSS), "sale:created", {
        "sale_id": sale.id,
        "sale_type": sale.sale_type,
        "cashier_id": sale.cashier_id,
    }))
    return sale, events


def complete_sale(actor, sale_id: int):
    """
    OPEN -> COMPLETED, decrementing stock when the sale has a warehouse.

    Returns (sale, notifications).
    """
    def _op():
        begin_immediate()
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found")
        if sale.status != SALE_STATUS_OPEN:
            raise SaleError("Sale already finalized")

        low_stock = []
        if sale.warehouse_id is not None:
            # Aggregate per product so two lines of one product are checked together
            required = OrderedDict()
            for line in sale.lines:
                if line.product_id is not None:
                    required[line.product_id] = required.get(line.product_id, 0) + line.quantity

            shortages = []
            for product_id, quantity in required.items():
                available = stock_service.get_quantity(product_id, sale.warehouse_id)
                if available < quantity:
                    shortages.append({
                        "product_id": product_id,
                        "available": available,
                        "requested": quantity,
                    })
            if shortages:
                raise stock_service.StockError(
                    "Insufficient stock to complete sale",
                    details={"warehouse_id": sale.warehouse_id, "lines": shortages},
                )

            for product_id, quantity in required.items():
                new_qty = stock_service.decrement_stock(product_id, sale.warehouse_id, quantity)
                product = db.session.get(Product, product_id)
                alert = stock_service.low_stock_notification(product, sale.warehouse_id, new_qty)
                if alert:
                    low_stock.append(alert)

        sale.status = SALE_STATUS_COMPLETED
        sale.completed_at = utcnow()
        db.session.commit()
        return sale, low_stock

    sale, low_stock = run_with_retry(_op)

    events = list(low_stock)
    if sale.warehouse_id is not None:
        events.append(stock_service.stock_updated_notification(sale.warehouse_id))
    events.append(notify((ROOM_SALES, ROOM_BOSS), "sale:completed", {
        "sale_id": sale.id,
        "total": {"uzs": sale.total_uzs, "usd_cents": sale.total_usd_cents},
    }))
    return sale, events


def cancel_sale(actor, sale_id: int):
    """OPEN -> CANCELLED. Returns (sale, notifications)."""
    def _op():
        begin_immediate()
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError("Sale not found")
        if sale.status != SALE_STATUS_OPEN:
            raise SaleError("Sale already finalized")

        sale.status = SALE_STATUS_CANCELLED
        sale.cancelled_at = utcnow()
        db.session.commit()
        return sale

    sale = run_with_retry(_op)
    return sale, [notify((ROOM_SALES, ROOM_BOSS), "sale:cancelled", {"sale_id": sale.id})]


def get_sale(sale_id: int) -> dict:
    """Sale with lines, payments and workshop tasks."""
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")

    data = sale.to_dict()
    data["lines"] = [line.to_dict() for line in sale.lines]
    data["payments"] = [payment.to_dict() for payment in sale.payments]
    data["workshop_tasks"] = [task.to_dict() for task in sale.workshop_tasks]
    data["customer"] = sale.customer.to_dict() if sale.customer else None
    data["paid_uzs"] = sum(payment.amount_uzs for payment in sale.payments)
    data["paid_usd_cents"] = sum(payment.amount_usd_cents for payment in sale.payments)
    return data


def list_sales(actor, filters: dict | None = None) -> dict:
    """
    Paginated sales, newest first.

    Cashiers only see their register's sale type.
    """
    filters = filters or {}
    query = db.session.query(Sale)

    status = filters.get("status")
    if status:
        if status not in SALE_STATUSES:
            raise SaleError(f"Unknown status: {status}")
        query = query.filter(Sale.status == status)

    sale_type = filters.get("sale_type")
    if actor.role == Role.CASHIER_SALES:
        sale_type = SALE_TYPE_PRODUCT
    elif actor.role == Role.CASHIER_SERVICE:
        sale_type = SALE_TYPE_SERVICE
    if sale_type:
        if sale_type not in SALE_TYPES:
            raise SaleError(f"Unknown sale_type: {sale_type}")
        query = query.filter(Sale.sale_type == sale_type)

    customer_id = optional_int(filters.get("customer_id"), "customer_id")
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)

    try:
        date_from = parse_iso_date(filters.get("date_from"))
        date_to = parse_iso_date(filters.get("date_to"))
    except ValueError:
        raise SaleError("Dates must be YYYY-MM-DD")
    if date_from:
        query = query.filter(db.func.date(Sale.created_at) >= date_from.isoformat())
    if date_to:
        query = query.filter(db.func.date(Sale.created_at) <= date_to.isoformat())

    page = max(1, optional_int(filters.get("page"), "page") or 1)
    limit = max(1, min(optional_int(filters.get("limit"), "limit") or 50, 200))

    total = query.count()
    sales = (
        query.order_by(Sale.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "sales": [sale.to_dict() for sale in sales],
        "total": total,
        "page": page,
        "limit": limit,
    }
