# Overview: Service-layer operations for purchases (stock intake); encapsulates business logic and database work.

"""
Purchase (stock intake)

One transaction:
1. Purchase + lines recorded, destination stock incremented per line
2. when the total is non-zero: an Expense under the "Stock intake"
   category (created on first use) and exactly one EXPENSE register op
"""

from __future__ import annotations

from ..errors import BadRequestError, NotFoundError
from ..extensions import db
from ..models import Purchase, PurchaseLine, Supplier
from ..validation import (
    positive_int,
    non_negative_int,
    optional_int,
    check_money_ceiling,
    MAX_AMOUNT_UZS,
    MAX_AMOUNT_USD_CENTS,
    MAX_QUANTITY,
)
from .concurrency import begin_immediate, run_with_retry
from .document_service import next_document_number
from .expense_service import STOCK_INTAKE_CATEGORY, get_or_create_expense_category, record_expense
from . import register_service, stock_service


PURCHASE_PAYMENT_TYPES = ("CASH_UZS", "CASH_USD", "CARD", "TRANSFER")


class PurchaseError(BadRequestError):
    pass


def _parse_lines(raw_lines) -> list[dict]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise PurchaseError("At least one line item is required")
    lines = []
    for raw in raw_lines:
        if not isinstance(raw, dict):
            raise PurchaseError("Line items must be objects")
        lines.append({
            "product_id": positive_int(raw.get("product_id"), "product_id"),
            "quantity": positive_int(raw.get("quantity"), "quantity", MAX_QUANTITY),
            "price_uzs": non_negative_int(raw.get("price_uzs", 0), "price_uzs", MAX_AMOUNT_UZS),
            "price_usd_cents": non_negative_int(
                raw.get("price_usd_cents", 0), "price_usd_cents", MAX_AMOUNT_USD_CENTS
            ),
        })
    return lines


def create_purchase(actor, data: dict, rate):
    """
    Record a stock intake and its expense.

    rate: the ExchangeRate applicable to this request (resolved by caller).
    Returns (purchase, notifications).
    """
    if rate is None:
        raise BadRequestError("No exchange rate set")

    lines = _parse_lines(data.get("items", data.get("lines")))
    warehouse_id = positive_int(data.get("warehouse_id"), "warehouse_id")
    supplier_id = optional_int(data.get("supplier_id"), "supplier_id")
    cash_register = register_service.validate_register_type(
        data.get("cash_register") or register_service.REGISTER_SALES
    )
    payment_type = data.get("payment_type") or "CASH_UZS"
    if payment_type not in PURCHASE_PAYMENT_TYPES:
        raise PurchaseError(f"Unknown payment_type: {payment_type}")

    total_uzs = sum(line["price_uzs"] * line["quantity"] for line in lines)
    total_usd_cents = sum(line["price_usd_cents"] * line["quantity"] for line in lines)
    check_money_ceiling(total_uzs, total_usd_cents, "total")

    def _op():
        begin_immediate()
        stock_service.require_warehouse(warehouse_id)
        supplier = None
        if supplier_id is not None:
            supplier = db.session.get(Supplier, supplier_id)
            if not supplier:
                raise NotFoundError("Supplier not found")
        for line in lines:
            stock_service.require_product(line["product_id"])

        purchase = Purchase(
            document_number=next_document_number("PURCHASE", "P"),
            supplier_id=supplier_id,
            warehouse_id=warehouse_id,
            total_uzs=total_uzs,
            total_usd_cents=total_usd_cents,
            exchange_rate=rate.rate,
            cash_register=cash_register,
            payment_type=payment_type,
            notes=data.get("notes"),
            created_by_user_id=actor.id,
        )
        db.session.add(purchase)
        db.session.flush()

        for line in lines:
            db.session.add(PurchaseLine(purchase_id=purchase.id, **line))
            stock_service.increment_stock(line["product_id"], warehouse_id, line["quantity"])

        if total_uzs > 0 or total_usd_cents > 0:
            category = get_or_create_expense_category(STOCK_INTAKE_CATEGORY)
            description = f"Stock intake {purchase.document_number}"
            if supplier is not None:
                description = f"{description} ({supplier.name})"
            expense = record_expense(
                user_id=actor.id,
                category_id=category.id,
                amount_uzs=total_uzs,
                amount_usd_cents=total_usd_cents,
                description=description,
                cash_register=cash_register,
                payment_type=payment_type,
            )
            purchase.expense_id = expense.id

        db.session.commit()
        return purchase

    purchase = run_with_retry(_op)
    return purchase, [stock_service.stock_updated_notification(warehouse_id)]


def list_purchases(limit: int = 100) -> list[Purchase]:
    limit = max(1, min(int(limit), 500))
    return db.session.query(Purchase).order_by(Purchase.id.desc()).limit(limit).all()


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError("Purchase not found")
    return purchase
